# tests/test_streaming.py
import asyncio
import json

import pytest

from recruit_ai.core.errors import ErrorCode, GenerationError
from recruit_ai.core.streaming import (
    clean_json_response,
    extract_array_items,
    finalize_evaluation,
    parse_partial,
    stream_partial_evaluations,
)
from recruit_ai.schema.evaluations import PartialEvaluationState


FULL = json.dumps(
    {
        "evaluation": "Candidato solido.\nBuona esperienza con \"Django\".",
        "strengths": ["Python", "Comunicazione"],
        "weaknesses": ["Cloud"],
        "recommendation": "Procedere con colloquio tecnico",
        "fitScore": 78,
    },
    ensure_ascii=False,
)


def test_array_not_yet_closed_keeps_only_complete_items():
    state = parse_partial('{"strengths": ["Good communication", "Fast lear')
    assert state.strengths == ["Good communication"]


def test_escaped_quotes_are_unescaped():
    state = parse_partial('{"evaluation": "He said \\"great job\\" today"}')
    assert state.evaluation == 'He said "great job" today'


def test_newline_escape_is_unescaped():
    assert parse_partial('{"recommendation": "a\\nb"').recommendation == "a\nb"


def test_open_string_is_not_reported():
    state = parse_partial('{"evaluation": "still stream')
    assert state.evaluation is None


def test_array_without_complete_items_stays_unset():
    assert parse_partial('{"weaknesses": [').weaknesses is None
    assert parse_partial('{"weaknesses": ["Clo').weaknesses is None
    assert parse_partial('{"weaknesses": []}').weaknesses is None


def test_fit_score_integer():
    assert parse_partial('{"fitScore": 85').fit_score == 85
    assert parse_partial('{"fitScore": "85"}').fit_score is None


def test_oversized_fit_score_does_not_raise():
    state = parse_partial('{"evaluation": "ok", "fitScore": ' + "9" * 5000)

    assert state.evaluation == "ok"
    assert state.fit_score == 999999999


def test_fields_are_order_insensitive():
    text = '{"fitScore": 40, "recommendation": "No", "evaluation": "Debole"'
    state = parse_partial(text)
    assert (state.fit_score, state.recommendation, state.evaluation) == (40, "No", "Debole")


@pytest.mark.parametrize("text", ["", "garbage", "{", '{"evaluation": ', None])
def test_never_raises(text):
    assert isinstance(parse_partial(text), PartialEvaluationState)


def test_idempotent():
    for cut in range(0, len(FULL) + 1, 7):
        buf = FULL[:cut]
        assert parse_partial(buf) == parse_partial(buf)


def test_prefix_growth_never_unsets_a_field():
    previous = PartialEvaluationState()
    for cut in range(len(FULL) + 1):
        current = parse_partial(FULL[:cut])
        for name in previous.populated_fields():
            assert getattr(current, name) is not None, (name, cut)
        if previous.evaluation is not None:
            assert current.evaluation.startswith(previous.evaluation)
        previous = current

    assert set(previous.populated_fields()) == {
        "evaluation",
        "strengths",
        "weaknesses",
        "recommendation",
        "fit_score",
    }


def test_extract_array_items_handles_escapes():
    assert extract_array_items('"a \\"b\\"", "c"') == ['a "b"', "c"]


def test_clean_json_response_strips_fences():
    assert clean_json_response('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert clean_json_response('```\n{"a": 1}```') == '{"a": 1}'
    assert clean_json_response('  {"a": 1}  ') == '{"a": 1}'


def test_finalize_evaluation_ok_and_invalid():
    ev = finalize_evaluation("```json\n" + FULL + "\n```")
    assert ev.fit_score == 78
    assert ev.strengths == ["Python", "Comunicazione"]

    with pytest.raises(GenerationError) as e:
        finalize_evaluation(FULL[:-10])
    assert e.value.code is ErrorCode.INVALID_RESPONSE


async def _chunks(items):
    for item in items:
        yield item


def test_stream_partial_evaluations_bytes_split_inside_multibyte_char():
    data = '{"evaluation": "Più che adeguato", "fitScore": 90}'.encode("utf-8")
    split = data.index("ù".encode("utf-8")) + 1  # cut inside the 2-byte sequence

    async def collect():
        return [item async for item in stream_partial_evaluations(_chunks([data[:split], data[split:]]))]

    states = asyncio.run(collect())

    assert len(states) == 2
    buffer, state = states[-1]
    assert buffer == data.decode("utf-8")
    assert state.evaluation == "Più che adeguato"
    assert state.fit_score == 90
    assert "\ufffd" not in states[0][0]


def test_stream_partial_evaluations_text_chunks_in_order():
    pieces = [FULL[i : i + 9] for i in range(0, len(FULL), 9)]

    async def collect():
        return [item async for item in stream_partial_evaluations(_chunks(pieces))]

    states = asyncio.run(collect())

    assert len(states) == len(pieces)
    assert [b for b, _ in states] == ["".join(pieces[: i + 1]) for i in range(len(pieces))]
    assert states[-1][1].recommendation == "Procedere con colloquio tecnico"
