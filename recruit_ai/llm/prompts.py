# recruit_ai/llm/prompts.py
"""
Prompt Builders — YAML templates + deterministic rendering per request type

Intent
- Turn a typed generation request into `PromptPair(system_prompt, user_prompt)`.
- Keep prompt wording in YAML files under `recruit_ai/llm/templates/` and the
  branching logic (which optional blocks appear, language inference, scoring context)
  here, in pure functions.

Rules every builder follows
- Builders never call the model and never read anything but their template files.
- Optional blocks appear ONLY when the matching request field is present; an absent
  field never leaves an empty "Label:" line behind (blank runs are collapsed).
- Single-question prompts embed the question index (`"id": "q<n>"`) so the model keys
  the instance it produces.
- Free text is expected to be sanitized already (GenerationService runs
  `sanitize_request` first); builders interpolate values as given.

Rendering
- Safe placeholder replacer (not str.format): `{var}` tokens only, `{{` / `}}` for
  literal braces, missing variables raise KeyError. Injected values may contain braces
  (code, JSON) without corruption.
- Problematic Unicode whitespace (NBSP, BOM, ...) is normalized when templates load.

Primary APIs
- load_prompt_file(path) -> dict
- render_prompt_text(text, variables) -> str
- resolve_language(skills, language=None) -> str
- build_question_prompts(request) -> PromptPair
- build_quiz_system_prompt(allowed_kinds) -> str   (deterministic)
- build_quiz_prompts(request) -> PromptPair
- build_answer_evaluation_prompts(request) -> PromptPair
- build_overall_evaluation_prompts(request) -> PromptPair
- build_resume_evaluation_prompts(request) -> PromptPair
- build_position_description_prompts(request) -> PromptPair
- build_prompts(request) -> PromptPair   (dispatch on `request.type`)
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml

from recruit_ai.schema.questions import QUESTION_TYPES
from recruit_ai.utils.text import bullet_lines, collapse_blank_lines, join_csv, safe_truncate


TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

DEFAULT_DIFFICULTY = 3
DEFAULT_LANGUAGE = "javascript"
MAX_RESUME_PROMPT_CHARS = 80000
RESUME_TRUNCATION_SUFFIX = "... [troncato]"
NOT_SPECIFIED = "Not specified"

# Checked in order; the first language whose keywords hit any skill wins.
LANGUAGE_KEYWORDS = (
    ("javascript", ("javascript", "js", "node")),
    ("typescript", ("typescript", "ts")),
    ("python", ("python",)),
    ("java", ("java",)),
    ("csharp", ("c#", "csharp")),
    ("php", ("php",)),
)

# Unicode spaces that commonly break YAML / indentation or silently alter prompts
_BAD_WHITESPACE = {
    "\u00A0",  # NO-BREAK SPACE
    "\u2007",  # FIGURE SPACE
    "\u202F",  # NARROW NO-BREAK SPACE
    "\uFEFF",  # BOM
}

# Safe placeholder pattern: {var_name} where var_name is alnum/underscore
_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z0-9_]+)\}")


@dataclass(frozen=True)
class PromptPair:
    system_prompt: Optional[str]
    user_prompt: str


# ---------------------------------------------------------------------
# Template loading / rendering
# ---------------------------------------------------------------------


def _sanitize_prompt_text(text: str) -> str:
    """
    Normalize problematic Unicode whitespace to regular ASCII spaces.
    Normalize CRLF -> LF.
    """
    if not isinstance(text, str):
        return text

    for ch in _BAD_WHITESPACE:
        text = text.replace(ch, " ")

    return text.replace("\r\n", "\n")


def load_prompt_file(path: str | Path) -> Dict[str, Any]:
    """
    Load a single prompt YAML file and return a sanitized dict.

    Raises:
      FileNotFoundError if path doesn't exist
      ValueError if YAML doesn't parse to dict or has no 'user' block
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Prompt file not found: {p}")

    raw = _sanitize_prompt_text(p.read_text(encoding="utf-8"))

    obj = yaml.safe_load(raw)
    if not isinstance(obj, dict):
        raise ValueError(f"Prompt YAML must be a mapping/dict: {p}")

    obj = {k: _sanitize_prompt_text(v) if isinstance(v, str) else v for k, v in obj.items()}

    # Require at least user block (system is optional)
    if not obj.get("user"):
        raise ValueError(f"Prompt YAML missing required 'user' field: {p}")

    obj["_path"] = str(p)
    return obj


@lru_cache(maxsize=None)
def _template(name: str) -> Dict[str, Any]:
    return load_prompt_file(TEMPLATES_DIR / f"{name}.yaml")


def render_prompt_text(text: str, variables: Dict[str, Any]) -> str:
    """
    Render a text template with {var} placeholders.

    - Replaces only tokens matching {A-Za-z0-9_}
    - Supports literal braces via {{ and }} -> { and }
    - None renders as ""
    - Raises KeyError with a clear message if any placeholder is missing
    """
    if not isinstance(text, str):
        raise TypeError("render_prompt_text expects a string template")

    L_SENT = "\uE000"  # private use
    R_SENT = "\uE001"
    tmp = text.replace("{{", L_SENT).replace("}}", R_SENT)

    missing = sorted({name for name in _PLACEHOLDER_RE.findall(tmp) if name not in variables})
    if missing:
        raise KeyError(f"Missing template variable: {missing[0]}")

    def _repl(m: re.Match) -> str:
        val = variables.get(m.group(1))
        return "" if val is None else str(val)

    rendered = _PLACEHOLDER_RE.sub(_repl, tmp)
    return rendered.replace(L_SENT, "{").replace(R_SENT, "}")


def _render(template: Dict[str, Any], key: str, variables: Dict[str, Any]) -> str:
    return collapse_blank_lines(render_prompt_text(template[key], variables))


def json_dumps_example(obj: Any) -> str:
    """Readable JSON for inline examples (key order kept, non-ASCII kept)."""
    return json.dumps(obj, ensure_ascii=False, indent=2)


# ---------------------------------------------------------------------
# Small fragments
# ---------------------------------------------------------------------


def _line(label: str, value: Any) -> str:
    """`- Label: value` when value is present, "" otherwise."""
    if value is None:
        return ""
    if isinstance(value, str) and not value.strip():
        return ""
    return f"- {label}: {value}"


def _requirements_block(title: Optional[str], lines: Iterable[str]) -> str:
    kept = [ln for ln in lines if ln]
    if not kept:
        return ""
    body = "\n".join(kept)
    return f"{title}\n{body}" if title else body


def _previous_questions_block(previous: Sequence[str]) -> str:
    items = [q for q in previous if q and q.strip()]
    if not items:
        return ""
    return "Avoid repeating these existing questions:\n" + bullet_lines(items)


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def resolve_language(skills: Sequence[str], language: Optional[str] = None) -> str:
    """
    Programming language for a code question.

    Explicit `language` wins; otherwise the first LANGUAGE_KEYWORDS entry with a keyword
    contained (case-insensitively) in any skill; otherwise DEFAULT_LANGUAGE.
    """
    if language and language.strip():
        return language.strip().lower()

    lowered = [s.lower() for s in skills or []]
    for lang, keywords in LANGUAGE_KEYWORDS:
        if any(k in s for s in lowered for k in keywords):
            return lang
    return DEFAULT_LANGUAGE


# ---------------------------------------------------------------------
# Single question
# ---------------------------------------------------------------------


def build_common_context(request: Any) -> str:
    """Position + quiz context block shared by the single-question prompts."""
    return _render(
        _template("question_context"),
        "user",
        {
            "experience_level": request.experience_level,
            "skills": join_csv(request.skills),
            "difficulty": request.difficulty or DEFAULT_DIFFICULTY,
            "instructions_line": _line("Special instructions", request.instructions),
            "quiz_title": request.quiz_title,
            "position_title": request.position_title,
            "previous_questions_block": _previous_questions_block(request.previous_questions),
        },
    )


def _example_json(kind: str, question_index: int) -> str:
    example = dict(_template(kind)["example"])
    example["id"] = f"q{question_index}"
    return json_dumps_example(example)


def _question_system_prompt(kind: str, question_index: int) -> str:
    return _render(
        _template(kind),
        "system",
        {"question_index": question_index, "example_json": _example_json(kind, question_index)},
    )


def _multiple_choice_user(request: Any, context: str) -> str:
    extra = _requirements_block(
        "Additional Requirements:",
        [
            _line("Focus areas", join_csv(request.focus_areas)),
            _line("Distractor complexity", request.distractor_complexity),
        ],
    )
    return _render(
        _template("multiple_choice"),
        "user",
        {"context": context, "experience_level": request.experience_level, "additional_requirements": extra},
    )


def _open_question_user(request: Any, context: str) -> str:
    extra = _requirements_block(
        "Additional Requirements:",
        [
            _line("Expected response length", request.expected_response_length),
            _line("Evaluation criteria", join_csv(request.evaluation_criteria)),
        ],
    )
    return _render(
        _template("open_question"),
        "user",
        {"context": context, "experience_level": request.experience_level, "additional_requirements": extra},
    )


def _code_snippet_user(request: Any, context: str) -> str:
    template = _template("code_snippet")
    language = resolve_language(request.skills, request.language)

    requirements: List[str] = [f"- Programming language: {language}"]
    bug_type = (request.bug_type or "").strip()
    if bug_type:
        question_mode = "bug fixing"
        code_requirements = render_prompt_text(template["bug_fixing_requirements"], {"bug_type": bug_type})
        requirements.append(f"- Bug type focus: {bug_type}")
    else:
        question_mode = "code improvement/analysis"
        code_requirements = render_prompt_text(template["improvement_requirements"], {})

    requirements.append(_line("Code complexity", request.code_complexity))
    if request.include_comments is not None:
        requirements.append(f"- Include comments: {'yes' if request.include_comments else 'no'}")

    return _render(
        template,
        "user",
        {
            "context": context,
            "language": language,
            "code_requirements": code_requirements,
            "experience_level": request.experience_level,
            "question_mode": question_mode,
            "additional_requirements": _requirements_block(None, requirements),
        },
    )


_QUESTION_USER_BUILDERS = {
    "multiple_choice": _multiple_choice_user,
    "open_question": _open_question_user,
    "code_snippet": _code_snippet_user,
}


def build_question_prompts(request: Any) -> PromptPair:
    """System + user prompt for one question of `request.type`."""
    builder = _QUESTION_USER_BUILDERS.get(request.type)
    if builder is None:
        raise ValueError(f"Unsupported question type: {request.type}")

    context = build_common_context(request)
    return PromptPair(
        system_prompt=_question_system_prompt(request.type, request.question_index),
        user_prompt=builder(request, context),
    )


# ---------------------------------------------------------------------
# Whole quiz
# ---------------------------------------------------------------------


def build_quiz_system_prompt(allowed_kinds: Sequence[str] = QUESTION_TYPES) -> str:
    """
    Deterministic quiz system prompt: rules for the allowed kinds only, plus one inline
    JSON example whose question is of the first allowed kind.
    """
    kinds = [k for k in QUESTION_TYPES if k in set(allowed_kinds)]
    if not kinds:
        raise ValueError("allowed_kinds must contain at least one question type")

    template = _template("quiz")
    rules = "\n\n".join(f"{i}. {template[f'rules_{k}']}" for i, k in enumerate(kinds, start=1))

    example = dict(template["example"])
    example_question = dict(_template(kinds[0])["example"])
    example_question["id"] = "q1"
    example = {
        "title": example["title"],
        "questions": [example_question],
        "time_limit": example["time_limit"],
        "difficulty": example["difficulty"],
        "instructions": example["instructions"],
    }

    return _render(
        template,
        "system",
        {
            "question_type_rules": rules,
            "allowed_types": ", ".join(kinds),
            "example_json": json_dumps_example(example),
        },
    )


def build_quiz_prompt(request: Any) -> str:
    return _render(
        _template("quiz"),
        "user",
        {
            "position_title": request.position_title,
            "question_count": request.question_count,
            "experience_level": request.experience_level,
            "skills": join_csv(request.skills),
            "description_line": _line("Description", request.description),
            "quiz_title": request.quiz_title,
            "difficulty": request.difficulty or DEFAULT_DIFFICULTY,
            "allowed_types": ", ".join(request.allowed_kinds()),
            "instructions_line": _line("Special instructions", request.instructions),
            "previous_questions_block": _previous_questions_block(request.previous_questions),
        },
    )


def build_quiz_prompts(request: Any) -> PromptPair:
    return PromptPair(
        system_prompt=build_quiz_system_prompt(request.allowed_kinds()),
        user_prompt=build_quiz_prompt(request),
    )


# ---------------------------------------------------------------------
# Evaluations
# ---------------------------------------------------------------------


def _code_block(title: str, code: Optional[str], language: str) -> str:
    if not code or not code.strip():
        return ""
    return f"{title}\n```{language}\n{code}\n```"


def _multiple_choice_body(question: Any, answer: str) -> Dict[str, Any]:
    options = list(question.options or [])
    try:
        selected = int(answer.strip())
    except ValueError:
        selected = -1
    valid = 0 <= selected < len(options)

    correct = question.correct_answer if question.correct_answer is not None else 0
    correct_text = options[correct] if 0 <= correct < len(options) else ""
    is_correct = valid and selected == correct

    if is_correct:
        guidance = "Acknowledge the correct choice and the knowledge it demonstrates"
    else:
        guidance = (
            "Explain why the correct answer is better and what misconception "
            "the wrong choice might indicate"
        )

    return {
        "question": question.question,
        "options_block": "\n".join(f"{i}. {opt}" for i, opt in enumerate(options)),
        "selected_option": f'{selected} - "{options[selected]}"' if valid else "No valid option selected",
        "correct_option": f'{correct} - "{correct_text}"',
        "verdict": "CORRECT" if is_correct else "INCORRECT",
        "explanation_line": f"Explanation: {question.explanation}" if question.explanation else "",
        "verdict_guidance": guidance,
    }


def _open_question_body(question: Any, answer: str) -> Dict[str, Any]:
    keywords = join_csv(question.keywords)
    return {
        "question": question.question,
        "answer": answer,
        "sample_answer_line": f'Sample answer: "{question.sample_answer}"' if question.sample_answer else "",
        "keywords_line": f"Keywords to look for: {keywords}" if keywords else "",
    }


def _code_snippet_body(question: Any, answer: str) -> Dict[str, Any]:
    language = question.language or ""
    return {
        "question": question.question,
        "answer": answer,
        "language": language,
        "original_code_block": _code_block("Original code to analyze/fix:", question.code_snippet, language),
        "sample_solution_block": _code_block("Sample solution:", question.sample_solution, language),
        "language_line": f"Programming language: {language}" if language else "",
    }


_EVALUATION_BODIES = {
    "multiple_choice": _multiple_choice_body,
    "open_question": _open_question_body,
    "code_snippet": _code_snippet_body,
}


def build_answer_evaluation_prompts(request: Any) -> PromptPair:
    """Per-kind evaluation body + the fixed JSON output instructions."""
    template = _template("answer_evaluation")
    kind = request.question.type
    body = _render(template, f"body_{kind}", _EVALUATION_BODIES[kind](request.question, request.answer))

    return PromptPair(
        system_prompt=render_prompt_text(template["system"], {}).strip(),
        user_prompt=_render(template, "user", {"body": body}),
    )


def build_overall_evaluation_prompts(request: Any) -> PromptPair:
    """Interview-level evaluation from the strengths/weaknesses of each graded answer."""
    template = _template("overall_evaluation")

    strengths: List[str] = []
    weaknesses: List[str] = []
    for ev in request.evaluations:
        strengths.extend(ev.strengths)
        weaknesses.extend(ev.weaknesses)

    user = _render(
        template,
        "user",
        {
            "candidate_name": request.candidate_name,
            "position_title": request.position_title,
            "experience_level": request.experience_level,
            "answered_count": request.answered_count,
            "total_count": request.total_count,
            "percentage_score": _fmt_number(request.percentage_score),
            "strengths_block": bullet_lines(strengths),
            "weaknesses_block": bullet_lines(weaknesses),
        },
    )
    return PromptPair(system_prompt=template["system"].strip(), user_prompt=user)


def build_resume_evaluation_prompts(request: Any) -> PromptPair:
    """Resume vs. position; resume text cut to MAX_RESUME_PROMPT_CHARS."""
    template = _template("resume_evaluation")
    resume_text, _cut = safe_truncate(
        request.resume_text, MAX_RESUME_PROMPT_CHARS, suffix=RESUME_TRUNCATION_SUFFIX
    )

    user = _render(
        template,
        "user",
        {
            "candidate_name": request.candidate_name,
            "resume_text": resume_text,
            "position_title": request.position_title,
            "experience_level": request.experience_level,
            "skills": join_csv(request.skills),
            "soft_skills": join_csv(request.soft_skills),
            "description_line": _line("Descrizione", request.description),
        },
    )
    return PromptPair(system_prompt=template["system"].strip(), user_prompt=user)


def build_position_description_prompts(request: Any) -> PromptPair:
    """Plain-text job description prompt (no system prompt)."""
    user = _render(
        _template("position_description"),
        "user",
        {
            "position_title": request.position_title,
            "experience_level": request.experience_level,
            "skills": join_csv(request.skills),
            "soft_skills": join_csv(request.soft_skills, empty=NOT_SPECIFIED),
            "contract_type": request.contract_type or NOT_SPECIFIED,
            "current_description_line": _line("Current description", request.current_description),
            "instructions_line": _line("Additional instructions", request.instructions),
        },
    )
    return PromptPair(system_prompt=None, user_prompt=user)


_BUILDERS = {
    "multiple_choice": build_question_prompts,
    "open_question": build_question_prompts,
    "code_snippet": build_question_prompts,
    "quiz": build_quiz_prompts,
    "answer_evaluation": build_answer_evaluation_prompts,
    "overall_evaluation": build_overall_evaluation_prompts,
    "resume_evaluation": build_resume_evaluation_prompts,
    "position_description": build_position_description_prompts,
}


def build_prompts(request: Any) -> PromptPair:
    """Dispatch on the request's `type` tag."""
    builder = _BUILDERS.get(getattr(request, "type", None))
    if builder is None:
        raise ValueError(f"Unsupported request type: {getattr(request, 'type', None)!r}")
    return builder(request)


__all__ = [
    "PromptPair",
    "TEMPLATES_DIR",
    "LANGUAGE_KEYWORDS",
    "MAX_RESUME_PROMPT_CHARS",
    "load_prompt_file",
    "render_prompt_text",
    "resolve_language",
    "build_common_context",
    "build_question_prompts",
    "build_quiz_system_prompt",
    "build_quiz_prompt",
    "build_quiz_prompts",
    "build_answer_evaluation_prompts",
    "build_overall_evaluation_prompts",
    "build_resume_evaluation_prompts",
    "build_position_description_prompts",
    "build_prompts",
]
