# recruit_ai/core/service.py
"""
Generation Service — the façade over sanitize / prompts / retry / timeout / fallback

Intent
- One object, constructed explicitly per call site (no module-level singleton), that
  turns a typed request into a validated result.
- Every non-streaming operation runs the same per-model pipeline:

    sanitize_request -> build_prompts -> with_timeout(with_retry(model call), timeout_ms)
        -> normalize / validate

  and `with_fallback` wraps that whole pipeline, so each fallback model re-runs it from
  the top with a fresh retry budget.

Fallback policy
- Question / quiz generation: fallback models are tried only when the request names an
  explicit model (`specific_model`).
- Evaluations (answer / overall / resume): fallback models are always tried.
- Final failure: GenerationError(GENERATION_FAILED) with the last error in `details`.
  CONTENT_FILTERED is never retried and never falls back.

Streaming
- `stream_resume_evaluation()` yields `(buffer, PartialEvaluationState)` after every
  chunk; `finalize_resume_evaluation(buffer)` validates the finished text.
- `stream_position_description()` yields raw text chunks.
- Streams are neither retried nor raced against a deadline: chunks already delivered
  to the caller cannot be taken back.

Side effects
- None beyond the outbound model call and logging. Results are returned, never stored.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple, Type

from pydantic import BaseModel

from recruit_ai.core.errors import ErrorCode, GenerationError
from recruit_ai.core.normalize import QuestionValidationError, to_strict, to_strict_question
from recruit_ai.core.retry import SleepFn, with_fallback, with_retry, with_timeout
from recruit_ai.core.sanitize import sanitize_request
from recruit_ai.core.streaming import finalize_evaluation, stream_partial_evaluations
from recruit_ai.llm.client import get_model_name
from recruit_ai.llm.prompts import build_prompts
from recruit_ai.llm.runner import ModelCall, call_model_json, call_model_text, stream_model_text
from recruit_ai.schema.evaluations import (
    AnswerEvaluation,
    AnswerEvaluationOutput,
    PartialEvaluationState,
    ResumeEvaluation,
)
from recruit_ai.schema.questions import DraftQuestion, QuizDraft
from recruit_ai.utils.config import GenerationConfig, LLMConfig
from recruit_ai.utils.logging import get_request_logger


class GenerationService:
    def __init__(
        self,
        client_ctx: Dict[str, Any],
        *,
        config: Optional[GenerationConfig] = None,
        llm: Optional[LLMConfig] = None,
        sleep: SleepFn = asyncio.sleep,
        skip_invalid_questions: bool = False,
        request_id: Optional[str] = None,
    ) -> None:
        self._client_ctx = client_ctx
        self._config = config or GenerationConfig()
        self._llm = llm or LLMConfig()
        self._sleep = sleep
        self._skip_invalid_questions = skip_invalid_questions
        self._logger = get_request_logger(__name__, request_id)

    @property
    def config(self) -> GenerationConfig:
        return self._config

    # -----------------------------
    # Pipeline
    # -----------------------------
    def _model_for(self, task: str, request: Any) -> str:
        return get_model_name(task, model_name_override=request.specific_model, llm_config=self._llm)

    def _model_call(self, model: str, clean_request: Any, *, evaluation: bool, schema=None) -> ModelCall:
        prompts = build_prompts(clean_request)
        return ModelCall(
            model=model,
            prompt=prompts.user_prompt,
            system_prompt=prompts.system_prompt,
            temperature=self._llm.evaluation_temperature if evaluation else self._llm.generation_temperature,
            seed=self._llm.evaluation_seed if evaluation else None,
            response_schema=schema,
        )

    async def _generate(
        self,
        request: Any,
        *,
        task: str,
        label: str,
        schema: Optional[Type[BaseModel]],
        finish: Callable[[Any], Any],
        check: Optional[Callable[[Any, str], None]] = None,
        evaluation: bool = False,
        always_fallback: bool = False,
        config: Optional[GenerationConfig] = None,
    ) -> Any:
        cfg = config or self._config
        primary = self._model_for(task, request)
        explicit = bool(request.specific_model) or always_fallback

        async def run_for_model(model: str) -> Any:
            clean = sanitize_request(request)
            call = self._model_call(model, clean, evaluation=evaluation, schema=schema)

            async def attempt() -> Any:
                if schema is None:
                    return await call_model_text(self._client_ctx, call)
                out = await call_model_json(self._client_ctx, call, schema)
                if check is not None:
                    check(out, model)
                return out

            started = time.perf_counter()
            raw = await with_timeout(
                with_retry(attempt, cfg, sleep=self._sleep, label=label, logger=self._logger),
                cfg.timeout_ms,
            )
            result = finish(raw)
            self._logger.info(
                "%s ok | model=%s | %.0f ms", label, model, (time.perf_counter() - started) * 1000
            )
            return result

        self._logger.debug("%s start | model=%s | explicit=%s", label, primary, explicit)
        return await with_fallback(
            run_for_model,
            primary_model=primary,
            fallback_models=cfg.fallback_models,
            explicit_model=explicit,
            label=label,
            logger=self._logger,
        )

    def _normalize(self, drafts: Any) -> Any:
        try:
            return to_strict(drafts, skip_invalid=self._skip_invalid_questions)
        except QuestionValidationError as e:
            raise GenerationError(
                "Generated question failed validation",
                ErrorCode.INVALID_RESPONSE,
                {"index": e.index, "question_id": e.question_id, "errors": e.errors},
            ) from e

    # -----------------------------
    # Questions
    # -----------------------------
    async def generate_question(self, request: Any, *, config: Optional[GenerationConfig] = None) -> Any:
        """One strict question of `request.type` (multiple_choice / open_question / code_snippet)."""

        def check(draft: DraftQuestion, model: str) -> None:
            if draft.type != request.type:
                raise GenerationError(
                    f"Model returned a {draft.type} question, {request.type} was requested",
                    ErrorCode.INVALID_RESPONSE,
                    {"model": model},
                )

        def finish(draft: DraftQuestion) -> Any:
            try:
                return to_strict_question(draft, request.question_index - 1)
            except QuestionValidationError as e:
                raise GenerationError(
                    "Generated question failed validation",
                    ErrorCode.INVALID_RESPONSE,
                    {"index": e.index, "question_id": e.question_id, "errors": e.errors},
                ) from e

        return await self._generate(
            request,
            task="question_generation",
            label="question generation",
            schema=DraftQuestion,
            check=check,
            finish=finish,
            config=config,
        )

    async def generate_quiz(self, request: Any, *, config: Optional[GenerationConfig] = None) -> Dict[str, Any]:
        """`{"questions": [StrictQuestion, ...]}` for a whole quiz."""
        questions = await self._generate(
            request,
            task="quiz_generation",
            label="quiz generation",
            schema=QuizDraft,
            finish=lambda draft: self._normalize(draft.questions),
            config=config,
        )
        return {"questions": questions}

    # -----------------------------
    # Evaluations
    # -----------------------------
    async def evaluate_answer(self, request: Any, *, config: Optional[GenerationConfig] = None) -> AnswerEvaluation:
        return await self._generate(
            request,
            task="evaluation",
            label="answer evaluation",
            schema=AnswerEvaluationOutput,
            finish=lambda out: AnswerEvaluation(**out.model_dump()),
            evaluation=True,
            always_fallback=True,
            config=config,
        )

    async def generate_overall_evaluation(
        self, request: Any, *, config: Optional[GenerationConfig] = None
    ) -> ResumeEvaluation:
        return await self._generate(
            request,
            task="overall_evaluation",
            label="overall evaluation",
            schema=ResumeEvaluation,
            finish=lambda out: out,
            evaluation=True,
            always_fallback=True,
            config=config,
        )

    async def evaluate_resume(self, request: Any, *, config: Optional[GenerationConfig] = None) -> ResumeEvaluation:
        return await self._generate(
            request,
            task="resume_evaluation",
            label="resume evaluation",
            schema=ResumeEvaluation,
            finish=lambda out: out,
            evaluation=True,
            always_fallback=True,
            config=config,
        )

    # -----------------------------
    # Position description
    # -----------------------------
    async def generate_position_description(
        self, request: Any, *, config: Optional[GenerationConfig] = None
    ) -> str:
        return await self._generate(
            request,
            task="simple_task",
            label="position description",
            schema=None,
            finish=lambda text: text,
            config=config,
        )

    # -----------------------------
    # Dispatch
    # -----------------------------
    async def generate(self, request: Any, *, config: Optional[GenerationConfig] = None) -> Any:
        """Route any GenerationRequest variant to its operation."""
        handlers = {
            "multiple_choice": self.generate_question,
            "open_question": self.generate_question,
            "code_snippet": self.generate_question,
            "quiz": self.generate_quiz,
            "answer_evaluation": self.evaluate_answer,
            "overall_evaluation": self.generate_overall_evaluation,
            "resume_evaluation": self.evaluate_resume,
            "position_description": self.generate_position_description,
        }
        handler = handlers.get(getattr(request, "type", None))
        if handler is None:
            raise ValueError(f"Unsupported request type: {getattr(request, 'type', None)!r}")
        return await handler(request, config=config)

    # -----------------------------
    # Streaming
    # -----------------------------
    def _stream_call(self, task: str, request: Any, *, evaluation: bool) -> ModelCall:
        clean = sanitize_request(request)
        return self._model_call(self._model_for(task, request), clean, evaluation=evaluation)

    async def stream_resume_evaluation(
        self, request: Any
    ) -> AsyncIterator[Tuple[str, PartialEvaluationState]]:
        """Yield (accumulated_text, partial_state) after every streamed chunk."""
        call = self._stream_call("resume_evaluation", request, evaluation=True)
        self._logger.debug("resume evaluation stream start | model=%s", call.model)

        async for buffer, state in stream_partial_evaluations(stream_model_text(self._client_ctx, call)):
            yield buffer, state

    def finalize_resume_evaluation(self, full_text: str) -> ResumeEvaluation:
        """Strict result of a completed `stream_resume_evaluation` buffer."""
        return finalize_evaluation(full_text)

    async def stream_position_description(self, request: Any) -> AsyncIterator[str]:
        call = self._stream_call("simple_task", request, evaluation=False)
        self._logger.debug("position description stream start | model=%s", call.model)

        async for chunk in stream_model_text(self._client_ctx, call):
            yield chunk


__all__ = ["GenerationService"]
