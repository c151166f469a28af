# recruit_ai/utils/config.py
"""
Config Loader — Typed YAML Configuration for the Generation Engine

Intent
- Load + validate the YAML files that configure a GenerationService:
  - configs/parameters.yaml  (retry/timeout/fallback knobs, model map, logging)
  - configs/credentials.yaml (name of the env var holding the Gemini API key)
- Return **typed** Pydantic objects; invalid configs fail fast with Pydantic errors.

Config models
- GenerationConfig:
  - max_retries (>=0), retry_delay_ms (>0), timeout_ms (>0), fallback_models (ordered)
  - immutable; per-call overrides go through `with_overrides(**kw)` (re-validated)
- LLMConfig:
  - models: task -> model name (quiz_generation, question_generation, evaluation,
    overall_evaluation, resume_evaluation, simple_task)
  - generation_temperature / evaluation_temperature (0.0–2.0), evaluation_seed
- LoggingConfig: level, log_file, silence_client_lv_logs
- ParametersConfig: generation + llm + logging
- CredentialsConfig: gemini.api_key_env

Implementation notes
- `_load_yaml()` normalizes NBSP / BOM / narrow NBSP before parsing (copy-pasted YAML
  from docs often carries them) and requires a mapping at the root.
- Legacy camelCase keys (`maxRetries`, `retryDelay`, `timeout`, `fallbackModels`) are
  accepted in the `generation` block.

External dependencies
- PyYAML: yaml.safe_load
- Pydantic v2
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from recruit_ai.utils.logging import get_logger


DEFAULT_TASK_MODELS: Dict[str, str] = {
    "quiz_generation": "gemini-2.5-pro",
    "question_generation": "gemini-2.5-flash",
    "evaluation": "gemini-2.5-flash",
    "overall_evaluation": "gemini-2.5-flash",
    "resume_evaluation": "gemini-2.5-pro",
    "simple_task": "gemini-2.5-flash-lite",
}

DEFAULT_FALLBACK_MODELS: List[str] = ["gemini-2.5-flash", "gemini-2.5-flash-lite"]


# -----------------------------
# Generation knobs
# -----------------------------
class GenerationConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1000, gt=0)
    timeout_ms: int = Field(default=60000, gt=0)
    fallback_models: List[str] = Field(default_factory=lambda: list(DEFAULT_FALLBACK_MODELS))

    @model_validator(mode="before")
    @classmethod
    def _legacy_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        renames = {
            "maxRetries": "max_retries",
            "retryDelay": "retry_delay_ms",
            "timeout": "timeout_ms",
            "fallbackModels": "fallback_models",
        }
        out = dict(data)
        for old, new in renames.items():
            if old in out and new not in out:
                out[new] = out.pop(old)
        return out

    @field_validator("fallback_models")
    @classmethod
    def _strip_models(cls, v: List[str]) -> List[str]:
        cleaned = [str(m).strip() for m in v]
        if any(not m for m in cleaned):
            raise ValueError("generation.fallback_models must not contain empty names")
        return cleaned

    def with_overrides(self, **overrides: Any) -> "GenerationConfig":
        """Return a validated copy with some fields replaced (None values are ignored)."""
        update = {k: v for k, v in overrides.items() if v is not None}
        if not update:
            return self
        return GenerationConfig.model_validate({**self.model_dump(), **update})


class LLMConfig(BaseModel):
    models: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_TASK_MODELS))

    generation_temperature: float = 0.7
    evaluation_temperature: float = 0.0
    evaluation_seed: Optional[int] = 42

    @field_validator("generation_temperature", "evaluation_temperature")
    @classmethod
    def _validate_temperature(cls, v: float, info) -> float:
        if v < 0.0 or v > 2.0:
            raise ValueError(f"llm.{info.field_name} must be within [0.0, 2.0]")
        return v

    @field_validator("models", mode="before")
    @classmethod
    def _merge_default_models(cls, v: Any) -> Any:
        """Partial maps only override the tasks they name."""
        if v is None:
            return dict(DEFAULT_TASK_MODELS)
        if isinstance(v, dict):
            return {**DEFAULT_TASK_MODELS, **v}
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_file: Optional[str] = None
    silence_client_lv_logs: bool = True


class ParametersConfig(BaseModel):
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# -----------------------------
# Credentials
# -----------------------------
class CredentialsGemini(BaseModel):
    api_key_env: str = "GEMINI_API_KEY"


class CredentialsConfig(BaseModel):
    gemini: CredentialsGemini = Field(default_factory=CredentialsGemini)


# -----------------------------
# YAML helpers
# -----------------------------
def _load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    text = p.read_text(encoding="utf-8")

    for ch in ["\u00A0", "\u2007", "\u202F", "\uFEFF"]:
        text = text.replace(ch, " ")

    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML root must be a mapping/object: {path}")
    return data


def load_parameters(path: str | Path = "configs/parameters.yaml") -> ParametersConfig:
    """Load and validate parameters.yaml."""
    logger = get_logger(__name__)
    raw = _load_yaml(path)
    try:
        return ParametersConfig.model_validate(raw)
    except ValidationError as e:
        logger.error("Invalid parameters.yaml: %s", e)
        raise


def load_credentials(path: str | Path = "configs/credentials.yaml") -> CredentialsConfig:
    """Load and validate credentials.yaml (no secrets inside; only env var names)."""
    logger = get_logger(__name__)
    raw = _load_yaml(path)
    try:
        return CredentialsConfig.model_validate(raw)
    except ValidationError as e:
        logger.error("Invalid credentials.yaml: %s", e)
        raise


__all__ = [
    "DEFAULT_TASK_MODELS",
    "DEFAULT_FALLBACK_MODELS",
    "GenerationConfig",
    "LLMConfig",
    "LoggingConfig",
    "ParametersConfig",
    "CredentialsConfig",
    "load_parameters",
    "load_credentials",
]
