# recruit_ai/llm/client.py
"""
Gemini Client Factory (`google.genai`) + Task Model Selection

Intent
- Construct a Gemini client context in a single, reusable place.
- Resolve which model serves which generation task.

Design Principles
- **No network calls** are performed here. This module only prepares a client context
  that GenerationService uses to make requests.
- **Secrets are never read from files**. The API key must come from an environment
  variable (e.g., `GEMINI_API_KEY`), whose name is provided by `credentials.yaml`.

Configuration Inputs
- `credentials_config` may be:
  1) a full credentials object with `.gemini`
  2) an object/dict already representing the `gemini` section
  3) a dict like `{"gemini": {...}}`

Model Name Resolution (priority order)
1) `model_name_override` (the request's explicit model)
2) `llm_config.models[task]` (parameters.yaml)
3) environment variable `GEMINI_MODEL`
4) built-in default for the task (unknown task -> question_generation default)

Primary API
- `get_model_name(task, model_name_override=None, llm_config=None) -> str`
- `build_gemini_client(credentials_config) -> dict`
    Returns:
      {
        "client": genai.Client,
        "api_key_env": "<env var name the key was read from>",
      }
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from google import genai

from recruit_ai.utils.config import DEFAULT_TASK_MODELS
from recruit_ai.utils.logging import get_logger


def _get(obj: Any, key: str, default=None):
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _resolve_gemini_config(credentials_config: Any) -> Any:
    """
    Accept:
    - full creds object that has `.gemini`
    - already gemini section object
    - dict with {"gemini": {...}} or direct {...}
    """
    if isinstance(credentials_config, dict):
        if isinstance(credentials_config.get("gemini"), dict):
            return credentials_config["gemini"]
        return credentials_config

    gemini_section = getattr(credentials_config, "gemini", None)
    return gemini_section if gemini_section is not None else credentials_config


def get_model_name(
    task: str,
    *,
    model_name_override: Optional[str] = None,
    llm_config: Any = None,
) -> str:
    """
    Resolve the model for a task.

    Priority:
    1) model_name_override
    2) llm_config.models[task]
    3) env var GEMINI_MODEL
    4) DEFAULT_TASK_MODELS[task]
    """
    if model_name_override and str(model_name_override).strip():
        return str(model_name_override).strip()

    models = _get(llm_config, "models", None) or {}
    cfg_model = models.get(task) if isinstance(models, dict) else None
    if cfg_model:
        return str(cfg_model)

    env_model = os.environ.get("GEMINI_MODEL")
    if env_model:
        return env_model

    return DEFAULT_TASK_MODELS.get(task, DEFAULT_TASK_MODELS["question_generation"])


def build_gemini_client(credentials_config: Any) -> Dict[str, Any]:
    """
    Build Gemini client context.

    No network calls are made here.
    """
    logger = get_logger(__name__)

    cfg = _resolve_gemini_config(credentials_config)

    api_key_env = _get(cfg, "api_key_env", None)
    if not api_key_env:
        raise ValueError("credentials_config.api_key_env is required")

    api_key = os.environ.get(str(api_key_env))
    if not api_key:
        raise EnvironmentError(f"Environment variable '{api_key_env}' not set for Gemini API key")

    logger.debug("Initializing Gemini client (key from %s)", api_key_env)

    client = genai.Client(api_key=api_key)

    return {
        "client": client,
        "api_key_env": str(api_key_env),
    }


__all__ = ["build_gemini_client", "get_model_name"]
