# tests/test_config.py

from pathlib import Path

import pytest
from pydantic import ValidationError

from recruit_ai.utils.config import (
    DEFAULT_FALLBACK_MODELS,
    DEFAULT_TASK_MODELS,
    CredentialsConfig,
    GenerationConfig,
    ParametersConfig,
    _load_yaml,
    load_credentials,
    load_parameters,
)


def _write(tmp_path: Path, name: str, content: str) -> Path:
    p = tmp_path / name
    p.write_text(content, encoding="utf-8")
    return p


def test_load_yaml_file_not_found(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        _load_yaml(tmp_path / "nope.yaml")


def test_load_yaml_root_not_mapping(tmp_path: Path):
    p = _write(tmp_path, "bad.yaml", "- a\n- b\n")
    with pytest.raises(ValueError) as e:
        _load_yaml(p)
    assert "yaml root must be a mapping" in str(e.value).lower()


def test_load_yaml_sanitizes_bad_whitespace(tmp_path: Path):
    content = "\ufeffa:\u00A0 1\n"
    p = _write(tmp_path, "ok.yaml", content)
    assert _load_yaml(p)["a"] == 1


def test_generation_config_defaults():
    cfg = GenerationConfig()
    assert cfg.max_retries == 3
    assert cfg.retry_delay_ms == 1000
    assert cfg.timeout_ms == 60000
    assert cfg.fallback_models == DEFAULT_FALLBACK_MODELS


@pytest.mark.parametrize(
    "data",
    [
        {"max_retries": -1},
        {"retry_delay_ms": 0},
        {"timeout_ms": 0},
        {"fallback_models": ["ok", "  "]},
        {"unknown_knob": 1},
    ],
)
def test_generation_config_rejects_invalid_values(data):
    with pytest.raises(ValidationError):
        GenerationConfig.model_validate(data)


def test_generation_config_accepts_camel_case_keys():
    cfg = GenerationConfig.model_validate(
        {"maxRetries": 1, "retryDelay": 50, "timeout": 500, "fallbackModels": ["B", "C"]}
    )
    assert (cfg.max_retries, cfg.retry_delay_ms, cfg.timeout_ms) == (1, 50, 500)
    assert cfg.fallback_models == ["B", "C"]


def test_generation_config_is_immutable_and_overrides_revalidate():
    cfg = GenerationConfig()
    with pytest.raises(ValidationError):
        cfg.max_retries = 5

    other = cfg.with_overrides(max_retries=0, timeout_ms=None)
    assert other.max_retries == 0
    assert other.timeout_ms == cfg.timeout_ms
    assert cfg.max_retries == 3

    assert cfg.with_overrides() is cfg

    with pytest.raises(ValidationError):
        cfg.with_overrides(retry_delay_ms=-5)


def test_load_parameters_full_file(tmp_path: Path):
    p = _write(
        tmp_path,
        "parameters.yaml",
        """
generation:
  max_retries: 2
  retry_delay_ms: 250
  timeout_ms: 5000
  fallback_models: [m-b, m-c]
llm:
  models:
    quiz_generation: my-quiz-model
  evaluation_seed: 7
logging:
  level: DEBUG
""",
    )
    params = load_parameters(p)

    assert isinstance(params, ParametersConfig)
    assert params.generation.max_retries == 2
    assert params.generation.fallback_models == ["m-b", "m-c"]
    assert params.llm.models["quiz_generation"] == "my-quiz-model"
    # tasks not named keep their defaults
    assert params.llm.models["evaluation"] == DEFAULT_TASK_MODELS["evaluation"]
    assert params.llm.evaluation_seed == 7
    assert params.logging.level == "DEBUG"


def test_load_parameters_empty_file_uses_defaults(tmp_path: Path):
    params = load_parameters(_write(tmp_path, "parameters.yaml", ""))
    assert params.generation == GenerationConfig()
    assert params.llm.generation_temperature == 0.7
    assert params.llm.evaluation_temperature == 0.0


def test_load_parameters_rejects_temperature_out_of_range(tmp_path: Path):
    p = _write(tmp_path, "parameters.yaml", "llm:\n  generation_temperature: 3.5\n")
    with pytest.raises(ValidationError):
        load_parameters(p)


def test_load_credentials(tmp_path: Path):
    p = _write(tmp_path, "credentials.yaml", "gemini:\n  api_key_env: MY_KEY\n")
    creds = load_credentials(p)
    assert isinstance(creds, CredentialsConfig)
    assert creds.gemini.api_key_env == "MY_KEY"


def test_shipped_config_files_load():
    root = Path(__file__).resolve().parents[1] / "configs"
    params = load_parameters(root / "parameters.yaml")
    creds = load_credentials(root / "credentials.yaml")

    assert params.generation.max_retries == 3
    assert creds.gemini.api_key_env == "GEMINI_API_KEY"
