"""Model configuration per pipeline stage, swapped atomically on update."""

import threading
from dataclasses import dataclass, replace

from config.defaults import DEFAULT_MODELS, DEFAULT_PROVIDER_URL

# wire name -> ModelConfig attribute
MODEL_FIELDS = {
    "requirementAnalysis": "requirement_analysis",
    "uiSpecSynthesis": "ui_spec_synthesis",
    "coding": "coding",
    "evaluation": "evaluation",
    "validation": "validation",
}


class ConfigError(ValueError):
    """A configuration update was rejected; nothing was changed."""


@dataclass(frozen=True)
class ModelConfig:
    requirement_analysis: str = DEFAULT_MODELS["requirementAnalysis"]
    ui_spec_synthesis: str = DEFAULT_MODELS["uiSpecSynthesis"]
    coding: str = DEFAULT_MODELS["coding"]
    evaluation: str = DEFAULT_MODELS["evaluation"]
    validation: str = DEFAULT_MODELS["validation"]
    provider_url: str = DEFAULT_PROVIDER_URL

    def to_dict(self):
        return {
            "models": {wire: getattr(self, attr) for wire, attr in MODEL_FIELDS.items()},
            "providerUrl": self.provider_url,
        }

    def merged(self, partial):
        """Return a copy with `partial` applied, or raise ConfigError.

        Accepts {"models": {...}, "providerUrl": ...} with any subset of
        keys. Every value must be a non-empty string.
        """
        if not isinstance(partial, dict):
            raise ConfigError("Configuration must be an object")
        unknown = set(partial) - {"models", "providerUrl"}
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")

        changes = {}
        models = partial.get("models", {})
        if not isinstance(models, dict):
            raise ConfigError("'models' must be an object")
        unknown = set(models) - set(MODEL_FIELDS)
        if unknown:
            raise ConfigError(f"Unknown model keys: {sorted(unknown)}")
        for wire, value in models.items():
            changes[MODEL_FIELDS[wire]] = _require_text(f"models.{wire}", value)
        if "providerUrl" in partial:
            changes["provider_url"] = _require_text("providerUrl", partial["providerUrl"])
        return replace(self, **changes)


def _require_text(name, value):
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{name}' must be a non-empty string")
    return value.strip()


class ConfigStore:
    """Holds the process-wide ModelConfig.

    Readers get an immutable snapshot; runs that already started keep the
    snapshot they were given.
    """

    def __init__(self, initial=None):
        self._lock = threading.Lock()
        self._config = initial or ModelConfig()

    def get(self) -> ModelConfig:
        with self._lock:
            return self._config

    def update(self, partial) -> ModelConfig:
        with self._lock:
            self._config = self._config.merged(partial)
            return self._config

    def reset(self) -> ModelConfig:
        with self._lock:
            self._config = ModelConfig()
            return self._config
