# hairmatch/settings.py
"""Tunables for the classifier and the service, with env overrides."""

import os
from dataclasses import dataclass

from .exceptions import ConfigurationError


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClassifierConfig:
    """
    Calibration constants for the measurement stage.

    The defaults assume landmark coordinates in source-image pixels; they were
    tuned empirically and should be kept as-is unless the coordinate scale
    changes.
    """

    forehead_top_offset: float = 20.0   # px above the highest eye point
    forehead_eye_factor: float = 1.6    # eye span -> forehead width estimate
    forehead_face_factor: float = 0.85  # face width -> forehead width estimate
    upper_face_factor: float = 0.9      # face width -> temple width estimate
    trace: bool = True                  # DEBUG log of measurements and rule hits

    def __post_init__(self):
        if self.forehead_top_offset < 0:
            raise ConfigurationError("forehead_top_offset must be >= 0")
        for name in ("forehead_eye_factor", "forehead_face_factor", "upper_face_factor"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be > 0")

    @classmethod
    def from_env(cls) -> "ClassifierConfig":
        return cls(
            forehead_top_offset=_env_float("HAIRMATCH_FOREHEAD_OFFSET", 20.0),
            forehead_eye_factor=_env_float("HAIRMATCH_FOREHEAD_EYE_FACTOR", 1.6),
            forehead_face_factor=_env_float("HAIRMATCH_FOREHEAD_FACE_FACTOR", 0.85),
            upper_face_factor=_env_float("HAIRMATCH_UPPER_FACE_FACTOR", 0.9),
            trace=_env_bool("HAIRMATCH_TRACE", True),
        )


@dataclass(frozen=True)
class ServiceSettings:
    """HTTP service and detector settings."""

    min_detection_confidence: float = 0.5
    max_num_faces: int = 1
    model_load_attempts: int = 3
    log_level: str = "INFO"
    debug_payload: bool = True

    def __post_init__(self):
        if not 0.0 <= self.min_detection_confidence <= 1.0:
            raise ConfigurationError("min_detection_confidence must be between 0 and 1")
        if self.max_num_faces < 1:
            raise ConfigurationError("max_num_faces must be >= 1")
        if self.model_load_attempts < 1:
            raise ConfigurationError("model_load_attempts must be >= 1")

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        return cls(
            min_detection_confidence=_env_float("HAIRMATCH_MIN_DETECTION_CONFIDENCE", 0.5),
            max_num_faces=_env_int("HAIRMATCH_MAX_NUM_FACES", 1),
            model_load_attempts=_env_int("HAIRMATCH_MODEL_LOAD_ATTEMPTS", 3),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            debug_payload=_env_bool("HAIRMATCH_DEBUG_PAYLOAD", True),
        )
