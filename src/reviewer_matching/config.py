from __future__ import annotations

import os
from dataclasses import dataclass

from .models import Language

MAX_SELECTED_REVIEWERS = 45

# Reviews completed at which the experience component saturates.
EXPERIENCE_SATURATION = 20

REQUIRED_POOL_LANGUAGES = (Language.EN, Language.FR)

DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class MatchingWeights:
    expertise: int = 40
    language: int = 25
    availability: int = 25
    experience: int = 10

    def __post_init__(self) -> None:
        values = (self.expertise, self.language, self.availability, self.experience)
        if any(value < 0 for value in values):
            raise ValueError("Matching weights cannot be negative")
        if sum(values) != 100:
            raise ValueError(f"Matching weights must sum to 100, got {sum(values)}")


DEFAULT_WEIGHTS = MatchingWeights()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.") from exc


def weights_from_env() -> MatchingWeights:
    return MatchingWeights(
        expertise=_int_env("MATCH_WEIGHT_EXPERTISE", DEFAULT_WEIGHTS.expertise),
        language=_int_env("MATCH_WEIGHT_LANGUAGE", DEFAULT_WEIGHTS.language),
        availability=_int_env("MATCH_WEIGHT_AVAILABILITY", DEFAULT_WEIGHTS.availability),
        experience=_int_env("MATCH_WEIGHT_EXPERIENCE", DEFAULT_WEIGHTS.experience),
    )


def log_level_from_env() -> str:
    return os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
