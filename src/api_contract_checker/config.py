"""Runtime settings.

Defaults can be overridden through ``API_CONTRACT_*`` environment variables
or, from the CLI, through command options.
"""

import os
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "API_CONTRACT_"


class MatchMode(str, Enum):
    """How a path template is anchored against the request path."""

    SUFFIX = "suffix"  # tolerate an unknown base-path prefix
    EXACT = "exact"


class TieBreak(str, Enum):
    """Which template wins when several match the same URL."""

    FIRST = "first"  # first declared in the document
    LONGEST = "longest"  # the one covering the most of the request path


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    match_mode: MatchMode = MatchMode.SUFFIX
    tie_break: TieBreak = TieBreak.FIRST
    max_ref_depth: int = Field(20, ge=0)
    max_traffic_entries: int = Field(1000, ge=1)

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from the environment; non-None overrides win."""
        values = {}
        for field_name in cls.model_fields:
            raw = os.getenv(ENV_PREFIX + field_name.upper())
            if raw:
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
