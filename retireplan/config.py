"""Process-level settings read from ``RETIREPLAN_*`` environment variables."""

from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field

from retireplan.core.constants import DEFAULT_MAX_AGE

ENV_PREFIX = "RETIREPLAN_"


class Settings(BaseModel):
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )
    log_level: str = "INFO"
    default_max_age: float = DEFAULT_MAX_AGE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment. Unset variables keep their defaults.

        RETIREPLAN_CORS_ORIGINS is a comma-separated list of origins.
        """
        environ = os.environ if environ is None else environ
        values = {}
        origins = environ.get(f"{ENV_PREFIX}CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [origin.strip() for origin in origins.split(",") if origin.strip()]
        level = environ.get(f"{ENV_PREFIX}LOG_LEVEL")
        if level:
            values["log_level"] = level.upper()
        max_age = environ.get(f"{ENV_PREFIX}DEFAULT_MAX_AGE")
        if max_age:
            values["default_max_age"] = max_age
        return cls.model_validate(values)
