# config.py
# Runtime settings for safety-layered agents, read from the environment.
#
# A .env file in the working directory is honoured. Unset keys keep their
# defaults; malformed values raise pydantic's ValidationError.

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from safety_layers.agent import MUTATION_LIMIT

ENV_PREFIX = "SAFETY_LAYERS_"


class SafetyConfig(BaseModel):
    mutation_limit: int = Field(default=MUTATION_LIMIT, ge=0, description="Probe attempts per layer decision.")
    layers: int = Field(default=1, ge=0, description="Safety layers wrapped around the base agent.")
    max_steps: int = Field(default=32, ge=1, description="Upper bound on decide/act steps per episode.")

    @classmethod
    def from_env(cls) -> "SafetyConfig":
        load_dotenv()
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw.strip()
        return cls.model_validate(values)
