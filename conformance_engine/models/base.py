"""Base model configuration for declarative configuration structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model that rejects unknown keys in configuration files."""

    model_config = ConfigDict(frozen=True, extra="forbid")
