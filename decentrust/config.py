"""
Decentrust configuration.

Construction parameters for a trust tracker. Values come from the caller or
from ``DECENTRUST_*`` environment variables; this module never reads files.
"""

import os
from typing import Literal, Optional

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from .core.numeric import FLOAT_MAX


class TrustConfig(BaseModel):
    """Trust tracker configuration."""

    fidelity: Literal["exact", "sketch"] = Field(
        default="exact",
        description="Backend: exact per-peer maps or bounded-memory sketches"
    )

    # Sketch dimensions (explicit dimensions win over statistical bounds)
    width: Optional[int] = Field(default=None, ge=1, description="Counters per sketch row")
    depth: Optional[int] = Field(default=None, ge=1, description="Sketch rows")

    # Statistical sizing
    error_bound: float = Field(
        default=10.0,
        gt=0,
        description="Tolerated additive overestimation of a sketch estimate"
    )
    probability: float = Field(
        default=0.0001,
        gt=0,
        lt=1,
        description="Tolerated probability of exceeding the error bound"
    )
    max_entries: float = Field(
        default=3000.0,
        gt=0,
        description="Expected total trust mass tracked"
    )

    # Value bounds
    min_value: float = Field(default=0.0, description="Floor of every trust value")
    max_value: float = Field(default=FLOAT_MAX, description="Ceiling of every trust value")

    hash_scheme: Literal["seeded", "offset"] = Field(
        default="seeded",
        description="Row projection: per-row salted hash or row-offset hash"
    )
    dtype: str = Field(default="float64", description="numpy dtype of raw sketch counters")

    @field_validator("dtype")
    @classmethod
    def check_dtype(cls, value: str) -> str:
        try:
            dtype = np.dtype(value)
        except TypeError as e:
            raise ValueError(f"Unknown dtype: {value}") from e
        if not (np.issubdtype(dtype, np.integer) or np.issubdtype(dtype, np.floating)):
            raise ValueError(f"Sketch counters must be numeric, got {value}")
        return dtype.name

    @model_validator(mode="after")
    def check_consistency(self) -> "TrustConfig":
        if self.min_value > self.max_value:
            raise ValueError(
                f"min_value ({self.min_value}) exceeds max_value ({self.max_value})"
            )
        if (self.width is None) != (self.depth is None):
            raise ValueError("width and depth must be given together")
        return self

    @property
    def explicit_dimensions(self) -> bool:
        """True if the sketch is sized by width/depth rather than bounds."""
        return self.width is not None and self.depth is not None

    @classmethod
    def from_env(cls, prefix: str = "DECENTRUST_") -> "TrustConfig":
        """
        Build a configuration from environment variables.

        Unset variables keep their defaults. Recognized variables (with the
        default prefix): DECENTRUST_FIDELITY, DECENTRUST_WIDTH,
        DECENTRUST_DEPTH, DECENTRUST_ERROR_BOUND, DECENTRUST_PROBABILITY,
        DECENTRUST_MAX_ENTRIES, DECENTRUST_MIN_VALUE, DECENTRUST_MAX_VALUE,
        DECENTRUST_HASH_SCHEME, DECENTRUST_DTYPE.

        Args:
            prefix: Environment variable prefix

        Returns:
            Validated configuration
        """
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is not None and raw.strip() != "":
                values[name] = raw.strip().lower() if name in ("fidelity", "hash_scheme") else raw.strip()
        return cls(**values)
