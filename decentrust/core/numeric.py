"""
Numeric capability shared by the sketch and both trust backends.

A trust value is any real number (int, float or numpy scalar). Updates carry
a non-negative delta plus an explicit direction; results are clamped into the
owner's ``[min, max]`` bounds on both the increment and decrement paths.
"""

import math
import sys
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Union

import numpy as np

from ..exceptions import ConfigurationError, NumericBoundError

TrustValue = Union[int, float, np.integer, np.floating]

FLOAT_MAX = sys.float_info.max
DEFAULT_DTYPE = np.float64


class Update(Enum):
    """Direction of a trust update."""

    INCREMENT = "increment"
    DECREMENT = "decrement"


@dataclass(frozen=True)
class ValueBounds:
    """Inclusive bounds a trust value must stay within."""

    min: float = 0.0
    max: float = FLOAT_MAX

    def __post_init__(self):
        if math.isnan(self.min) or math.isnan(self.max):
            raise ConfigurationError("Value bounds must not be NaN")
        if self.min > self.max:
            raise ConfigurationError(
                f"Minimum bound {self.min} exceeds maximum bound {self.max}"
            )

    def clamp(self, value: TrustValue) -> TrustValue:
        """Clamp a value into ``[min, max]``."""
        if value < self.min:
            return type(value)(self.min)
        if value > self.max:
            return type(value)(self.max)
        return value

    @classmethod
    def for_dtype(cls, dtype) -> "ValueBounds":
        """
        Full representable range of a numpy dtype.

        Integer dtypes keep exact ``int`` bounds; ``float(iinfo.max)``
        rounds up past the largest representable value.
        """
        dtype = np.dtype(dtype)
        if np.issubdtype(dtype, np.integer):
            info = np.iinfo(dtype)
            return cls(min=int(info.min), max=int(info.max))
        info = np.finfo(dtype)
        return cls(min=float(info.min), max=float(info.max))

    def within(self, other: "ValueBounds") -> "ValueBounds":
        """Intersection of these bounds with ``other``."""
        return ValueBounds(min=max(self.min, other.min), max=min(self.max, other.max))


def validate_delta(delta: TrustValue) -> TrustValue:
    """
    Check that an update delta is a finite, non-negative real number.

    Args:
        delta: Amount to add or remove

    Returns:
        The delta, unchanged

    Raises:
        NumericBoundError: If the delta is not a real number, is NaN,
            infinite or negative
    """
    if isinstance(delta, bool) or not isinstance(delta, (Real, np.number)):
        raise NumericBoundError(f"Trust delta must be a real number, got {delta!r}")
    if math.isnan(delta) or math.isinf(delta):
        raise NumericBoundError(f"Trust delta must be finite, got {delta}")
    if delta < 0:
        raise NumericBoundError(
            f"Trust delta must be non-negative, got {delta} "
            f"(use Update.DECREMENT to lower trust)"
        )
    return delta


def validate_update(update) -> Update:
    """
    Resolve an update direction.

    Accepts an ``Update`` member or its value (``"increment"`` /
    ``"decrement"``).

    Raises:
        NumericBoundError: If ``update`` names no direction
    """
    if isinstance(update, Update):
        return update
    try:
        return Update(update)
    except ValueError as e:
        raise NumericBoundError(
            f"Update direction must be one of "
            f"{[u.value for u in Update]}, got {update!r}"
        ) from e


def apply_update(
    current: TrustValue,
    delta: TrustValue,
    update: Update,
    bounds: ValueBounds
) -> TrustValue:
    """
    Apply a directed delta to a single value and clamp the result.

    Args:
        current: Current value
        delta: Validated non-negative delta
        update: Increment or decrement
        bounds: Bounds to clamp the result into

    Returns:
        Updated, clamped value
    """
    if validate_update(update) is Update.INCREMENT:
        result = current + delta
    else:
        result = current - delta
    return bounds.clamp(result)
