"""
Count-Min Sketch for bounded-memory trust tracking.

A depth x width matrix of counters. Each key is projected to one column per
row; increments add to every projected cell and the estimate is the minimum
of those cells. Collisions can only inflate a cell, so for non-negative
contributions the estimate never falls below the true accumulated value.

Sizing (Cormode & Muthukrishnan):
- width = ceil(e / (error_bound / max_entries))
- depth = ceil(ln(1 / probability))

Decrements are floored per cell at the sketch minimum. Clamping only the
final estimate is not equivalent: a negative cell would corrupt the estimate
of every key colliding into it.

Integer counters round increments up and decrements down, and do their
arithmetic on Python ints so a saturating update never wraps around.
"""

import hashlib
import logging
import math
from enum import Enum
from typing import Hashable, Optional, Tuple

import numpy as np

from ..exceptions import ConfigurationError
from .numeric import (
    DEFAULT_DTYPE,
    FLOAT_MAX,
    TrustValue,
    Update,
    ValueBounds,
    validate_delta,
    validate_update,
)
from .sketch_iter import SketchCells

logger = logging.getLogger(__name__)


# Defaults of an unsized sketch
DEFAULT_WIDTH = 3000
DEFAULT_DEPTH = 10

_U64_MASK = (1 << 64) - 1


class HashScheme(Enum):
    """Row projection schemes."""

    # One BLAKE2b digest per row, salted with the row index
    SEEDED = "seeded"

    # One digest per key, offset by the row index: (hash(K) + i) mod width
    OFFSET = "offset"


def key_to_bytes(key: Hashable) -> bytes:
    """
    Serialize a peer key to stable, type-tagged bytes.

    Python's built-in ``hash`` is salted per process, so projections are
    computed over this encoding instead.

    Args:
        key: Peer identifier

    Returns:
        Bytes that are equal for equal keys across processes
    """
    if isinstance(key, (bytes, bytearray)):
        return b"b:" + bytes(key)
    if isinstance(key, str):
        return b"s:" + key.encode("utf-8")
    if isinstance(key, int) and not isinstance(key, bool):
        return b"i:" + str(key).encode("ascii")
    return f"{type(key).__qualname__}:{key!r}".encode("utf-8")


def calculate_width_and_depth(
    error_bound: float,
    probability: float,
    max_entries: float
) -> Tuple[int, int]:
    """
    Derive sketch dimensions from statistical parameters.

    Args:
        error_bound: Tolerated additive overestimation
        probability: Tolerated probability of exceeding the error bound,
            strictly between 0 and 1 (e.g., 0.0001)
        max_entries: Expected total mass tracked by the sketch

    Returns:
        (width, depth), both at least 1

    Raises:
        ConfigurationError: If any parameter is out of range
    """
    if not (error_bound > 0 and math.isfinite(error_bound)):
        raise ConfigurationError(f"error_bound must be a positive number, got {error_bound}")
    if not (0 < probability < 1):
        raise ConfigurationError(
            f"probability is an overestimation tolerance and must lie in (0, 1), "
            f"got {probability}"
        )
    if not (max_entries > 0 and math.isfinite(max_entries)):
        raise ConfigurationError(f"max_entries must be a positive number, got {max_entries}")

    width = max(1, math.ceil(math.e / (error_bound / max_entries)))
    depth = max(1, math.ceil(math.log(1.0 / probability)))

    return width, depth


class CountMinSketch:
    """
    Probabilistic trust counter matrix.

    Estimates may overestimate a key's accumulated value (with probability
    at most ``delta()`` by more than ``epsilon()`` of the total mass) but
    never underestimate it.

    Example:
        >>> cms = CountMinSketch.from_bounds(10.0, 0.0001, 3000.0)
        >>> cms.increment("node_1", 50.0)
        >>> 50.0 <= cms.estimate("node_1") <= 60.0
        True
    """

    def __init__(
        self,
        width: int,
        depth: int,
        min_value: TrustValue = 0.0,
        max_value: TrustValue = FLOAT_MAX,
        dtype=DEFAULT_DTYPE,
        hash_scheme: HashScheme = HashScheme.SEEDED
    ):
        """
        Create a zero-filled sketch.

        Args:
            width: Counters per row
            depth: Number of rows (hash projections)
            min_value: Floor every cell is clamped to
            max_value: Ceiling every cell is clamped to
            dtype: numpy dtype of the counters
            hash_scheme: Row projection scheme

        Raises:
            ConfigurationError: If width or depth is not a positive integer,
                or the bounds are inverted
        """
        for name, dim in (("width", width), ("depth", depth)):
            if isinstance(dim, bool) or not isinstance(dim, (int, np.integer)):
                raise ConfigurationError(f"{name} must be an integer, got {dim!r}")
            if dim < 1:
                raise ConfigurationError(f"{name} must be at least 1, got {dim}")

        self.width = int(width)
        self.depth = int(depth)
        self.bounds = ValueBounds(min=min_value, max=max_value)
        self.dtype = np.dtype(dtype)
        self._integral = bool(np.issubdtype(self.dtype, np.integer))

        # Cell bounds: the configured bounds narrowed to what the dtype holds
        cell_bounds = self.bounds.within(ValueBounds.for_dtype(self.dtype))
        if self._integral:
            self._cell_min = math.ceil(cell_bounds.min)
            self._cell_max = math.floor(cell_bounds.max)
        else:
            self._cell_min = cell_bounds.min
            self._cell_max = cell_bounds.max
        self.hash_scheme = HashScheme(hash_scheme)

        self._matrix = np.zeros((self.depth, self.width), dtype=self.dtype)
        self._rows = np.arange(self.depth)

        logger.debug(
            f"Initialized {self.depth}x{self.width} count-min sketch "
            f"({self.hash_scheme.value} hashing, {self.dtype})"
        )

    @classmethod
    def from_bounds(
        cls,
        error_bound: float,
        probability: float,
        max_entries: float,
        min_value: TrustValue = 0.0,
        max_value: TrustValue = FLOAT_MAX,
        dtype=DEFAULT_DTYPE,
        hash_scheme: HashScheme = HashScheme.SEEDED
    ) -> "CountMinSketch":
        """
        Create a sketch sized from an error bound, an overestimation
        probability and the expected total mass.

        Example:
            >>> cms = CountMinSketch.from_bounds(50.0, 0.0001, 3000.0)
            >>> (cms.get_width(), cms.get_depth())
            (164, 10)
        """
        width, depth = calculate_width_and_depth(error_bound, probability, max_entries)
        return cls(width, depth, min_value, max_value, dtype, hash_scheme)

    @classmethod
    def default(cls, dtype=DEFAULT_DTYPE) -> "CountMinSketch":
        """3000 x 10 sketch bounded by zero and the dtype's maximum."""
        return cls(
            DEFAULT_WIDTH,
            DEFAULT_DEPTH,
            min_value=0,
            max_value=ValueBounds.for_dtype(dtype).max,
            dtype=dtype,
        )

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def _columns(self, key: Hashable) -> np.ndarray:
        """Column index of ``key`` in every row."""
        data = key_to_bytes(key)

        if self.hash_scheme is HashScheme.OFFSET:
            base = int.from_bytes(
                hashlib.blake2b(data, digest_size=8).digest(), "little"
            )
            columns = [((base + i) & _U64_MASK) % self.width for i in range(self.depth)]
        else:
            columns = [
                int.from_bytes(
                    hashlib.blake2b(
                        data, digest_size=8, salt=i.to_bytes(16, "little")
                    ).digest(),
                    "little"
                ) % self.width
                for i in range(self.depth)
            ]

        return np.asarray(columns, dtype=np.intp)

    def project(self, key: Hashable, row: int) -> int:
        """Column of ``key`` in a single row."""
        if not 0 <= row < self.depth:
            raise IndexError(f"Row {row} out of range for depth {self.depth}")
        return int(self._columns(key)[row])

    # ------------------------------------------------------------------
    # Updates and estimates
    # ------------------------------------------------------------------

    def update(self, key: Hashable, value: TrustValue, update: Update):
        """Increment or decrement ``key`` by ``value``."""
        if validate_update(update) is Update.INCREMENT:
            self.increment(key, value)
        else:
            self.decrement(key, value)

    def increment(self, key: Hashable, value: TrustValue):
        """
        Add ``value`` to every projected cell of ``key``.

        Cells saturate at the sketch maximum. Integer sketches round a
        fractional ``value`` up, so estimates never fall below the true
        accumulated trust.

        Args:
            key: Peer identifier
            value: Non-negative amount to add
        """
        validate_delta(value)
        if self._integral:
            value = math.ceil(value)
        self._apply(key, value, Update.INCREMENT)

    def decrement(self, key: Hashable, value: TrustValue):
        """
        Subtract ``value`` from every projected cell of ``key``.

        Each cell is floored at the sketch minimum independently. Integer
        sketches round a fractional ``value`` down.

        Args:
            key: Peer identifier
            value: Non-negative amount to remove
        """
        validate_delta(value)
        if self._integral:
            value = math.floor(value)
        self._apply(key, value, Update.DECREMENT)

    def _apply(self, key: Hashable, value: TrustValue, update: Update):
        columns = self._columns(key)
        cells = self._matrix[self._rows, columns]
        if self._integral:
            # Python ints cannot wrap around before the clamp
            cells = cells.astype(object)
        else:
            cells = cells.astype(np.float64)

        with np.errstate(over="ignore"):
            if update is Update.INCREMENT:
                cells = cells + value
            else:
                cells = cells - value

        cells = np.minimum(np.maximum(cells, self._cell_min), self._cell_max)
        self._matrix[self._rows, columns] = cells

    def estimate(self, key: Hashable) -> TrustValue:
        """
        Minimum across the projected cells of ``key``.

        Keys never seen estimate to zero unless they collide in every row.
        """
        columns = self._columns(key)
        return self._matrix[self._rows, columns].min().item()

    def normalize_estimates(self) -> np.ndarray:
        """
        Divide every row by its own sum.

        The row sum stands in for the total mass tracked, since every key
        contributes to exactly one cell per row. Rows summing to zero
        normalize to all zeros.

        Returns:
            New float64 matrix of the same shape
        """
        matrix = self._matrix.astype(np.float64)
        totals = matrix.sum(axis=1, keepdims=True)
        normalized = np.zeros_like(matrix)
        np.divide(matrix, totals, out=normalized, where=totals != 0)
        return normalized

    def get_estimate_length(self) -> int:
        """
        Rough count of distinct tracked keys.

        Non-zero cells summed over all rows, divided (with truncation) by the
        depth. Collisions and decrements to zero both bias this downwards.
        """
        return int(np.count_nonzero(self._matrix)) // self.depth

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def matrix(self) -> np.ndarray:
        """Read-only view of the counter matrix; assign to replace it."""
        view = self._matrix.view()
        view.flags.writeable = False
        return view

    @matrix.setter
    def matrix(self, value: np.ndarray):
        value = np.asarray(value)
        if value.shape != self._matrix.shape:
            raise ConfigurationError(
                f"Matrix shape {value.shape} does not match sketch shape "
                f"{self._matrix.shape}"
            )
        if self._integral and not np.issubdtype(value.dtype, np.integer):
            self._matrix = self._ceil_to_cells(value)
        else:
            self._matrix = value.astype(self.dtype, copy=True)

    def _ceil_to_cells(self, value: np.ndarray) -> np.ndarray:
        """Round fractional cells up and saturate them at the cell bounds."""
        ceiled = np.ceil(value.astype(np.float64))
        over = ceiled >= self._cell_max
        under = ceiled <= self._cell_min
        with np.errstate(invalid="ignore"):
            cells = ceiled.astype(self.dtype)
        cells[over] = self._cell_max
        cells[under] = self._cell_min
        return cells

    def get_width(self) -> int:
        return self.width

    def get_depth(self) -> int:
        return self.depth

    def get_min(self) -> TrustValue:
        return self.bounds.min

    def get_max(self) -> TrustValue:
        return self.bounds.max

    def epsilon(self) -> float:
        """Overestimate factor: error <= epsilon * total mass w.p. >= 1 - delta."""
        return math.e / self.width

    def delta(self) -> float:
        """Probability that an estimate exceeds the epsilon bound."""
        return math.exp(-self.depth)

    def memory_bytes(self) -> int:
        """Memory held by the counter matrix."""
        return self._matrix.nbytes

    def total(self) -> float:
        """Mass of the first row, the sketch's best proxy for total trust."""
        return self._matrix[0].sum().item()

    # ------------------------------------------------------------------
    # Copies and traversal
    # ------------------------------------------------------------------

    def empty_like(self, dtype: Optional[np.dtype] = None) -> "CountMinSketch":
        """
        Zero-filled sketch with the same shape, bounds and hashing.

        Args:
            dtype: Counter dtype of the new sketch (defaults to this sketch's)
        """
        return CountMinSketch(
            self.width,
            self.depth,
            self.bounds.min,
            self.bounds.max,
            dtype if dtype is not None else self.dtype,
            self.hash_scheme,
        )

    def copy(self, dtype: Optional[np.dtype] = None) -> "CountMinSketch":
        """Independent sketch holding the same counters."""
        clone = self.empty_like(dtype)
        clone.matrix = self._matrix
        return clone

    def __copy__(self) -> "CountMinSketch":
        return self.copy()

    def __deepcopy__(self, memo) -> "CountMinSketch":
        return self.copy()

    def cells(self) -> SketchCells:
        """Read-only row-major view over the live matrix."""
        return SketchCells(self._matrix)

    def into_cells(self) -> SketchCells:
        """Row-major view over a private snapshot of the matrix."""
        return SketchCells(self._matrix, owned=True)

    def __iter__(self):
        return iter(self.cells())

    def same_shape(self, other: "CountMinSketch") -> bool:
        """True if both sketches project keys identically."""
        return (
            self.width == other.width
            and self.depth == other.depth
            and self.hash_scheme is other.hash_scheme
        )

    def __repr__(self) -> str:
        return (
            f"CountMinSketch(width={self.width}, depth={self.depth}, "
            f"min={self.bounds.min}, max={self.bounds.max}, "
            f"hash={self.hash_scheme.value})"
        )
