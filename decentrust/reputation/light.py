"""
Bounded-memory trust tracking.

Four identically shaped Count-Min Sketches hold raw local, raw global,
normalized local and normalized global trust. Memory is O(width * depth)
whatever the number of peers, and normalization is a matrix-level pass of
the same cost.

Differences from the exact tracker that callers must be aware of:
- Unknown peers cannot be detected: every point query returns an estimate,
  possibly 0.0, never ``None``.
- Initialization adds to whatever the sketch already holds for a peer.
- Lengths are rough cardinality signals, not exact counts.
- Peers cannot be enumerated, so bucketization needs explicit keys.
"""

from typing import Hashable, Iterable, Iterator, Optional, Tuple
import logging

import numpy as np

from ..core.numeric import (
    DEFAULT_DTYPE,
    FLOAT_MAX,
    TrustValue,
    Update,
    validate_delta,
    validate_update,
)
from ..core.sketch import CountMinSketch, HashScheme
from ..exceptions import UnsupportedOperationError
from .bucketize import Bucketizer, bucketize_pairs
from .honest_peer import HonestPeer

logger = logging.getLogger(__name__)


class LightHonestPeer(HonestPeer):
    """
    Sketch-backed trust tracker.

    Example:
        >>> hp = LightHonestPeer.from_bounds(10.0, 0.0001, 3000.0)
        >>> hp.update_local("node_1", 50.0)
        >>> 50.0 <= hp.get_raw_local("node_1") <= 60.0
        True
    """

    fidelity = "sketch"

    def __init__(self, sketch: Optional[CountMinSketch] = None):
        """
        Initialize from a template sketch.

        Four empty sketches are created in its image; the template itself
        is never shared or mutated.

        Args:
            sketch: Template fixing width, depth, bounds and hashing
                (a default 3000 x 10 sketch if omitted)
        """
        super().__init__()
        template = sketch if sketch is not None else CountMinSketch.default()

        self.local_trust = template.empty_like()
        self.global_trust = template.empty_like()
        self.normalized_local_trust = template.empty_like(dtype=np.float64)
        self.normalized_global_trust = template.empty_like(dtype=np.float64)

        self.normalize_local()
        self.normalize_global()

        logger.info(
            f"Initialized sketch trust tracker "
            f"({template.depth}x{template.width}, "
            f"{4 * template.width * template.depth} counters)"
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
    ) -> "LightHonestPeer":
        """
        Create a tracker whose sketches are sized from statistical bounds.

        Args:
            error_bound: Tolerated additive overestimation
            probability: Tolerated overestimation probability, in (0, 1)
            max_entries: Expected total trust mass
            min_value: Floor of every sketch cell
            max_value: Ceiling of every sketch cell
            dtype: Raw counter dtype
            hash_scheme: Row projection scheme
        """
        return cls(CountMinSketch.from_bounds(
            error_bound,
            probability,
            max_entries,
            min_value,
            max_value,
            dtype,
            hash_scheme,
        ))

    @classmethod
    def with_dimensions(
        cls,
        width: int,
        depth: int,
        min_value: TrustValue = 0.0,
        max_value: TrustValue = FLOAT_MAX,
        dtype=DEFAULT_DTYPE,
        hash_scheme: HashScheme = HashScheme.SEEDED
    ) -> "LightHonestPeer":
        """Create a tracker with explicit sketch dimensions."""
        return cls(CountMinSketch(width, depth, min_value, max_value, dtype, hash_scheme))

    def get_width(self) -> int:
        return self.local_trust.get_width()

    def get_depth(self) -> int:
        return self.local_trust.get_depth()

    # ------------------------------------------------------------------
    # Local trust
    # ------------------------------------------------------------------

    def init_local(self, key: Hashable, value: TrustValue):
        """Add initial local trust for a newly discovered peer."""
        self.local_trust.increment(key, value)
        self.normalize_local()

    def update_local(
        self,
        key: Hashable,
        delta: TrustValue,
        update: Update = Update.INCREMENT
    ):
        """
        Raise or lower a peer's local trust.

        Decrements floor each sketch cell at the sketch minimum.

        Args:
            key: Peer identifier
            delta: Non-negative amount
            update: Direction of the change
        """
        update = validate_update(update)
        self.local_trust.update(key, delta, update)
        self.stats["local_updates"] += 1
        logger.debug(f"Local {update.value} of {delta} for {str(key)[:16]}")
        self.normalize_local()

    def get_raw_local(self, key: Hashable) -> TrustValue:
        return self.local_trust.estimate(key)

    def get_normalized_local(self, key: Hashable) -> float:
        return self.normalized_local_trust.estimate(key)

    # ------------------------------------------------------------------
    # Global trust
    # ------------------------------------------------------------------

    def init_global(self, sender: Hashable, key: Hashable, value: TrustValue):
        """Add initial global trust for ``key``, weighted by ``sender``."""
        validate_delta(value)
        weighted = value * self.sender_weight(sender)
        self.global_trust.increment(key, weighted)
        self.normalize_global()

    def update_global(
        self,
        sender: Hashable,
        key: Hashable,
        delta: TrustValue,
        update: Update = Update.INCREMENT
    ):
        """
        Apply a vouch from ``sender`` to the global trust of ``key``.

        Args:
            sender: Peer reporting the vouch
            key: Peer being vouched for
            delta: Non-negative amount before weighting
            update: Direction of the change
        """
        validate_delta(delta)
        update = validate_update(update)
        weighted = delta * self.sender_weight(sender)
        self.global_trust.update(key, weighted, update)
        self.stats["global_updates"] += 1
        logger.debug(
            f"Global {update.value} of {weighted} for {str(key)[:16]} "
            f"from {str(sender)[:16]}"
        )
        self.normalize_global()

    def get_raw_global(self, key: Hashable) -> TrustValue:
        return self.global_trust.estimate(key)

    def get_normalized_global(self, key: Hashable) -> float:
        return self.normalized_global_trust.estimate(key)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def get_raw_local_map(self) -> CountMinSketch:
        return self.local_trust.copy()

    def get_normalized_local_map(self) -> CountMinSketch:
        return self.normalized_local_trust.copy()

    def get_raw_global_map(self) -> CountMinSketch:
        return self.global_trust.copy()

    def get_normalized_global_map(self) -> CountMinSketch:
        return self.normalized_global_trust.copy()

    # ------------------------------------------------------------------
    # Normalization and cardinality
    # ------------------------------------------------------------------

    def normalize_local(self):
        self.normalized_local_trust.matrix = self.local_trust.normalize_estimates()

    def normalize_global(self):
        self.normalized_global_trust.matrix = self.global_trust.normalize_estimates()

    def local_raw_len(self) -> int:
        return self.local_trust.get_estimate_length()

    def local_normalized_len(self) -> int:
        return self.normalized_local_trust.get_estimate_length()

    def global_raw_len(self) -> int:
        return self.global_trust.get_estimate_length()

    def global_normalized_len(self) -> int:
        return self.normalized_global_trust.get_estimate_length()

    # ------------------------------------------------------------------
    # Bucketization
    # ------------------------------------------------------------------

    @staticmethod
    def _pairs(
        sketch: CountMinSketch,
        keys: Optional[Iterable[Hashable]]
    ) -> Iterator[Tuple[Hashable, TrustValue]]:
        if keys is None:
            raise UnsupportedOperationError(
                "A sketch cannot enumerate its peers; pass the keys to bucketize"
            )
        return ((key, sketch.estimate(key)) for key in keys)

    def bucketize_local(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        """
        Bucket the raw local estimate of each given peer.

        Args:
            bucketizer: Tier policy
            keys: Peers to bucketize (required)

        Returns:
            Iterator of (peer, bucket index), in the order of ``keys``

        Raises:
            UnsupportedOperationError: If ``keys`` is omitted
        """
        return bucketize_pairs(self._pairs(self.local_trust, keys), bucketizer)

    def bucketize_normalized_local(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        return bucketize_pairs(self._pairs(self.normalized_local_trust, keys), bucketizer)

    def bucketize_global(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        return bucketize_pairs(self._pairs(self.global_trust, keys), bucketizer)

    def bucketize_normalized_global(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        return bucketize_pairs(self._pairs(self.normalized_global_trust, keys), bucketizer)

    def memory_bytes(self) -> int:
        """Memory held by all four sketch matrices."""
        return sum(
            sketch.memory_bytes()
            for sketch in (
                self.local_trust,
                self.global_trust,
                self.normalized_local_trust,
                self.normalized_global_trust,
            )
        )
