"""
Exact trust tracking.

Keeps raw and normalized local/global trust in plain dictionaries. Memory
grows with the number of peers observed, in exchange for exact values and
``None`` answers for peers never seen.

Normalization: normalized[k] = raw[k] / sum(raw.values()). When the total is
zero every normalized entry is 0.0.
"""

import math
from typing import Dict, Hashable, Iterable, Iterator, Optional, Tuple
import logging

from ..core.numeric import (
    FLOAT_MAX,
    TrustValue,
    Update,
    ValueBounds,
    apply_update,
    validate_delta,
    validate_update,
)
from .bucketize import Bucketizer, bucketize_pairs
from .honest_peer import HonestPeer

logger = logging.getLogger(__name__)


def normalize_map(raw: Dict[Hashable, TrustValue]) -> Dict[Hashable, float]:
    """
    Proportional share of each entry in ``raw``.

    Args:
        raw: Peer -> raw trust

    Returns:
        New dict, peer -> share of the total (all 0.0 if the total is zero)
    """
    total = math.fsum(raw.values())
    if total == 0:
        return {key: 0.0 for key in raw}
    return {key: value / total for key, value in raw.items()}


class PreciseHonestPeer(HonestPeer):
    """
    Exact map-backed trust tracker.

    Example:
        >>> hp = PreciseHonestPeer()
        >>> hp.update_local("node_1", 10.0)
        >>> hp.update_local("node_1", 5.0, Update.DECREMENT)
        >>> hp.get_raw_local("node_1")
        5.0
    """

    fidelity = "exact"

    def __init__(
        self,
        min_value: TrustValue = 0.0,
        max_value: TrustValue = FLOAT_MAX
    ):
        """
        Initialize an empty tracker.

        Args:
            min_value: Floor applied to every raw trust value
            max_value: Ceiling applied to every raw trust value
        """
        super().__init__()
        self.bounds = ValueBounds(min=float(min_value), max=float(max_value))

        self.local_trust: Dict[Hashable, TrustValue] = {}
        self.global_trust: Dict[Hashable, TrustValue] = {}
        self.normalized_local_trust: Dict[Hashable, float] = {}
        self.normalized_global_trust: Dict[Hashable, float] = {}

        logger.info("Initialized exact trust tracker")

    # ------------------------------------------------------------------
    # Local trust
    # ------------------------------------------------------------------

    def init_local(self, key: Hashable, value: TrustValue):
        """
        Set the initial local trust of a peer.

        Re-initializing a known peer overwrites its raw value.

        Args:
            key: Peer identifier
            value: Initial trust (non-negative)
        """
        validate_delta(value)
        if key in self.local_trust:
            logger.warning(f"Re-initializing local trust of known peer {str(key)[:16]}")

        self.local_trust[key] = self.bounds.clamp(value)
        self.normalize_local()

    def update_local(
        self,
        key: Hashable,
        delta: TrustValue,
        update: Update = Update.INCREMENT
    ):
        """
        Raise or lower a peer's local trust.

        Unknown peers start from zero.

        Args:
            key: Peer identifier
            delta: Non-negative amount
            update: Direction of the change
        """
        validate_delta(delta)
        update = validate_update(update)
        current = self.local_trust.get(key, 0.0)
        self.local_trust[key] = apply_update(current, delta, update, self.bounds)
        self.stats["local_updates"] += 1

        logger.debug(
            f"Local {update.value} for {str(key)[:16]}: "
            f"{current} -> {self.local_trust[key]}"
        )

        self.normalize_local()

    def get_raw_local(self, key: Hashable) -> Optional[TrustValue]:
        return self.local_trust.get(key)

    def get_normalized_local(self, key: Hashable) -> Optional[float]:
        return self.normalized_local_trust.get(key)

    # ------------------------------------------------------------------
    # Global trust
    # ------------------------------------------------------------------

    def init_global(self, sender: Hashable, key: Hashable, value: TrustValue):
        """
        Set the initial global trust of ``key``, weighted by ``sender``.

        Args:
            sender: Peer vouching for ``key``
            key: Peer being vouched for
            value: Initial trust before weighting (non-negative)
        """
        validate_delta(value)
        if key in self.global_trust:
            logger.warning(f"Re-initializing global trust of known peer {str(key)[:16]}")

        weighted = value * self.sender_weight(sender)
        self.global_trust[key] = self.bounds.clamp(weighted)
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

        The delta is scaled by the sender's normalized local trust before
        it is applied.

        Args:
            sender: Peer reporting the vouch
            key: Peer being vouched for
            delta: Non-negative amount before weighting
            update: Direction of the change
        """
        validate_delta(delta)
        update = validate_update(update)
        weighted = delta * self.sender_weight(sender)
        current = self.global_trust.get(key, 0.0)
        self.global_trust[key] = apply_update(current, weighted, update, self.bounds)
        self.stats["global_updates"] += 1

        logger.debug(
            f"Global {update.value} for {str(key)[:16]} from {str(sender)[:16]}: "
            f"{current} -> {self.global_trust[key]} (weighted delta={weighted})"
        )

        self.normalize_global()

    def get_raw_global(self, key: Hashable) -> Optional[TrustValue]:
        return self.global_trust.get(key)

    def get_normalized_global(self, key: Hashable) -> Optional[float]:
        return self.normalized_global_trust.get(key)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def get_raw_local_map(self) -> Dict[Hashable, TrustValue]:
        return dict(self.local_trust)

    def get_normalized_local_map(self) -> Dict[Hashable, float]:
        return dict(self.normalized_local_trust)

    def get_raw_global_map(self) -> Dict[Hashable, TrustValue]:
        return dict(self.global_trust)

    def get_normalized_global_map(self) -> Dict[Hashable, float]:
        return dict(self.normalized_global_trust)

    # ------------------------------------------------------------------
    # Normalization and cardinality
    # ------------------------------------------------------------------

    def normalize_local(self):
        self.normalized_local_trust = normalize_map(self.local_trust)

    def normalize_global(self):
        self.normalized_global_trust = normalize_map(self.global_trust)

    def local_raw_len(self) -> int:
        return len(self.local_trust)

    def local_normalized_len(self) -> int:
        return len(self.normalized_local_trust)

    def global_raw_len(self) -> int:
        return len(self.global_trust)

    def global_normalized_len(self) -> int:
        return len(self.normalized_global_trust)

    # ------------------------------------------------------------------
    # Bucketization
    # ------------------------------------------------------------------

    @staticmethod
    def _pairs(
        source: Dict[Hashable, TrustValue],
        keys: Optional[Iterable[Hashable]]
    ) -> Iterator[Tuple[Hashable, TrustValue]]:
        if keys is None:
            return iter(list(source.items()))
        return ((key, source.get(key, 0.0)) for key in keys)

    def bucketize_local(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        """
        Bucket raw local trust.

        Args:
            bucketizer: Tier policy
            keys: Peers to bucketize (all tracked peers if omitted);
                unseen peers bucketize a zero estimate

        Returns:
            Iterator of (peer, bucket index)
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

    def get_best_peers(self, count: int = 20) -> list:
        """
        Peers with the highest normalized global trust.

        Args:
            count: Number of peers to return

        Returns:
            List of (peer, normalized global trust), highest first
        """
        ranked = sorted(
            self.normalized_global_trust.items(),
            key=lambda item: item[1],
            reverse=True
        )
        return ranked[:count]
