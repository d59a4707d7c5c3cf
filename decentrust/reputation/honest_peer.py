"""
Honest Peer capability contract.

Both trust backends implement ``HonestPeer`` so staking or validator-election
code can stay fidelity-agnostic:

- ``PreciseHonestPeer``: exact per-key maps, memory grows with peer count
- ``LightHonestPeer``: four Count-Min Sketches, fixed memory

Local trust is what this node observed about a peer directly. Global trust
is what other peers vouch for, weighted by the voucher's normalized local
trust, so a peer this node barely trusts cannot move anyone's global score.

Instances are not thread-safe; a host sharing one across threads must hold
a lock around every read-then-write sequence.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Hashable, Iterable, Iterator, Optional, Tuple
import logging

from ..core.numeric import TrustValue, Update
from .bucketize import Bucketizer

logger = logging.getLogger(__name__)


class HonestPeer(ABC):
    """
    Abstract trust tracker.

    Every raw mutation renormalizes the matching view before returning, so
    normalized trust is never stale.
    """

    fidelity: str = ""

    def __init__(self):
        self.stats = {
            "local_updates": 0,
            "global_updates": 0,
            "unweighted_vouches": 0,
        }

    # ------------------------------------------------------------------
    # Local trust
    # ------------------------------------------------------------------

    @abstractmethod
    def init_local(self, key: Hashable, value: TrustValue):
        """Record the initial local trust of a newly discovered peer."""

    @abstractmethod
    def update_local(
        self,
        key: Hashable,
        delta: TrustValue,
        update: Update = Update.INCREMENT
    ):
        """Raise or lower a peer's local trust and renormalize."""

    @abstractmethod
    def get_raw_local(self, key: Hashable) -> Optional[TrustValue]:
        """Raw local trust of a peer."""

    @abstractmethod
    def get_normalized_local(self, key: Hashable) -> Optional[TrustValue]:
        """Share of total local trust held by a peer."""

    # ------------------------------------------------------------------
    # Global trust
    # ------------------------------------------------------------------

    @abstractmethod
    def init_global(self, sender: Hashable, key: Hashable, value: TrustValue):
        """Record initial global trust for ``key`` as vouched by ``sender``."""

    @abstractmethod
    def update_global(
        self,
        sender: Hashable,
        key: Hashable,
        delta: TrustValue,
        update: Update = Update.INCREMENT
    ):
        """Apply ``sender``'s weighted vouch to ``key`` and renormalize."""

    @abstractmethod
    def get_raw_global(self, key: Hashable) -> Optional[TrustValue]:
        """Raw global trust of a peer."""

    @abstractmethod
    def get_normalized_global(self, key: Hashable) -> Optional[TrustValue]:
        """Share of total global trust held by a peer."""

    # ------------------------------------------------------------------
    # Bulk snapshots (always copies)
    # ------------------------------------------------------------------

    @abstractmethod
    def get_raw_local_map(self) -> Any:
        ...

    @abstractmethod
    def get_normalized_local_map(self) -> Any:
        ...

    @abstractmethod
    def get_raw_global_map(self) -> Any:
        ...

    @abstractmethod
    def get_normalized_global_map(self) -> Any:
        ...

    # ------------------------------------------------------------------
    # Normalization and cardinality
    # ------------------------------------------------------------------

    @abstractmethod
    def normalize_local(self):
        """Recompute normalized local trust from raw local trust."""

    @abstractmethod
    def normalize_global(self):
        """Recompute normalized global trust from raw global trust."""

    @abstractmethod
    def local_raw_len(self) -> int:
        ...

    @abstractmethod
    def local_normalized_len(self) -> int:
        ...

    @abstractmethod
    def global_raw_len(self) -> int:
        ...

    @abstractmethod
    def global_normalized_len(self) -> int:
        ...

    # ------------------------------------------------------------------
    # Bucketization
    # ------------------------------------------------------------------

    @abstractmethod
    def bucketize_local(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        """Bucket index of each peer's raw local trust."""

    @abstractmethod
    def bucketize_normalized_local(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        """Bucket index of each peer's normalized local trust."""

    @abstractmethod
    def bucketize_global(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        """Bucket index of each peer's raw global trust."""

    @abstractmethod
    def bucketize_normalized_global(
        self,
        bucketizer: Bucketizer,
        keys: Optional[Iterable[Hashable]] = None
    ) -> Iterator[Tuple[Hashable, int]]:
        """Bucket index of each peer's normalized global trust."""

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def sender_weight(self, sender: Hashable) -> TrustValue:
        """
        Weight applied to a vouch from ``sender``.

        This is the sender's current normalized local trust, or zero when
        this node has never observed the sender.

        Args:
            sender: Peer reporting the vouch

        Returns:
            Weight in [0, 1]
        """
        weight = self.get_normalized_local(sender)
        if not weight:
            self.stats["unweighted_vouches"] += 1
            logger.warning(
                f"Vouch from {str(sender)[:16]} carries no weight "
                f"(no local trust recorded)"
            )
            return 0.0
        return weight

    def get_peer_summary(self, key: Hashable) -> Dict[str, Any]:
        """Raw and normalized trust of a single peer."""
        return {
            "peer_id": key,
            "fidelity": self.fidelity,
            "raw_local": self.get_raw_local(key),
            "normalized_local": self.get_normalized_local(key),
            "raw_global": self.get_raw_global(key),
            "normalized_global": self.get_normalized_global(key),
        }

    def get_stats(self) -> Dict[str, Any]:
        """Update counters and cardinality signals."""
        return {
            **self.stats,
            "fidelity": self.fidelity,
            "local_peers": self.local_raw_len(),
            "global_peers": self.global_raw_len(),
        }
