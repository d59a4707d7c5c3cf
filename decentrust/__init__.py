"""
Decentrust - Peer Reputation for P2P Networks

Tracks how much this node trusts each peer, either exactly or within a fixed
memory budget, behind a single interface.

Quick Start:
    >>> from decentrust import PreciseHonestPeer, Update
    >>>
    >>> hp = PreciseHonestPeer()
    >>> hp.init_local("node_1", 5.0)
    >>> hp.init_local("node_2", 5.0)
    >>>
    >>> # node_1 vouches for node_2; the vouch is scaled by node_1's share
    >>> hp.update_global("node_1", "node_2", 10.0, Update.INCREMENT)
    >>> hp.get_raw_global("node_2")
    5.0

Features:
    - Count-Min Sketch with per-cell decrement floor
    - Exact (map) and bounded-memory (sketch) trust backends
    - Sender-weighted global trust propagation
    - Bucketization into stake tiers
"""

from .core.numeric import TrustValue, Update, ValueBounds
from .core.sketch import CountMinSketch, HashScheme
from .core.sketch_iter import SketchCells
from .reputation import (
    HonestPeer,
    PreciseHonestPeer,
    LightHonestPeer,
    Bucketizer,
    RangeBucketizer,
    FixedWidthBucketizer,
    create_honest_peer,
)
from .config import TrustConfig
from .exceptions import (
    DecentrustError,
    ConfigurationError,
    NumericBoundError,
    UnsupportedOperationError,
)

__version__ = "0.1.0"

__all__ = [
    "TrustValue",
    "Update",
    "ValueBounds",
    "CountMinSketch",
    "HashScheme",
    "SketchCells",
    "HonestPeer",
    "PreciseHonestPeer",
    "LightHonestPeer",
    "Bucketizer",
    "RangeBucketizer",
    "FixedWidthBucketizer",
    "create_honest_peer",
    "TrustConfig",
    "DecentrustError",
    "ConfigurationError",
    "NumericBoundError",
    "UnsupportedOperationError",
]
