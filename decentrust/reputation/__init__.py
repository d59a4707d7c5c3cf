"""
Peer Reputation and Trust Tracking

Exact and sketch-backed trackers behind one capability contract.
"""

from .honest_peer import HonestPeer
from .precise import PreciseHonestPeer, normalize_map
from .light import LightHonestPeer
from .bucketize import Bucketizer, RangeBucketizer, FixedWidthBucketizer, bucketize_pairs
from .factory import create_honest_peer, build_sketch

__all__ = [
    "HonestPeer",
    "PreciseHonestPeer",
    "LightHonestPeer",
    "normalize_map",
    "Bucketizer",
    "RangeBucketizer",
    "FixedWidthBucketizer",
    "bucketize_pairs",
    "create_honest_peer",
    "build_sketch",
]
