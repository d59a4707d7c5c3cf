"""
Backend selection.

The fidelity is chosen once, at construction; a tracker never switches
backends afterwards.
"""

from typing import Optional
import logging

from ..config import TrustConfig
from ..core.sketch import CountMinSketch, HashScheme
from .honest_peer import HonestPeer
from .light import LightHonestPeer
from .precise import PreciseHonestPeer

logger = logging.getLogger(__name__)


def build_sketch(config: TrustConfig) -> CountMinSketch:
    """
    Template sketch described by a configuration.

    Explicit width/depth take precedence over the statistical bounds.
    """
    if config.explicit_dimensions:
        return CountMinSketch(
            config.width,
            config.depth,
            config.min_value,
            config.max_value,
            config.dtype,
            HashScheme(config.hash_scheme),
        )

    return CountMinSketch.from_bounds(
        config.error_bound,
        config.probability,
        config.max_entries,
        config.min_value,
        config.max_value,
        config.dtype,
        HashScheme(config.hash_scheme),
    )


def create_honest_peer(config: Optional[TrustConfig] = None) -> HonestPeer:
    """
    Create the trust tracker a configuration asks for.

    Args:
        config: Tracker configuration (defaults to an exact tracker)

    Returns:
        ``PreciseHonestPeer`` for ``exact``, ``LightHonestPeer`` for ``sketch``
    """
    config = config or TrustConfig()

    if config.fidelity == "sketch":
        tracker = LightHonestPeer(build_sketch(config))
    else:
        tracker = PreciseHonestPeer(config.min_value, config.max_value)

    logger.info(f"Created {config.fidelity} trust tracker")
    return tracker
