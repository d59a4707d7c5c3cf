"""
Bucketizers: map a continuous trust estimate to a discrete tier index.

The trust backends only rely on the ``Bucketizer`` contract,
``bucketize(value) -> int``. It must be deterministic and total over the
value domain. Two reference implementations are provided for staking
policies that need nothing more elaborate.
"""

import bisect
import math
import sys
from typing import Hashable, Iterable, Iterator, Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..core.numeric import TrustValue
from ..exceptions import ConfigurationError


@runtime_checkable
class Bucketizer(Protocol):
    """Anything that maps a trust value to a tier index."""

    def bucketize(self, value: TrustValue) -> int:
        ...


class RangeBucketizer:
    """
    Buckets defined by explicit half-open ranges ``[low, high)``.

    Values below the first range land in bucket 0; values at or beyond the
    last range's upper bound land in the last bucket. Values falling in a gap
    between ranges land in the range below the gap.

    Example:
        >>> b = RangeBucketizer([(0.0, 5.0), (5.0, 15.0), (15.0, 30.0)])
        >>> b.bucketize(7.0)
        1
    """

    def __init__(self, ranges: Sequence[Tuple[TrustValue, TrustValue]]):
        if not ranges:
            raise ConfigurationError("RangeBucketizer needs at least one range")

        previous_high = None
        for low, high in ranges:
            if not low < high:
                raise ConfigurationError(f"Range ({low}, {high}) is empty or inverted")
            if previous_high is not None and low < previous_high:
                raise ConfigurationError(
                    f"Range ({low}, {high}) overlaps or precedes the previous range"
                )
            previous_high = high

        self.ranges = [tuple(r) for r in ranges]
        self._lows = [low for low, _ in self.ranges]

    def bucketize(self, value: TrustValue) -> int:
        if isinstance(value, float) and math.isnan(value):
            return 0
        index = bisect.bisect_right(self._lows, value) - 1
        return min(max(index, 0), len(self.ranges) - 1)

    def __len__(self) -> int:
        return len(self.ranges)

    def __repr__(self) -> str:
        return f"RangeBucketizer({len(self.ranges)} ranges)"


class FixedWidthBucketizer:
    """
    Equal-width buckets starting at ``minimum``.

    Bucket ``i`` covers ``[minimum + i * width, minimum + (i + 1) * width)``.
    Values below ``minimum`` land in bucket 0; with ``max_buckets`` set,
    values beyond the last bucket land in it.

    Args:
        width: Width of every bucket
        minimum: Lower edge of bucket 0
        max_buckets: Optional cap on the number of buckets
    """

    def __init__(
        self,
        width: TrustValue,
        minimum: TrustValue = 0.0,
        max_buckets: Optional[int] = None
    ):
        if not width > 0:
            raise ConfigurationError(f"Bucket width must be positive, got {width}")
        if max_buckets is not None and max_buckets < 1:
            raise ConfigurationError(f"max_buckets must be at least 1, got {max_buckets}")

        self.width = width
        self.minimum = minimum
        self.max_buckets = max_buckets

    def bucketize(self, value: TrustValue) -> int:
        if isinstance(value, float) and math.isnan(value):
            return 0
        offset = (value - self.minimum) / self.width
        if math.isinf(offset):
            index = 0 if offset < 0 else sys.maxsize
        else:
            index = max(0, math.floor(offset))
        if self.max_buckets is not None:
            index = min(index, self.max_buckets - 1)
        return index

    def __repr__(self) -> str:
        return (
            f"FixedWidthBucketizer(width={self.width}, minimum={self.minimum}, "
            f"max_buckets={self.max_buckets})"
        )


def bucketize_pairs(
    pairs: Iterable[Tuple[Hashable, TrustValue]],
    bucketizer: Bucketizer
) -> Iterator[Tuple[Hashable, int]]:
    """Lazily map ``(key, value)`` pairs to ``(key, bucket)``."""
    for key, value in pairs:
        yield key, bucketizer.bucketize(value)
