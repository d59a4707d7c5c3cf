"""
Decentrust core: bounded-memory frequency estimation.
"""

from .numeric import TrustValue, Update, ValueBounds, validate_delta, validate_update, apply_update
from .sketch import CountMinSketch, HashScheme, calculate_width_and_depth, key_to_bytes
from .sketch_iter import SketchCells, SketchCellIterator

__all__ = [
    "TrustValue",
    "Update",
    "ValueBounds",
    "validate_delta",
    "validate_update",
    "apply_update",
    "CountMinSketch",
    "HashScheme",
    "calculate_width_and_depth",
    "key_to_bytes",
    "SketchCells",
    "SketchCellIterator",
]
