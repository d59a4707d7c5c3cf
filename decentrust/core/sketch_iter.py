"""
Row-major traversal over Count-Min Sketch cells.

``SketchCells`` is a sized, restartable view: every ``iter()`` call starts a
fresh cursor at cell (0, 0) and stops after exactly ``depth * width`` cells.
A borrowed view is read-only over the live matrix; an owned view iterates a
private copy taken when it was created.
"""

from typing import Iterator, Tuple

import numpy as np


class SketchCellIterator:
    """Cursor over a sketch matrix, one cell at a time."""

    def __init__(self, matrix: np.ndarray):
        self.matrix = matrix
        self.depth, self.width = matrix.shape
        self.row = 0
        self.col = 0

    def __iter__(self) -> "SketchCellIterator":
        return self

    def __next__(self):
        if self.row >= self.depth or self.width == 0:
            raise StopIteration

        element = self.matrix[self.row, self.col].item()

        self.col += 1
        if self.col >= self.width:
            self.col = 0
            self.row += 1

        return element

    def reset(self):
        """Move the cursor back to the first cell."""
        self.row = 0
        self.col = 0


class SketchCells:
    """
    Read-only row-major view over a sketch matrix.

    Args:
        matrix: Sketch counter matrix (depth x width)
        owned: Iterate a private copy instead of the live matrix
    """

    def __init__(self, matrix: np.ndarray, owned: bool = False):
        view = matrix.copy() if owned else matrix.view()
        view.flags.writeable = False
        self._matrix = view
        self.owned = owned

    @property
    def shape(self) -> Tuple[int, int]:
        """(depth, width) of the underlying matrix."""
        return self._matrix.shape

    def __len__(self) -> int:
        return self._matrix.size

    def __iter__(self) -> SketchCellIterator:
        return SketchCellIterator(self._matrix)

    def positions(self) -> Iterator[Tuple[int, int, float]]:
        """Yield ``(row, col, value)`` for every cell, row-major."""
        depth, width = self._matrix.shape
        for row in range(depth):
            for col in range(width):
                yield row, col, self._matrix[row, col].item()

    def non_default(self) -> Iterator[Tuple[int, int, float]]:
        """Yield only the cells holding a non-zero value."""
        rows, cols = np.nonzero(self._matrix)
        for row, col in zip(rows.tolist(), cols.tolist()):
            yield row, col, self._matrix[row, col].item()

    def __repr__(self) -> str:
        kind = "owned" if self.owned else "borrowed"
        return f"SketchCells({kind}, depth={self.shape[0]}, width={self.shape[1]})"
