"""
Core data models for EarthLinguist example tables.
"""

from dataclasses import dataclass
from typing import Iterator, Tuple
import numpy as np

from .errors import FormatError


@dataclass(frozen=True)
class CheckboxRow:
    """One table row: an example image and its checkmark vector."""
    image_path: str
    checkmarks: Tuple[bool, ...]

    def __post_init__(self):
        if self.image_path is None:
            raise FormatError.create("Image path cannot be None", error_code="TABLE_001")
        # Normalise lists handed in by callers so the row stays hashable and immutable.
        object.__setattr__(self, "checkmarks", tuple(bool(c) for c in self.checkmarks))

    @property
    def num_columns(self) -> int:
        return len(self.checkmarks)

    def is_checked(self, column_index: int) -> bool:
        """Return True iff the checkmark at the 0-based column index is set."""
        return self.checkmarks[column_index]


@dataclass(frozen=True)
class TableModel:
    """
    An example table: ordered image rows, each with a fixed-size checkmark vector.

    Row ``i`` (0-based) corresponds to image file ``i + 1``. Every row must
    have exactly ``columns`` checkmarks; a mismatch is a construction error.
    """
    columns: int
    rows: Tuple[CheckboxRow, ...] = ()

    def __post_init__(self):
        if isinstance(self.columns, bool) or not isinstance(self.columns, int) or self.columns < 1:
            raise FormatError.create(
                f"Number of checkmark columns must be at least 1, got {self.columns!r}",
                error_code="TABLE_002",
                context={'expected': '>= 1', 'found': self.columns},
            )
        rows = tuple(self.rows)
        for position, row in enumerate(rows, start=1):
            if row.num_columns != self.columns:
                raise FormatError.create(
                    f"Row {position} has {row.num_columns} checkmarks, expected {self.columns}",
                    details=f"Image: {row.image_path}",
                    error_code="TABLE_003",
                    context={'row': position, 'expected': self.columns, 'found': row.num_columns},
                )
        object.__setattr__(self, "rows", rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[CheckboxRow]:
        return iter(self.rows)

    def row(self, index: int) -> CheckboxRow:
        """Return the row at the 0-based index."""
        return self.rows[index]

    def checkmark_matrix(self) -> np.ndarray:
        """Return the checkmarks as a read-only boolean array of shape (rows, columns)."""
        matrix = np.array([row.checkmarks for row in self.rows], dtype=bool).reshape(len(self.rows), self.columns)
        matrix.setflags(write=False)
        return matrix
