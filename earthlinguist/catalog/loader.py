"""
Parsing of example directories into TableModels.

An example directory is named ``example_<N>`` and holds a ``checkmarks.txt``
file plus one image per row, ``<row>.png`` or ``<row>.jpg``. Each non-blank
line of ``checkmarks.txt`` is a fixed-length string of ``0``/``1``
characters; the first one fixes the column count. Blank lines are separators
and do not consume a row number, so the n-th non-blank line always uses
image ``n``.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..config import Config
from ..errors import CatalogFormatError, CatalogNotFoundError
from ..models import CheckboxRow, TableModel


logger = logging.getLogger(__name__)

EXAMPLE_DIR_PATTERN = re.compile(r"^example_([0-9]+)$")

# Folders some archivers add next to the real content.
IGNORED_ARCHIVE_ENTRIES = {"__MACOSX"}


def example_dirname(index: int) -> str:
    return f"{Config.EXAMPLE_DIR_PREFIX}{index}"


def parse_example_index(name: str) -> int:
    """
    Parse ``N`` out of an ``example_<N>`` directory name.

    Raises:
        CatalogFormatError: If the name does not match or N is not positive
    """
    match = EXAMPLE_DIR_PATTERN.match(name)
    if not match:
        raise CatalogFormatError.create(
            f"Invalid example directory: {name}",
            details="Example directories must be named example_<number>",
            error_code="CATALOG_003",
            context={'example': name, 'expected': 'example_<digits>', 'found': name},
        )
    index = int(match.group(1))
    if index < 1:
        raise CatalogFormatError.create(
            f"Invalid example directory: {name} (example numbers start at 1)",
            error_code="CATALOG_004",
            context={'example': name, 'expected': '>= 1', 'found': index},
        )
    return index


def parse_checkmarks(text: str, example: str = "") -> List[Tuple[bool, ...]]:
    """
    Parse the contents of a checkmarks.txt file into checkmark vectors.

    Args:
        text: File contents
        example: Example name used in error messages

    Returns:
        One tuple of booleans per non-blank line, in file order

    Raises:
        CatalogFormatError: On a length mismatch, a character other than 0/1,
            or a file without any rows
    """
    rows = []
    num_columns = None

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue

        if num_columns is None:
            num_columns = len(line)

        if len(line) != num_columns:
            raise CatalogFormatError.create(
                f"Invalid checkmarks.txt in {example}: line {line_number} has {len(line)} columns, "
                f"expected {num_columns}",
                details="All lines must have the same number of columns",
                error_code="CATALOG_005",
                context={'example': example, 'line': line_number,
                         'expected': num_columns, 'found': len(line)},
            )

        bad = [c for c in line if c not in "01"]
        if bad:
            raise CatalogFormatError.create(
                f"Invalid checkmarks.txt in {example}: line {line_number} contains {bad[0]!r}",
                details="All characters must be 0 or 1",
                error_code="CATALOG_006",
                context={'example': example, 'line': line_number, 'expected': '0 or 1', 'found': bad[0]},
            )

        rows.append(tuple(c == "1" for c in line))

    if not rows:
        raise CatalogFormatError.create(
            f"Invalid checkmarks.txt in {example}: no rows found",
            error_code="CATALOG_007",
            context={'example': example},
        )

    return rows


def find_row_image(example_dir: Path, row_number: int) -> Path:
    """
    Locate the single image for a 1-based row number.

    Raises:
        CatalogFormatError: If both a .png and a .jpg exist
        CatalogNotFoundError: If neither exists
    """
    candidates = [example_dir / f"{row_number}{ext}" for ext in Config.IMAGE_EXTENSIONS]
    found = [path for path in candidates if path.is_file()]

    if len(found) > 1:
        raise CatalogFormatError.create(
            f"Multiple image files found in {example_dir.name} for row {row_number}",
            details=", ".join(path.name for path in found),
            error_code="CATALOG_008",
            context={'example': example_dir.name, 'row': row_number,
                     'expected': 1, 'found': [path.name for path in found]},
        )
    if not found:
        raise CatalogNotFoundError.create(
            f"Image for row {row_number} not found in {example_dir.name}",
            details=f"Expected {row_number}.png or {row_number}.jpg",
            error_code="CATALOG_009",
            context={'example': example_dir.name, 'row': row_number},
        )
    return found[0]


def load_example_dir(example_dir: Path) -> TableModel:
    """
    Build a TableModel from one example directory.

    Raises:
        CatalogNotFoundError: If checkmarks.txt or a row image is missing
        CatalogFormatError: If checkmarks.txt is malformed or an image is duplicated
    """
    name = example_dir.name
    checkmarks_file = example_dir / Config.CHECKMARKS_FILENAME

    if not checkmarks_file.is_file():
        raise CatalogNotFoundError.create(
            f"{Config.CHECKMARKS_FILENAME} not found in example directory {name}",
            error_code="CATALOG_010",
            context={'example': name, 'file': str(checkmarks_file)},
        )

    try:
        text = checkmarks_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogFormatError.create(
            f"Could not read {Config.CHECKMARKS_FILENAME} in {name}: {e}",
            error_code="CATALOG_011",
            context={'example': name, 'file': str(checkmarks_file)},
        ) from e

    vectors = parse_checkmarks(text, example=name)
    rows = []
    for row_number, checkmarks in enumerate(vectors, start=1):
        image = find_row_image(example_dir, row_number)
        rows.append(CheckboxRow(image_path=str(image.resolve()), checkmarks=checkmarks))

    table = TableModel(columns=len(vectors[0]), rows=tuple(rows))
    logger.debug(f"Loaded {name}: {len(table)} rows x {table.columns} columns")
    return table


def load_bundled_examples(root: Optional[Path] = None) -> Dict[int, TableModel]:
    """
    Load the examples shipped with the package.

    Walks ``example_1``, ``example_2``, ... until a number is missing.

    Raises:
        CatalogNotFoundError: If the resource tree itself is missing
        CatalogLoadError: If any example fails to load
    """
    root = Path(root) if root is not None else Config.BUNDLED_EXAMPLES_DIR
    if not root.is_dir():
        raise CatalogNotFoundError.create(
            f"Examples directory not found: {root}",
            error_code="CATALOG_012",
            context={'file': str(root)},
        )

    tables = {}
    index = 1
    while (root / example_dirname(index)).is_dir():
        tables[index] = load_example_dir(root / example_dirname(index))
        index += 1

    logger.info(f"Loaded {len(tables)} bundled example(s) from {root}")
    return tables


def find_examples_root(extracted_dir: Path) -> Path:
    """
    Return the directory holding the ``example_<N>`` folders of an extracted archive.

    The archive must contain a single top-level directory. Hidden entries and
    ``__MACOSX`` are ignored.

    Raises:
        CatalogFormatError: If there is no top-level directory or more than one
    """
    candidates = [
        entry for entry in sorted(extracted_dir.iterdir())
        if entry.is_dir()
        and not entry.name.startswith(".")
        and entry.name not in IGNORED_ARCHIVE_ENTRIES
    ]

    if len(candidates) != 1:
        raise CatalogFormatError.create(
            "The examples archive must contain exactly one top-level directory",
            details=f"Found {len(candidates)}: {', '.join(c.name for c in candidates) or 'none'}",
            suggested_actions=["Zip up the directory that contains the example_<N> folders"],
            error_code="CATALOG_013",
            context={'expected': 1, 'found': len(candidates)},
        )
    return candidates[0]


def load_examples_from_dir(examples_root: Path) -> Dict[int, TableModel]:
    """
    Load every ``example_<N>`` directory found under ``examples_root``.

    Raises:
        CatalogFormatError: On a stray entry, a duplicate index or no examples at all
        CatalogLoadError: If any example fails to load
    """
    tables = {}
    names = {}

    for entry in sorted(examples_root.iterdir()):
        if entry.name.startswith("."):
            continue

        index = parse_example_index(entry.name)
        if not entry.is_dir():
            raise CatalogFormatError.create(
                f"Invalid example directory: {entry.name} is not a directory",
                error_code="CATALOG_014",
                context={'example': entry.name},
            )
        if index in tables:
            raise CatalogFormatError.create(
                f"Duplicate example number {index}: {names[index]} and {entry.name}",
                error_code="CATALOG_015",
                context={'example': entry.name, 'found': [names[index], entry.name]},
            )

        tables[index] = load_example_dir(entry)
        names[index] = entry.name

    if not tables:
        raise CatalogFormatError.create(
            f"No example directories found in {examples_root.name}",
            suggested_actions=["Each example must be a folder named example_<number>"],
            error_code="CATALOG_016",
            context={'file': str(examples_root)},
        )

    logger.info(f"Loaded {len(tables)} example(s) from {examples_root}")
    return tables
