"""
The example catalog: an atomically replaceable mapping of example index to TableModel.
"""

import dataclasses
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union

from ..archive.codec import unpack
from ..errors import CatalogFormatError, NotFoundError, StorageError
from ..models import TableModel
from .loader import find_examples_root, load_bundled_examples, load_examples_from_dir


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    """An immutable view of the catalog at one version."""
    version: int
    source: str
    tables: Mapping[int, TableModel] = field(default_factory=lambda: MappingProxyType({}))

    def indices(self) -> List[int]:
        return sorted(self.tables)


class ExampleCatalog:
    """
    Owns the mapping from example index to TableModel.

    The mapping is never mutated in place. Every load builds a complete new
    mapping, validates it, and publishes it as a new CatalogSnapshot with a
    single assignment, so readers either see the old catalog or the new one.
    """

    def __init__(self, tables: Optional[Dict[int, TableModel]] = None, source: str = "empty"):
        self._snapshot = CatalogSnapshot(version=0, source=source,
                                         tables=MappingProxyType(dict(tables or {})))
        if tables:
            self._check_tables(self._snapshot.tables)

    @classmethod
    def from_bundled(cls, root: Optional[Union[str, Path]] = None) -> "ExampleCatalog":
        """Create a catalog populated from the bundled example resources."""
        catalog = cls()
        catalog.load_bundled(root)
        return catalog

    @property
    def snapshot(self) -> CatalogSnapshot:
        """The current snapshot; hold on to it for a consistent multi-step read."""
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def source(self) -> str:
        return self._snapshot.source

    def __len__(self) -> int:
        return len(self._snapshot.tables)

    def __contains__(self, index: int) -> bool:
        return index in self._snapshot.tables

    def list_example_indices(self) -> List[int]:
        """Return the example indices in ascending order."""
        return self._snapshot.indices()

    def get_example(self, index: int) -> TableModel:
        """
        Return the example with the given index.

        Raises:
            NotFoundError: If no example with that index is loaded
        """
        tables = self._snapshot.tables
        if index not in tables:
            raise NotFoundError.create(
                f"No example with index {index} exists",
                details=f"Available examples: {', '.join(map(str, sorted(tables))) or 'none'}",
                error_code="CATALOG_017",
                context={'expected': sorted(tables), 'found': index},
            )
        return tables[index]

    def replace(self, tables: Dict[int, TableModel], source: str) -> CatalogSnapshot:
        """
        Publish a complete new mapping.

        Raises:
            CatalogFormatError: If any key is not a positive integer or any table is empty
        """
        frozen = MappingProxyType(dict(tables))
        self._check_tables(frozen)
        snapshot = CatalogSnapshot(version=self._snapshot.version + 1, source=source, tables=frozen)
        self._snapshot = snapshot
        logger.info(f"Catalog now holds {len(frozen)} example(s) from {source} (version {snapshot.version})")
        return snapshot

    def load_bundled(self, root: Optional[Union[str, Path]] = None) -> CatalogSnapshot:
        """Replace the catalog with the bundled examples."""
        tables = load_bundled_examples(Path(root) if root is not None else None)
        return self.replace(tables, source="bundled")

    def load_archive(self, zip_path: Union[str, Path], extract_dir: Union[str, Path]) -> CatalogSnapshot:
        """
        Replace the catalog with the examples found in a zip archive.

        The archive is extracted and parsed in a staging directory next to
        ``extract_dir``. Only once it loads does the staging directory take
        the place of ``extract_dir``, whose previous contents are removed.
        On failure the current catalog and the images it references are
        left as they were.
        """
        extract_dir = Path(extract_dir).resolve()
        extract_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{extract_dir.name}-", dir=extract_dir.parent))
        try:
            unpack(zip_path, staging)
            staged = load_examples_from_dir(find_examples_root(staging))
            tables = {index: _relocate(table, staging, extract_dir) for index, table in staged.items()}
            self._check_tables(tables)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        retired = staging.with_name(staging.name + ".old")
        try:
            if extract_dir.exists():
                extract_dir.rename(retired)
            staging.rename(extract_dir)
        except OSError as e:
            if retired.exists() and not extract_dir.exists():
                retired.rename(extract_dir)
            shutil.rmtree(staging, ignore_errors=True)
            raise StorageError.create(
                f"Error installing examples into {extract_dir}",
                details=str(e),
                error_code="CATALOG_020",
                context={'file': str(extract_dir)},
            ) from e

        snapshot = self.replace(tables, source=str(zip_path))
        shutil.rmtree(retired, ignore_errors=True)
        return snapshot

    @staticmethod
    def _check_tables(tables: Mapping[int, TableModel]) -> None:
        for index, table in tables.items():
            if isinstance(index, bool) or not isinstance(index, int) or index < 1:
                raise CatalogFormatError.create(
                    f"Invalid example index {index!r}; indices must be positive integers",
                    error_code="CATALOG_018",
                    context={'expected': '>= 1', 'found': index},
                )
            if not isinstance(table, TableModel) or len(table) == 0:
                raise CatalogFormatError.create(
                    f"Example {index} has no rows",
                    error_code="CATALOG_019",
                    context={'example': f"example_{index}"},
                )


def _relocate(table: TableModel, old_root: Path, new_root: Path) -> TableModel:
    """Point a table's image paths at ``new_root`` instead of ``old_root``."""
    rows = tuple(
        dataclasses.replace(row, image_path=str(new_root / Path(row.image_path).relative_to(old_root)))
        for row in table.rows
    )
    return dataclasses.replace(table, rows=rows)
