"""
Example tables: parsing example directories and holding the loaded catalog.
"""

from .catalog import CatalogSnapshot, ExampleCatalog
from .loader import (
    load_bundled_examples,
    load_example_dir,
    load_examples_from_dir,
    parse_checkmarks,
    parse_example_index,
)

__all__ = [
    'CatalogSnapshot',
    'ExampleCatalog',
    'load_bundled_examples',
    'load_example_dir',
    'load_examples_from_dir',
    'parse_checkmarks',
    'parse_example_index',
]
