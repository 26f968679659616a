"""
Bundled choice lists for the language and country selectors.
"""

from pathlib import Path
from typing import List, Optional

from .config import Config
from .errors import NotFoundError


def read_resource_lines(filename: str, resources_dir: Optional[Path] = None) -> List[str]:
    """
    Read a bundled text resource, one entry per line, skipping blank lines.

    Raises:
        NotFoundError: If the resource is not present
    """
    path = (resources_dir or Config.RESOURCES_DIR) / filename
    if not path.is_file():
        raise NotFoundError.create(
            f"Problem reading file: {filename}",
            error_code="RESOURCE_001",
            context={'file': str(path)},
        )
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip()]


def load_languages(resources_dir: Optional[Path] = None) -> List[str]:
    return read_resource_lines(Config.LANGUAGES_FILENAME, resources_dir)


def load_countries(resources_dir: Optional[Path] = None) -> List[str]:
    return read_resource_lines(Config.COUNTRIES_FILENAME, resources_dir)
