"""
Pytest configuration and fixtures for EarthLinguist tests.

Provides temporary example trees, WAV clips and ready-made catalogs and
workspaces, and configures Hypothesis for the property-based tests.
"""

import base64
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional

import numpy as np
import pytest
import soundfile as sf
from hypothesis import settings, Verbosity

from earthlinguist.catalog import ExampleCatalog
from earthlinguist.session import SessionState, SessionStore
from earthlinguist.workspace import Workspace


settings.register_profile("earthlinguist",
    max_examples=50,
    verbosity=Verbosity.normal,
    deadline=None  # Filesystem round trips have no useful deadline
)
settings.load_profile("earthlinguist")

# A 1x1 PNG; the loader only checks that images exist.
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def write_wav(path: Path, seconds: float = 0.1, sample_rate: int = 8000) -> Path:
    """Write a short sine clip that libsndfile can decode."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    audio = (0.2 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), audio, sample_rate, subtype="PCM_16")
    return path


def make_example(root: Path, name: str, checkmarks: str,
                 images: Optional[Iterable[str]] = None) -> Path:
    """
    Create an example directory.

    By default one PNG is written per non-blank checkmarks line.
    """
    example_dir = root / name
    example_dir.mkdir(parents=True, exist_ok=True)
    (example_dir / "checkmarks.txt").write_text(checkmarks, encoding="utf-8")
    if images is None:
        rows = [line for line in checkmarks.splitlines() if line.strip()]
        images = [f"{i}.png" for i in range(1, len(rows) + 1)]
    for image in images:
        (example_dir / image).write_bytes(PNG_BYTES)
    return example_dir


def write_zip(zip_path: Path, entries: Dict[str, bytes]) -> Path:
    """Write a zip with exactly the given entry names, bypassing any path checks."""
    with zipfile.ZipFile(zip_path, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return zip_path


@pytest.fixture
def examples_root(tmp_path):
    """Example tree with a 5-column and a 3-column example."""
    root = tmp_path / "examples"
    make_example(root, "example_1", "10100\n01010\n00101\n")
    make_example(root, "example_2", "110\n011\n")
    return root


@pytest.fixture
def catalog(examples_root):
    """Catalog loaded from the temporary example tree."""
    catalog = ExampleCatalog()
    catalog.load_bundled(examples_root)
    return catalog


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def workspace(tmp_path, catalog):
    """Workspace rooted in a temporary directory, using the temporary catalog."""
    return Workspace(root=tmp_path / "home", catalog=catalog)


@pytest.fixture
def session_dir(tmp_path, store):
    """A session directory holding a state for example 1 (5 columns)."""
    directory = tmp_path / "session"
    state = SessionState(selected_language="Yoruba", selected_country="Nigeria")
    state.select_example(1, 5)
    store.save(state, directory)
    return directory
