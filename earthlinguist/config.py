"""
Configuration settings for EarthLinguist.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class SessionMode(Enum):
    """The two independent sessions the application keeps on disk."""
    RECORD = "record"
    LISTEN = "listen"


class Config:
    """Configuration class for application settings."""

    # Package paths
    PACKAGE_ROOT = Path(__file__).parent
    RESOURCES_DIR = PACKAGE_ROOT / "resources"
    BUNDLED_EXAMPLES_DIR = RESOURCES_DIR / "examples"

    # Per-user storage
    HOME_ENV_VAR = "EARTHLINGUIST_HOME"
    DEFAULT_HOME_DIR = Path.home() / ".earthlinguist"
    SCRATCH_RECORD_DIRNAME = "scratch_record"
    SCRATCH_LISTEN_DIRNAME = "scratch_listen"
    PUBLIC_FILES_DIRNAME = "public_sound_zips"
    LOADED_EXAMPLES_DIRNAME = "loaded_examples"
    SCRATCH_ZIPS_DIRNAME = "scratch_zips"

    # Session directory layout
    STATE_FILENAME = "state.json"
    CLIP_PREFIX = "clip"
    CLIP_EXTENSION = "wav"
    ARCHIVE_EXTENSION = "zip"

    # Example layout
    EXAMPLE_DIR_PREFIX = "example_"
    CHECKMARKS_FILENAME = "checkmarks.txt"
    IMAGE_EXTENSIONS = (".png", ".jpg")
    LANGUAGES_FILENAME = "languages.txt"
    COUNTRIES_FILENAME = "countries.txt"

    # Session state
    MISSING_ANNOTATION = "Missing"
    LEGACY_EXAMPLE_NAME = "Chair Example"
    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def home_dir(cls, root: Optional[Union[str, Path]] = None) -> Path:
        """Resolve the storage root: explicit argument, environment, then default."""
        if root is not None:
            return Path(root)
        env_root = os.environ.get(cls.HOME_ENV_VAR)
        if env_root:
            return Path(env_root)
        return cls.DEFAULT_HOME_DIR

    @classmethod
    def session_dirname(cls, mode: SessionMode) -> str:
        """Directory name holding the session for the given mode."""
        if mode == SessionMode.RECORD:
            return cls.SCRATCH_RECORD_DIRNAME
        return cls.SCRATCH_LISTEN_DIRNAME

    @classmethod
    def ensure_directories(cls, root: Optional[Union[str, Path]] = None) -> Path:
        """Create necessary directories if they don't exist."""
        home = cls.home_dir(root)
        for name in [cls.SCRATCH_RECORD_DIRNAME, cls.SCRATCH_LISTEN_DIRNAME,
                     cls.LOADED_EXAMPLES_DIRNAME, cls.SCRATCH_ZIPS_DIRNAME]:
            (home / name).mkdir(parents=True, exist_ok=True)
        return home
