"""
Reading and writing session state to a session directory.
"""

import logging
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Union

from ..config import Config
from ..errors import CorruptStateError, StorageError
from .state import SessionState


logger = logging.getLogger(__name__)


def format_current_datetime() -> str:
    """Return the current local date and time in the state.json timestamp format."""
    return datetime.now().strftime(Config.TIMESTAMP_FORMAT)


class SessionStore:
    """
    Loads and saves ``state.json`` inside a session directory.

    ``load`` never returns without a backing file: an absent directory or
    state file is replaced by a freshly saved default session. A state file
    that exists but cannot be decoded raises ``CorruptStateError`` instead.
    """

    def __init__(self, state_filename: str = Config.STATE_FILENAME):
        self.state_filename = state_filename

    def state_path(self, directory: Union[str, Path]) -> Path:
        return Path(directory) / self.state_filename

    def has_state(self, directory: Union[str, Path]) -> bool:
        return self.state_path(directory).is_file()

    def load(self, directory: Union[str, Path]) -> SessionState:
        """
        Load the session stored in ``directory``.

        Raises:
            CorruptStateError: If state.json exists but cannot be decoded
            StorageError: If the directory or file cannot be created or read
        """
        state_file = self.state_path(directory)

        if not state_file.exists():
            state = SessionState()
            self.save(state, directory)
            logger.info(f"Created default session in {directory}")
            return state

        try:
            json_str = state_file.read_text(encoding='utf-8')
        except UnicodeDecodeError as e:
            raise CorruptStateError.create(
                f"Could not parse {self.state_filename}: not UTF-8 text",
                error_code="STATE_003",
                context={'file': str(state_file)},
            ) from e
        except OSError as e:
            raise StorageError.create(
                f"Error reading file {state_file}: {e}",
                error_code="STATE_004",
                context={'file': str(state_file)},
            ) from e

        state = SessionState.from_json(json_str)

        if state.selected_example_name == Config.LEGACY_EXAMPLE_NAME:
            logger.warning(f"Migrating legacy session '{Config.LEGACY_EXAMPLE_NAME}' to example 1")
            state.selected_example = 1

        state.reconcile()
        logger.debug(f"Loaded session from {state_file}")
        return state

    def save(self, state: SessionState, directory: Union[str, Path]) -> None:
        """
        Stamp the state with the current time and write it to ``directory``.

        The JSON is written to a temporary file in the same directory and then
        moved over state.json, so readers never see a truncated file.

        Raises:
            StorageError: If the directory or file cannot be written
        """
        target_dir = Path(directory)
        state_file = self.state_path(target_dir)
        temp_path = None

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            state.timestamp = format_current_datetime()
            with tempfile.NamedTemporaryFile(
                mode="w",
                suffix=".json.tmp",
                dir=target_dir,
                delete=False,
                encoding="utf-8",
            ) as f:
                temp_path = Path(f.name)
                f.write(state.to_json())
            temp_path.replace(state_file)
        except OSError as e:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()
            raise StorageError.create(
                f"Error saving session to {state_file}: {e}",
                suggested_actions=["Check that the directory is writable"],
                error_code="STATE_005",
                context={'file': str(state_file)},
            ) from e

        logger.debug(f"Saved session to {state_file}")
