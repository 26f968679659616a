"""
Validation of unpacked session directories.

A valid session directory is flat and holds exactly one ``state.json`` plus
any number of ``clip.<n>.wav`` files, where ``n`` is a column of the example
the session refers to and every clip decodes as audio. The first failed check
rejects the whole directory; callers reset rather than repair.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from ..config import Config
from ..errors import IntegrityError, MissingStateError, NotFoundError
from ..models import TableModel
from ..session.state import SessionState
from ..session.store import SessionStore
from .clips import check_clip_decodes, parse_clip_index

if TYPE_CHECKING:
    from ..catalog.catalog import ExampleCatalog


logger = logging.getLogger(__name__)


class ArchiveValidator:
    """Cross-checks a session directory against its state and the example catalog."""

    def __init__(self, catalog: 'ExampleCatalog', store: Optional[SessionStore] = None,
                 check_audio: bool = True):
        """
        Args:
            catalog: Catalog used to look up the session's example
            store: Codec used to read state.json
            check_audio: Decode every clip; disable only where libsndfile is unavailable
        """
        self.catalog = catalog
        self.store = store or SessionStore()
        self.check_audio = check_audio

    def validate(self, session_dir: Union[str, Path]) -> SessionState:
        """
        Validate ``session_dir`` and return the session it holds.

        Raises:
            MissingStateError: If state.json is absent
            CorruptStateError: If state.json cannot be decoded
            IntegrityError: On a subdirectory, a hidden file, a badly named
                file, a clip outside the example's columns or undecodable audio
        """
        directory = Path(session_dir)

        if not self.store.has_state(directory):
            raise MissingStateError.create(
                f"No {Config.STATE_FILENAME} in {directory.name or directory}",
                details=(f"I was expecting a {Config.STATE_FILENAME} file plus a number of "
                         f"{Config.CLIP_PREFIX}.<n>.{Config.CLIP_EXTENSION} files"),
                suggested_actions=["Choose a zip saved by EarthLinguist"],
                error_code="ARCHIVE_VALIDATION_001",
                context={'file': Config.STATE_FILENAME},
            )

        state = self.store.load(directory)
        table = None
        clip_count = 0

        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                raise IntegrityError.create(
                    f"The directory contains a subdirectory: {entry.name}",
                    error_code="ARCHIVE_VALIDATION_002",
                    context={'file': entry.name},
                )

            if entry.name.startswith("."):
                raise IntegrityError.create(
                    f"The directory contains a hidden file: {entry.name}",
                    error_code="ARCHIVE_VALIDATION_007",
                    context={'file': entry.name},
                )

            if entry.name == Config.STATE_FILENAME:
                continue

            clip_number = parse_clip_index(entry.name)

            if table is None:
                table = self.example_for(state)
            if not 1 <= clip_number <= table.columns:
                raise IntegrityError.create(
                    f"The directory contains a clip that is not for a column in example "
                    f"{state.selected_example}: {entry.name}",
                    details=f"Example {state.selected_example} has {table.columns} column(s)",
                    error_code="ARCHIVE_VALIDATION_004",
                    context={'file': entry.name, 'expected': f"1..{table.columns}", 'found': clip_number},
                )

            if self.check_audio:
                check_clip_decodes(entry)
            clip_count += 1

        logger.info(f"Validated session in {directory}: example {state.selected_example}, {clip_count} clip(s)")
        return state

    def example_for(self, state: SessionState) -> TableModel:
        """
        Return the example the session refers to.

        Raises:
            IntegrityError: If that example is not in the catalog
        """
        try:
            return self.catalog.get_example(state.selected_example)
        except NotFoundError as e:
            raise IntegrityError.create(
                f"The session refers to example {state.selected_example}, which is not loaded",
                details=str(e),
                suggested_actions=["Load the examples this session was recorded with"],
                error_code="ARCHIVE_VALIDATION_006",
                context={'expected': self.catalog.list_example_indices(), 'found': state.selected_example},
            ) from e
