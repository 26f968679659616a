"""
The workspace: per-user storage for the recording and listening sessions.

This is the surface the user interface talks to. It owns the example
catalog, the session codec, the archive validator and an error collector,
and implements the application flows built on top of them: startup
recovery, importing and exporting shareable sessions, swapping example
sets and starting a new recording.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from .archive import ArchiveValidator, clear_directory, clip_filename, next_available_name, pack, unpack
from .catalog import ExampleCatalog
from .config import Config, SessionMode
from .errors import EarthLinguistError, ErrorHandler, ErrorSeverity, IntegrityError, StorageError
from .models import TableModel
from .session import SessionState, SessionStore


logger = logging.getLogger(__name__)

SessionTarget = Union[SessionMode, str, Path]


class Workspace:
    """
    Session directories, catalog and archive flows for one user.

    Recording and listening sessions live in disjoint directories, so a
    change to one never touches the other. Nothing here is thread-safe; the
    caller serializes writes to a session directory.
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        catalog: Optional[ExampleCatalog] = None,
        store: Optional[SessionStore] = None,
        check_audio: bool = True,
    ):
        """
        Initialize the Workspace.

        Args:
            root: Storage root. Defaults to $EARTHLINGUIST_HOME or ~/.earthlinguist
            catalog: Example catalog; an empty one is created if not given
            store: Session codec
            check_audio: Whether validation decodes clips
        """
        self.root = Config.home_dir(root).resolve()
        self.catalog = catalog if catalog is not None else ExampleCatalog()
        self.store = store or SessionStore()
        self.validator = ArchiveValidator(self.catalog, self.store, check_audio=check_audio)
        self.error_handler = ErrorHandler()

    # Directories

    def session_dir(self, mode: SessionMode) -> Path:
        return self.root / Config.session_dirname(mode)

    @property
    def public_dir(self) -> Path:
        return self.root / Config.PUBLIC_FILES_DIRNAME

    @property
    def loaded_examples_dir(self) -> Path:
        return self.root / Config.LOADED_EXAMPLES_DIRNAME

    @property
    def scratch_zips_dir(self) -> Path:
        return self.root / Config.SCRATCH_ZIPS_DIRNAME

    def _resolve(self, target: SessionTarget) -> Path:
        if isinstance(target, SessionMode):
            return self.session_dir(target)
        return Path(target)

    # Catalog

    def list_example_indices(self) -> List[int]:
        return self.catalog.list_example_indices()

    def get_example(self, index: int) -> TableModel:
        return self.catalog.get_example(index)

    def import_examples(self, zip_file: Union[str, Path]) -> List[int]:
        """Replace the catalog with the examples in ``zip_file``; returns the new indices."""
        snapshot = self.catalog.load_archive(zip_file, self.loaded_examples_dir)
        return snapshot.indices()

    def restore_bundled_examples(self) -> List[int]:
        """Go back to the bundled examples and forget any imported ones."""
        snapshot = self.catalog.load_bundled()
        clear_directory(self.loaded_examples_dir)
        return snapshot.indices()

    # Sessions

    def load_session(self, target: SessionTarget) -> SessionState:
        """
        Load a session and bring its annotations in line with its example.

        A session without annotation columns gets blank arrays sized to the
        example; a session with fewer columns than its example is padded.
        The reconciled state is saved back.

        Annotations are never dropped. A session whose example is not loaded,
        or which has more columns than its example, is returned as stored and
        recorded as a warning in ``error_handler`` so the caller can offer a
        reset.
        """
        directory = self._resolve(target)
        state = self.store.load(directory)

        if state.selected_example not in self.catalog:
            self.error_handler.record(IntegrityError.create(
                f"Session in {directory} refers to example {state.selected_example}, which is not loaded",
                suggested_actions=["Load the matching examples", "Reset the session"],
                error_code="WORKSPACE_003",
                context={'file': str(directory), 'found': state.selected_example},
            ), severity=ErrorSeverity.WARNING)
            return state

        table = self.catalog.get_example(state.selected_example)
        if state.num_columns > table.columns:
            self.error_handler.record(IntegrityError.create(
                f"Session in {directory} has {state.num_columns} annotation column(s) but example "
                f"{state.selected_example} has {table.columns}",
                suggested_actions=["Load the examples this session was recorded with", "Reset the session"],
                error_code="WORKSPACE_004",
                context={'file': str(directory), 'expected': table.columns, 'found': state.num_columns},
            ), severity=ErrorSeverity.WARNING)
            return state

        if self._fit_to_example(state, table, directory):
            self.store.save(state, directory)
        return state

    @staticmethod
    def _fit_to_example(state: SessionState, table: TableModel, directory: Path) -> bool:
        """Size the annotation arrays to ``table``; returns True if the state changed."""
        if state.num_columns == 0:
            state.select_example(state.selected_example, table.columns)
            return True
        if state.num_columns < table.columns:
            logger.warning(
                f"Padding session in {directory} from {state.num_columns} to {table.columns} "
                f"column(s) for example {state.selected_example}"
            )
            return state.resize_annotations(table.columns)
        return False

    def save_session(self, state: SessionState, target: SessionTarget) -> None:
        self.store.save(state, self._resolve(target))

    def reset_session(self, mode: SessionMode) -> SessionState:
        """Wipe a session directory and start over with a default session."""
        directory = self.session_dir(mode)
        clear_directory(directory)
        logger.info(f"Reset {mode.value} session in {directory}")
        return self.load_session(mode)

    def start_recording(
        self,
        example: int,
        language: Optional[str] = None,
        country: Optional[str] = None,
        region: Optional[str] = None,
    ) -> SessionState:
        """Discard the current recording and start a new one for ``example``."""
        table = self.catalog.get_example(example)
        directory = self.session_dir(SessionMode.RECORD)
        clear_directory(directory)

        state = SessionState()
        state.select_example(example, table.columns)
        state.set_selected_language(language)
        state.set_selected_country(country)
        state.set_entered_region(region)
        self.store.save(state, directory)
        logger.info(f"Started recording for example {example}")
        return state

    def clip_path(self, mode: SessionMode, column: int) -> Path:
        """The file a recording for the 1-based ``column`` is stored in."""
        return self.session_dir(mode) / clip_filename(column)

    def missing_clips(self, mode: SessionMode) -> List[int]:
        """Columns of the session's example that have no clip yet."""
        state = self.store.load(self.session_dir(mode))
        table = self.catalog.get_example(state.selected_example)
        return [column for column in range(1, table.columns + 1)
                if not self.clip_path(mode, column).is_file()]

    # Archives

    def validate(self, session_dir: Union[str, Path]) -> SessionState:
        return self.validator.validate(session_dir)

    def import_archive(self, zip_file: Union[str, Path], mode: SessionMode = SessionMode.LISTEN) -> SessionState:
        """
        Replace a session with the contents of a shared zip and validate it.

        The imported session must refer to a loaded example with no more
        annotation columns than that example has; shorter sessions are padded
        to the example and saved. On any failure the session directory is
        emptied and the error is re-raised; the caller decides whether to
        reset it to a default.
        """
        directory = self.session_dir(mode)
        clear_directory(directory)
        try:
            unpack(zip_file, directory)
            state = self.validator.validate(directory)
            table = self.validator.example_for(state)
            if state.num_columns > table.columns:
                raise IntegrityError.create(
                    f"The session has {state.num_columns} annotation column(s) but example "
                    f"{state.selected_example} has {table.columns}",
                    suggested_actions=["Load the examples this session was recorded with"],
                    error_code="ARCHIVE_VALIDATION_008",
                    context={'file': Config.STATE_FILENAME, 'expected': table.columns,
                             'found': state.num_columns},
                )
            if self._fit_to_example(state, table, directory):
                self.store.save(state, directory)
        except EarthLinguistError:
            clear_directory(directory)
            raise
        logger.info(f"Imported {zip_file} into the {mode.value} session")
        return state

    def export_archive(self, source_dir: Union[str, Path], dest_zip: Union[str, Path]) -> Path:
        return pack(source_dir, dest_zip)

    def suggested_archive_name(self, state: SessionState) -> str:
        return (f"example {state.selected_example} {state.selected_language} "
                f"{state.selected_country}").replace(" ", "_").lower()

    def export_session(
        self,
        mode: SessionMode,
        dest_dir: Union[str, Path],
        name: Optional[str] = None,
    ) -> Path:
        """Zip a session into ``dest_dir`` under the next free ``<name>.<i>.zip``."""
        directory = self.session_dir(mode)
        state = self.store.load(directory)
        base_name = name or self.suggested_archive_name(state)
        dest = Path(dest_dir) / next_available_name(dest_dir, base_name)
        return pack(directory, dest)

    def edit_loaded_session(self) -> SessionState:
        """Copy the listening session into the recording session so it can be edited."""
        listen_dir = self.session_dir(SessionMode.LISTEN)
        if not self.store.has_state(listen_dir):
            raise StorageError.create(
                "There is no loaded session to edit",
                suggested_actions=["Load a session zip first"],
                error_code="WORKSPACE_001",
                context={'file': str(listen_dir)},
            )

        self.scratch_zips_dir.mkdir(parents=True, exist_ok=True)
        clear_directory(self.scratch_zips_dir)
        scratch_zip = pack(listen_dir, self.scratch_zips_dir / "loaded.zip")

        record_dir = self.session_dir(SessionMode.RECORD)
        clear_directory(record_dir)
        unpack(scratch_zip, record_dir)
        return self.load_session(SessionMode.RECORD)

    # Startup

    def startup(self, examples_zip: Optional[Union[str, Path]] = None) -> Dict[SessionMode, SessionState]:
        """
        Prepare the storage root for a new run.

        Empties the scratch zip folder, removes the public folder, loads the
        examples (bundled, or from ``examples_zip``) and recovers both
        sessions against them.
        """
        Config.ensure_directories(self.root)
        clear_directory(self.scratch_zips_dir)
        if self.public_dir.exists():
            clear_directory(self.public_dir)
            try:
                self.public_dir.rmdir()
            except OSError as e:
                raise StorageError.create(
                    f"Error deleting public files directory: {self.public_dir}",
                    details=str(e),
                    error_code="WORKSPACE_002",
                    context={'file': str(self.public_dir)},
                ) from e
        clear_directory(self.loaded_examples_dir)

        if examples_zip is not None:
            self.import_examples(examples_zip)
        else:
            self.catalog.load_bundled()
        return self.recover_sessions()

    def recover_sessions(self) -> Dict[SessionMode, SessionState]:
        """
        Validate both session directories, resetting any that are corrupted.

        Failures are recorded in ``error_handler`` as warnings, replacing
        whatever an earlier recovery recorded.
        """
        self.error_handler.clear_errors()
        states = {}
        for mode in SessionMode:
            directory = self.session_dir(mode)
            if directory.is_dir() and any(directory.iterdir()):
                try:
                    self.validator.validate(directory)
                except EarthLinguistError as e:
                    self.error_handler.record(e, severity=ErrorSeverity.WARNING)
                    logger.warning(f"Stored {mode.value} session has been corrupted; resetting: {e}")
                    states[mode] = self.reset_session(mode)
                    continue
            states[mode] = self.load_session(mode)
        return states
