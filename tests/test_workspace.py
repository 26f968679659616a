"""
Tests for the workspace application flows.
"""

import json
from pathlib import Path

import pytest

from earthlinguist.archive import pack
from earthlinguist.config import Config, SessionMode
from earthlinguist.errors import (
    CatalogFormatError, ErrorSeverity, IntegrityError, NotFoundError, StorageError
)
from earthlinguist.session import SessionState
from earthlinguist.workspace import Workspace

from conftest import make_example, write_wav, write_zip


RECORD = SessionMode.RECORD
LISTEN = SessionMode.LISTEN


def names(directory: Path):
    return sorted(p.name for p in directory.iterdir())


def make_examples_zip(tmp_path: Path, examples) -> Path:
    source = tmp_path / "examples_source"
    for name, checkmarks in examples.items():
        make_example(source / "my_examples", name, checkmarks)
    return pack(source, tmp_path / "examples.zip")


@pytest.fixture
def started(workspace):
    workspace.startup()
    return workspace


@pytest.fixture
def recorded(started):
    """A recording of example 1 with two clips and two annotations."""
    state = started.start_recording(1, "Yoruba", "Nigeria", "Oyo")
    write_wav(started.clip_path(RECORD, 1))
    write_wav(started.clip_path(RECORD, 3))
    state.set_user_annotation(0, "a red chair")
    state.set_expert_annotation(2, "aga pupa")
    started.save_session(state, RECORD)
    return started


class TestConfig:
    """Test storage root resolution."""

    def test_explicit_root(self, tmp_path):
        """Test that an explicit root wins."""
        assert Config.home_dir(tmp_path) == tmp_path

    def test_environment_root(self, tmp_path, monkeypatch):
        """Test the environment variable override."""
        monkeypatch.setenv(Config.HOME_ENV_VAR, str(tmp_path / "env_home"))
        assert Config.home_dir() == tmp_path / "env_home"
        assert Workspace().root == (tmp_path / "env_home").resolve()

    def test_session_dirs_are_disjoint(self, workspace):
        """Test that the two sessions never share a directory."""
        assert workspace.session_dir(RECORD) != workspace.session_dir(LISTEN)
        assert workspace.session_dir(RECORD).name == "scratch_record"
        assert workspace.session_dir(LISTEN).name == "scratch_listen"


class TestStartup:
    """Test preparing the storage root and recovering sessions."""

    def test_fresh_root(self, workspace):
        """Test the first run against an empty root."""
        states = workspace.startup()

        for name in ["scratch_record", "scratch_listen", "loaded_examples", "scratch_zips"]:
            assert (workspace.root / name).is_dir()
        assert workspace.list_example_indices() == [1, 2]
        assert workspace.catalog.source == "bundled"
        for mode in SessionMode:
            assert states[mode].selected_example == 1
            assert states[mode].user_annotations == [""] * 5
            assert workspace.store.has_state(workspace.session_dir(mode))
        assert not workspace.error_handler.has_warnings()

    def test_scratch_and_public_folders_are_emptied(self, workspace):
        """Test cleanup of leftovers from an earlier run."""
        workspace.scratch_zips_dir.mkdir(parents=True)
        (workspace.scratch_zips_dir / "loaded.zip").write_bytes(b"old")
        workspace.public_dir.mkdir(parents=True)
        (workspace.public_dir / "shared.1.zip").write_bytes(b"old")

        workspace.startup()

        assert names(workspace.scratch_zips_dir) == []
        assert not workspace.public_dir.exists()

    def test_corrupt_state_is_reset(self, started, catalog):
        """Test that a corrupt recording is replaced by a default session."""
        listen = started.load_session(LISTEN)
        listen.set_selected_language("Zulu")
        started.save_session(listen, LISTEN)
        (started.session_dir(RECORD) / "state.json").write_text("{broken", encoding="utf-8")

        restarted = Workspace(root=started.root, catalog=catalog)
        states = restarted.startup()

        assert states[RECORD] == SessionState(
            timestamp=states[RECORD].timestamp,
            user_annotations=[""] * 5,
            expert_annotations=[""] * 5,
            num_columns=5,
        )
        assert states[LISTEN].selected_language == "Zulu"
        assert restarted.error_handler.has_warnings()
        assert not restarted.error_handler.has_errors()
        warning = restarted.error_handler.warnings[0]
        assert warning.error_code == "STATE_002"
        assert warning.severity == ErrorSeverity.WARNING

    def test_out_of_range_clip_is_reset(self, recorded, catalog):
        """Test that a recording with a clip for a missing column is discarded."""
        write_wav(recorded.clip_path(RECORD, 9))

        restarted = Workspace(root=recorded.root, catalog=catalog)
        restarted.startup()

        assert names(restarted.session_dir(RECORD)) == ["state.json"]
        assert restarted.error_handler.warnings[0].error_code == "ARCHIVE_VALIDATION_004"

    def test_clips_without_state_are_reset(self, started, catalog):
        """Test a session directory that lost its state.json."""
        (started.session_dir(RECORD) / "state.json").unlink()
        write_wav(started.clip_path(RECORD, 1))

        restarted = Workspace(root=started.root, catalog=catalog)
        restarted.startup()

        assert names(restarted.session_dir(RECORD)) == ["state.json"]
        assert restarted.error_handler.warnings[0].error_code == "ARCHIVE_VALIDATION_001"

    def test_valid_sessions_survive_restart(self, recorded, catalog):
        """Test that a good recording is kept as it is."""
        restarted = Workspace(root=recorded.root, catalog=catalog)
        states = restarted.startup()

        assert states[RECORD].user_annotations[0] == "a red chair"
        assert names(restarted.session_dir(RECORD)) == ["clip.1.wav", "clip.3.wav", "state.json"]

    def test_recovery_replaces_earlier_warnings(self, started):
        """Test that each recovery reports only what it found itself."""
        (started.session_dir(LISTEN) / "state.json").write_text("{broken", encoding="utf-8")
        started.recover_sessions()
        assert started.error_handler.has_warnings()

        started.recover_sessions()

        assert not started.error_handler.has_warnings()
        assert started.error_handler.get_error_summary()['warning_count'] == 0

    def test_sessions_checked_against_imported_examples(self, recorded, catalog, tmp_path):
        """Test that recovery uses the examples zip given at startup."""
        write_wav(recorded.clip_path(RECORD, 5))
        zip_path = make_examples_zip(tmp_path, {"example_1": "10\n01\n"})

        restarted = Workspace(root=recorded.root, catalog=catalog)
        restarted.startup(examples_zip=zip_path)

        assert restarted.get_example(1).columns == 2
        assert names(restarted.session_dir(RECORD)) == ["state.json"]
        assert restarted.load_session(RECORD).num_columns == 2


class TestSessions:
    """Test loading, saving and starting sessions."""

    def test_start_recording(self, started):
        """Test starting a recording for the 3-column example."""
        write_wav(started.clip_path(RECORD, 1))

        state = started.start_recording(2, "Yoruba", "Nigeria", None)

        assert state.selected_example == 2
        assert state.num_columns == 3
        assert state.entered_region == ""
        assert names(started.session_dir(RECORD)) == ["state.json"]
        assert started.load_session(RECORD) == state

    def test_start_recording_unknown_example(self, started):
        """Test that a recording needs a loaded example."""
        with pytest.raises(NotFoundError):
            started.start_recording(42)

    def test_short_session_is_padded_and_saved(self, started):
        """Test a session saved when its example had fewer columns."""
        directory = started.session_dir(RECORD)
        (directory / "state.json").write_text(json.dumps({
            "selectedIndex": 1,
            "numColumns": 2,
            "userAnnotations": ["a", "b"],
            "expertAnnotations": ["c", "d"],
        }), encoding="utf-8")

        state = started.load_session(RECORD)

        assert state.num_columns == 5
        assert state.user_annotations == ["a", "b", "Missing", "Missing", "Missing"]
        assert state.expert_annotations == ["c", "d", "Missing", "Missing", "Missing"]
        saved = json.loads((directory / "state.json").read_text(encoding="utf-8"))
        assert saved['numColumns'] == 5
        assert started.load_session(RECORD) == state

    def test_unknown_example_is_reported(self, started):
        """Test a session for an example that is not loaded."""
        directory = started.session_dir(RECORD)
        (directory / "state.json").write_text(json.dumps({
            "selectedIndex": 9,
            "numColumns": 2,
            "userAnnotations": ["a", "b"],
            "expertAnnotations": ["", ""],
        }), encoding="utf-8")

        state = started.load_session(RECORD)

        assert state.user_annotations == ["a", "b"]
        warning = started.error_handler.warnings[-1]
        assert warning.error_code == "WORKSPACE_003"
        assert "Reset the session" in warning.suggested_actions

    def test_long_session_is_kept_and_reported(self, started):
        """Test a session with more columns than its example."""
        directory = started.session_dir(RECORD)
        stored = json.dumps({
            "selectedIndex": 2,
            "numColumns": 4,
            "userAnnotations": ["a", "b", "c", "d"],
            "expertAnnotations": ["", "", "", ""],
        })
        (directory / "state.json").write_text(stored, encoding="utf-8")

        state = started.load_session(RECORD)

        assert state.user_annotations == ["a", "b", "c", "d"]
        assert (directory / "state.json").read_text(encoding="utf-8") == stored
        warning = started.error_handler.warnings[-1]
        assert warning.error_code == "WORKSPACE_004"
        assert warning.context == {'file': str(directory), 'expected': 3, 'found': 4}

    def test_load_session_from_directory(self, started, tmp_path):
        """Test loading a session outside the workspace root."""
        state = started.load_session(tmp_path / "elsewhere")
        assert state.num_columns == 5
        assert (tmp_path / "elsewhere" / "state.json").is_file()

    def test_reset_session(self, recorded):
        """Test discarding a recording."""
        state = recorded.reset_session(RECORD)

        assert state.user_annotations == [""] * 5
        assert state.selected_language == ""
        assert names(recorded.session_dir(RECORD)) == ["state.json"]

    def test_clip_path(self, workspace):
        """Test where the recorder writes a column's clip."""
        assert workspace.clip_path(RECORD, 4) == workspace.session_dir(RECORD) / "clip.4.wav"

    def test_missing_clips(self, recorded):
        """Test listing the columns still to be recorded."""
        assert recorded.missing_clips(RECORD) == [2, 4, 5]


class TestArchives:
    """Test exporting and importing shareable sessions."""

    def test_export_and_import(self, recorded, tmp_path):
        """Test that an exported recording loads back into the listening session."""
        out = tmp_path / "shared"

        path = recorded.export_session(RECORD, out)

        assert path == out / "example_1_yoruba_nigeria.1.zip"
        loaded = recorded.import_archive(path)
        assert loaded == recorded.store.load(recorded.session_dir(RECORD))
        assert loaded.expert_annotations[2] == "aga pupa"
        assert names(recorded.session_dir(LISTEN)) == ["clip.1.wav", "clip.3.wav", "state.json"]

    def test_export_never_overwrites(self, recorded, tmp_path):
        """Test that repeated exports get increasing numbers."""
        first = recorded.export_session(RECORD, tmp_path)
        second = recorded.export_session(RECORD, tmp_path, name="My Recording")
        third = recorded.export_session(RECORD, tmp_path, name="My Recording")

        assert first.name == "example_1_yoruba_nigeria.1.zip"
        assert second.name == "my_recording.1.zip"
        assert third.name == "my_recording.2.zip"

    def test_suggested_archive_name(self, workspace):
        """Test the default archive base name."""
        state = SessionState(selected_example=2, selected_language="Yoruba", selected_country="Nigeria")
        assert workspace.suggested_archive_name(state) == "example_2_yoruba_nigeria"

    def test_export_archive(self, recorded, tmp_path):
        """Test packing an arbitrary session directory."""
        dest = recorded.export_archive(recorded.session_dir(RECORD), tmp_path / "copy.zip")
        assert dest.is_file()

    def test_import_invalid_archive_empties_session(self, started, tmp_path):
        """Test that a rejected archive leaves nothing behind."""
        state = SessionState()
        state.select_example(1, 5)
        wav = write_wav(tmp_path / "source.wav").read_bytes()
        zip_path = write_zip(tmp_path / "bad.zip", {
            "state.json": state.to_json().encode("utf-8"),
            "clip.7.wav": wav,
        })

        with pytest.raises(IntegrityError):
            started.import_archive(zip_path)
        assert names(started.session_dir(LISTEN)) == []

    def test_import_traversal_archive(self, started, tmp_path):
        """Test that an escaping entry is rejected and nothing is written."""
        zip_path = write_zip(tmp_path / "evil.zip", {"state.json": b"{}", "../../evil": b"pwned"})

        with pytest.raises(IntegrityError):
            started.import_archive(zip_path)
        assert names(started.session_dir(LISTEN)) == []
        assert not (started.root.parent / "evil").exists()

    def test_import_state_without_columns(self, started, tmp_path):
        """Test that an imported state with no annotations is sized to its example."""
        zip_path = write_zip(tmp_path / "bare.zip", {
            "state.json": SessionState(selected_example=1).to_json().encode("utf-8"),
        })

        state = started.import_archive(zip_path)

        table = started.get_example(1)
        assert state.num_columns == table.columns
        assert state.user_annotations == [""] * table.columns
        assert state.expert_annotations == [""] * table.columns
        assert started.store.load(started.session_dir(LISTEN)) == state

    def test_import_short_state_is_padded(self, started, tmp_path):
        """Test that an imported state with fewer columns than its example is padded."""
        state = SessionState()
        state.select_example(1, 2)
        state.set_user_annotation(1, "a red chair")
        zip_path = write_zip(tmp_path / "short.zip", {"state.json": state.to_json().encode("utf-8")})

        loaded = started.import_archive(zip_path)

        assert loaded.user_annotations == ["", "a red chair", "Missing", "Missing", "Missing"]
        assert len(loaded.expert_annotations) == 5
        saved = json.loads((started.session_dir(LISTEN) / "state.json").read_text(encoding="utf-8"))
        assert saved['numColumns'] == 5

    def test_import_state_for_unknown_example(self, started, tmp_path):
        """Test a clip-less session that refers to an example that is not loaded."""
        zip_path = write_zip(tmp_path / "unknown.zip", {
            "state.json": SessionState(selected_example=9).to_json().encode("utf-8"),
        })

        with pytest.raises(IntegrityError) as exc_info:
            started.import_archive(zip_path)
        assert exc_info.value.error_code == "ARCHIVE_VALIDATION_006"
        assert names(started.session_dir(LISTEN)) == []

    def test_import_state_with_too_many_columns(self, started, tmp_path):
        """Test a session with more annotation columns than its example."""
        state = SessionState()
        state.select_example(2, 4)
        zip_path = write_zip(tmp_path / "long.zip", {"state.json": state.to_json().encode("utf-8")})

        with pytest.raises(IntegrityError) as exc_info:
            started.import_archive(zip_path)
        assert exc_info.value.error_code == "ARCHIVE_VALIDATION_008"
        assert names(started.session_dir(LISTEN)) == []

    def test_import_archive_without_state(self, started, tmp_path):
        """Test a zip that only has clips."""
        wav = write_wav(tmp_path / "source.wav").read_bytes()
        zip_path = write_zip(tmp_path / "clips.zip", {"clip.1.wav": wav})

        with pytest.raises(NotFoundError):
            started.import_archive(zip_path)
        assert names(started.session_dir(LISTEN)) == []

    def test_edit_loaded_session(self, recorded, tmp_path):
        """Test copying the listening session into the recording session."""
        path = recorded.export_session(RECORD, tmp_path)
        recorded.import_archive(path)
        recorded.start_recording(2)

        state = recorded.edit_loaded_session()

        assert state.selected_example == 1
        assert state.user_annotations[0] == "a red chair"
        assert names(recorded.session_dir(RECORD)) == ["clip.1.wav", "clip.3.wav", "state.json"]
        assert names(recorded.scratch_zips_dir) == ["loaded.zip"]

    def test_edit_without_loaded_session(self, workspace):
        """Test editing before anything was loaded."""
        with pytest.raises(StorageError) as exc_info:
            workspace.edit_loaded_session()
        assert exc_info.value.error_code == "WORKSPACE_001"


class TestExampleSets:
    """Test swapping the example catalog."""

    def test_import_and_restore_examples(self, started, tmp_path):
        """Test loading examples from a zip and going back to the bundled ones."""
        zip_path = make_examples_zip(tmp_path, {"example_1": "10\n01\n", "example_4": "111\n"})

        assert started.import_examples(zip_path) == [1, 4]
        assert started.get_example(4).columns == 3
        assert names(started.loaded_examples_dir) == ["my_examples"]

        assert started.restore_bundled_examples() == [1, 2]
        assert started.get_example(1).columns == 5
        assert names(started.loaded_examples_dir) == []

    def test_bad_examples_zip_keeps_catalog(self, started, tmp_path):
        """Test that a broken examples zip does not disturb the loaded examples."""
        zip_path = write_zip(tmp_path / "bad.zip", {"top/readme.txt": b"no examples here"})

        with pytest.raises(CatalogFormatError):
            started.import_examples(zip_path)
        assert started.list_example_indices() == [1, 2]
