"""
Content-agnostic packing and unpacking of directory trees to and from zip archives.

Used for shareable sessions (``state.json`` plus ``clip.<n>.wav`` files) and
for example-catalog imports. Nothing here interprets file contents.
"""

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import List, Union

from ..config import Config
from ..errors import FormatError, IntegrityError, NotFoundError, StorageError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def pack(source_dir: PathLike, dest_zip: PathLike) -> Path:
    """
    Zip every regular file under ``source_dir`` into ``dest_zip``.

    Entry names are the files' paths relative to ``source_dir`` with POSIX
    separators. Empty directories are omitted. The archive is written to a
    temporary file next to ``dest_zip`` and moved into place when complete.

    Args:
        source_dir: Directory to archive
        dest_zip: Path of the zip file to create or overwrite

    Returns:
        Path to the written archive

    Raises:
        NotFoundError: If ``source_dir`` does not exist or is not a directory
        StorageError: If the archive cannot be written
    """
    source = Path(source_dir)
    dest = Path(dest_zip)

    if not source.is_dir():
        raise NotFoundError.create(
            f"Source directory not found: {source}",
            suggested_actions=["Check that the session directory exists"],
            error_code="ARCHIVE_PACK_001",
            context={'file': str(source)},
        )

    dest_resolved = dest.resolve()
    files = _collect_regular_files(source, exclude=dest_resolved)
    temp_path = None

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="wb",
            suffix=".zip.tmp",
            dir=dest.parent,
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            with zipfile.ZipFile(f, "w", zipfile.ZIP_DEFLATED) as zf:
                for file_path in files:
                    arcname = file_path.relative_to(source).as_posix()
                    zf.write(file_path, arcname)
                    logger.debug(f"Packed {arcname}")
        temp_path.replace(dest)
    except OSError as e:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()
        raise StorageError.create(
            f"Could not write archive {dest}: {e}",
            error_code="ARCHIVE_PACK_002",
            context={'file': str(dest)},
        ) from e

    logger.info(f"Packed {len(files)} file(s) from {source} into {dest}")
    return dest


def _collect_regular_files(source: Path, exclude: Path) -> List[Path]:
    """Walk ``source`` and return its regular files in a stable order."""
    files = []
    for dirpath, dirnames, filenames in os.walk(source):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_symlink() or not path.is_file():
                continue
            if path.resolve() == exclude:
                continue
            files.append(path)
    return files


def unpack(zip_path: PathLike, dest_dir: PathLike) -> List[Path]:
    """
    Extract ``zip_path`` into ``dest_dir``.

    Every entry's destination is resolved and checked against ``dest_dir``
    before anything is written; an entry escaping the target directory
    rejects the whole archive. Existing files are overwritten.

    Args:
        zip_path: Archive to extract
        dest_dir: Target directory, created if missing

    Returns:
        Paths of the extracted files

    Raises:
        NotFoundError: If the archive does not exist
        FormatError: If the file is not a readable zip archive
        IntegrityError: If an entry would land outside ``dest_dir``
        StorageError: If a directory or file cannot be created
    """
    archive = Path(zip_path)
    target = Path(dest_dir)

    if not archive.is_file():
        raise NotFoundError.create(
            f"Archive not found: {archive}",
            error_code="ARCHIVE_UNPACK_001",
            context={'file': str(archive)},
        )

    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError.create(
            f"Could not create directory {target}: {e}",
            error_code="ARCHIVE_UNPACK_002",
            context={'file': str(target)},
        ) from e

    target_root = target.resolve()
    extracted = []

    try:
        with zipfile.ZipFile(archive, "r") as zf:
            infos = zf.infolist()
            destinations = [_safe_destination(target_root, info.filename) for info in infos]

            for info, destination in zip(infos, destinations):
                if info.is_dir():
                    destination.mkdir(parents=True, exist_ok=True)
                    continue
                destination.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(destination, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                extracted.append(destination)
                logger.debug(f"Extracted {info.filename}")
    except zipfile.BadZipFile as e:
        raise FormatError.create(
            f"Not a valid zip archive: {archive.name}",
            details=str(e),
            suggested_actions=["Choose a .zip file created by EarthLinguist"],
            error_code="ARCHIVE_UNPACK_003",
            context={'file': str(archive)},
        ) from e
    except OSError as e:
        raise StorageError.create(
            f"Could not extract {archive.name} into {target}: {e}",
            error_code="ARCHIVE_UNPACK_004",
            context={'file': str(archive)},
        ) from e

    logger.info(f"Unpacked {len(extracted)} file(s) from {archive} into {target}")
    return extracted


def _safe_destination(target_root: Path, entry_name: str) -> Path:
    """Resolve an entry name under ``target_root``, rejecting anything that escapes it."""
    destination = (target_root / entry_name).resolve()
    if target_root not in destination.parents:
        raise IntegrityError.create(
            f"Entry is outside of the target directory: {entry_name}",
            details=f"Resolved to {destination}, expected a path under {target_root}",
            suggested_actions=["Do not load archives from untrusted sources"],
            error_code="ARCHIVE_UNPACK_005",
            context={'file': entry_name, 'expected': str(target_root), 'found': str(destination)},
        )
    return destination


def clear_directory(directory: PathLike) -> None:
    """
    Recursively delete everything inside ``directory`` but keep the directory.

    A missing directory is left alone. The first file that cannot be removed
    aborts the operation.

    Raises:
        StorageError: If any file or subdirectory cannot be deleted
    """
    root = Path(directory)
    if not root.is_dir():
        return

    for child in sorted(root.iterdir()):
        if child.is_dir() and not child.is_symlink():
            clear_directory(child)
            _remove(child, child.rmdir)
        else:
            _remove(child, child.unlink)

    logger.debug(f"Cleared directory {root}")


def _remove(path: Path, remover) -> None:
    try:
        remover()
    except OSError as e:
        raise StorageError.create(
            f"Error deleting file: {path.name}",
            details=str(e),
            suggested_actions=["Check file permissions", "Close programs using the file"],
            error_code="ARCHIVE_CLEAR_001",
            context={'file': str(path)},
        ) from e


def normalize_archive_name(name: str) -> str:
    """Replace spaces with underscores and lower-case the name."""
    return name.replace(" ", "_").lower()


def next_available_name(directory: PathLike, base_name: str) -> str:
    """
    Return ``<base_name>.<i>.zip`` for the smallest ``i >= 1`` not yet taken in ``directory``.

    The candidate name is normalized (spaces to underscores, lower case)
    before it is probed.
    """
    folder = Path(directory)
    i = 1
    while True:
        candidate = normalize_archive_name(f"{base_name}.{i}.{Config.ARCHIVE_EXTENSION}")
        if not (folder / candidate).exists():
            return candidate
        i += 1
