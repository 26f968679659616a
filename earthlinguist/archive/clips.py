"""
Audio clip naming and decodability checks.

A session stores one recording per table column as ``clip.<n>.wav`` with
``n`` the 1-based column number. Clip contents are opaque; the only content
check is that libsndfile can decode the file.
"""

import logging
import re
from pathlib import Path
from typing import Union

import soundfile as sf

from ..config import Config
from ..errors import IntegrityError


logger = logging.getLogger(__name__)

CLIP_NAME_PATTERN = re.compile(
    rf"^{Config.CLIP_PREFIX}\.([0-9]+)\.{Config.CLIP_EXTENSION}$"
)


def clip_filename(column: int) -> str:
    """Return the file name for a 1-based column number."""
    if column < 1:
        raise ValueError(f"Clip columns start at 1, got {column}")
    return f"{Config.CLIP_PREFIX}.{column}.{Config.CLIP_EXTENSION}"


def parse_clip_index(name: str) -> int:
    """
    Parse the column number out of a ``clip.<n>.wav`` file name.

    Raises:
        IntegrityError: If the name does not follow the convention or n < 1
    """
    match = CLIP_NAME_PATTERN.match(name)
    if not match or int(match.group(1)) < 1:
        raise IntegrityError.create(
            f"The directory contains a file that is not a clip for a column: {name}",
            details="Clip files must be named clip.<column>.wav with column >= 1",
            error_code="ARCHIVE_VALIDATION_003",
            context={'file': name, 'expected': 'clip.<n>.wav, n >= 1', 'found': name},
        )
    return int(match.group(1))


def check_clip_decodes(path: Union[str, Path]) -> None:
    """
    Open the clip with libsndfile and decode its frames.

    Raises:
        IntegrityError: If the file cannot be decoded as audio
    """
    path = Path(path)
    try:
        with sf.SoundFile(str(path)) as f:
            f.read(dtype='float32')
            logger.debug(
                f"Decoded {path.name}: {f.frames} frames, {f.samplerate}Hz, {f.channels} channel(s)"
            )
    except (sf.SoundFileError, RuntimeError, OSError) as e:
        raise IntegrityError.create(
            f"The directory contains a clip that is not a valid audio clip: {path.name}",
            details=str(e),
            suggested_actions=["Re-record the clip for this column"],
            error_code="ARCHIVE_VALIDATION_005",
            context={'file': path.name},
        ) from e
