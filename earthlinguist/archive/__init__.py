"""
Zip archives of session directories and example sets, and their validation.
"""

from .codec import clear_directory, next_available_name, normalize_archive_name, pack, unpack
from .clips import check_clip_decodes, clip_filename, parse_clip_index
from .validator import ArchiveValidator

__all__ = [
    'ArchiveValidator',
    'check_clip_decodes',
    'clear_directory',
    'clip_filename',
    'next_available_name',
    'normalize_archive_name',
    'pack',
    'parse_clip_index',
    'unpack',
]
