"""
EarthLinguist: example tables, recording sessions and shareable session archives.
"""

from .catalog import ExampleCatalog
from .config import Config, SessionMode
from .errors import (
    EarthLinguistError,
    FormatError,
    IntegrityError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .models import CheckboxRow, TableModel
from .session import SessionState, SessionStore
from .workspace import Workspace

__version__ = "0.1.0"

__all__ = [
    'CheckboxRow',
    'Config',
    'EarthLinguistError',
    'ExampleCatalog',
    'FormatError',
    'IntegrityError',
    'NotFoundError',
    'SessionMode',
    'SessionState',
    'SessionStore',
    'StorageError',
    'TableModel',
    'ValidationError',
    'Workspace',
]
