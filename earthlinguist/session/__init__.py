"""
Session state for the recording and listening sessions.
"""

from .state import SessionState
from .store import SessionStore, format_current_datetime

__all__ = [
    'SessionState',
    'SessionStore',
    'format_current_datetime',
]
