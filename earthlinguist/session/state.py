"""
The session state record kept for the recording and the listening session.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import Config
from ..errors import CorruptStateError
from ..models import TableModel


logger = logging.getLogger(__name__)

_INT_FIELDS = {
    'selectedIndex': 'selected_example',
    'selectedSampleIndex': 'selected_sample_index',
    'numColumns': 'num_columns',
}
_STR_FIELDS = {
    'selectedExampleName': 'selected_example_name',
    'selectedLanguage': 'selected_language',
    'selectedCountry': 'selected_country',
    'enteredRegion': 'entered_region',
}
_LIST_FIELDS = {
    'userAnnotations': 'user_annotations',
    'expertAnnotations': 'expert_annotations',
}


@dataclass
class SessionState:
    """
    One user's session against a chosen example.

    Mutators only change the record; persisting it is an explicit
    ``SessionStore.save`` call made by the caller.
    """
    selected_example: int = 1
    selected_language: str = ""
    selected_country: str = ""
    entered_region: str = ""
    selected_sample_index: int = 1
    timestamp: Optional[str] = None
    user_annotations: List[str] = field(default_factory=list)
    expert_annotations: List[str] = field(default_factory=list)
    num_columns: int = 0
    selected_example_name: str = ""

    # Field mutators

    def set_selected_example(self, index: int) -> None:
        if index < 1:
            raise ValueError(f"Invalid selected example: {index}")
        self.selected_example = index

    def set_selected_sample_index(self, index: int) -> None:
        if index < 1:
            raise ValueError(f"Invalid selected sample index: {index}")
        self.selected_sample_index = index

    def set_selected_language(self, language: Optional[str]) -> None:
        self.selected_language = language or ""

    def set_selected_country(self, country: Optional[str]) -> None:
        self.selected_country = country or ""

    def set_entered_region(self, region: Optional[str]) -> None:
        self.entered_region = region or ""

    def set_user_annotation(self, column_index: int, text: Optional[str]) -> None:
        """Set the user annotation for a 0-based column index."""
        self._check_column(column_index)
        self.user_annotations[column_index] = text or ""

    def set_expert_annotation(self, column_index: int, text: Optional[str]) -> None:
        """Set the expert annotation for a 0-based column index."""
        self._check_column(column_index)
        self.expert_annotations[column_index] = text or ""

    def _check_column(self, column_index: int) -> None:
        if not 0 <= column_index < self.num_columns:
            raise IndexError(
                f"Column index {column_index} out of range for {self.num_columns} column(s)"
            )

    # Shape handling

    def select_example(self, index: int, columns: int) -> None:
        """Switch to a different example, starting from blank annotations."""
        if columns < 0:
            raise ValueError(f"Invalid column count: {columns}")
        self.set_selected_example(index)
        self.num_columns = columns
        self.user_annotations = [""] * columns
        self.expert_annotations = [""] * columns

    def resize_annotations(self, columns: int, fill: str = Config.MISSING_ANNOTATION) -> bool:
        """
        Grow both annotation arrays to ``columns`` entries.

        Existing entries keep their column positions; new slots get ``fill``.
        Shrinking would lose annotations and is refused.

        Returns:
            True if anything changed
        """
        longest = max(len(self.user_annotations), len(self.expert_annotations), self.num_columns)
        if columns < longest:
            raise ValueError(
                f"Cannot shrink annotations from {longest} to {columns} column(s) without dropping entries"
            )

        changed = columns != self.num_columns
        if len(self.user_annotations) < columns:
            self.user_annotations = self.user_annotations + [fill] * (columns - len(self.user_annotations))
            changed = True
        if len(self.expert_annotations) < columns:
            self.expert_annotations = self.expert_annotations + [fill] * (columns - len(self.expert_annotations))
            changed = True
        self.num_columns = columns
        return changed

    def reconcile(self) -> bool:
        """
        Heal annotation arrays after deserialization.

        The recorded column count is raised to the longest array if needed and
        both arrays are padded with the missing-annotation marker.
        """
        columns = max(self.num_columns, len(self.user_annotations), len(self.expert_annotations))
        changed = self.resize_annotations(columns)
        if changed:
            logger.warning(f"Padded session annotations to {columns} column(s)")
        return changed

    def is_consistent_with(self, table: TableModel) -> bool:
        """True if both annotation arrays match the table's column count."""
        return (len(self.user_annotations) == len(self.expert_annotations)
                == self.num_columns == table.columns)

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the state.json representation."""
        return {
            'selectedExampleName': self.selected_example_name,
            'selectedIndex': self.selected_example,
            'selectedLanguage': self.selected_language,
            'selectedCountry': self.selected_country,
            'enteredRegion': self.entered_region,
            'selectedSampleIndex': self.selected_sample_index,
            'timeStamp': self.timestamp,
            'userAnnotations': list(self.user_annotations),
            'expertAnnotations': list(self.expert_annotations),
            'numColumns': self.num_columns,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionState':
        """
        Create an instance from the state.json representation.

        Missing keys keep their defaults; present keys must have the right type.

        Raises:
            CorruptStateError: On a wrong type or an out-of-range index
        """
        if not isinstance(data, dict):
            raise _corrupt(f"expected a JSON object, found {type(data).__name__}")

        kwargs = {}
        for key, attr in _INT_FIELDS.items():
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, int):
                    raise _corrupt(f"'{key}' must be an integer, found {value!r}", key)
                kwargs[attr] = value

        for key, attr in _STR_FIELDS.items():
            if key in data and data[key] is not None:
                if not isinstance(data[key], str):
                    raise _corrupt(f"'{key}' must be a string, found {data[key]!r}", key)
                kwargs[attr] = data[key]

        for key, attr in _LIST_FIELDS.items():
            if key in data and data[key] is not None:
                value = data[key]
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise _corrupt(f"'{key}' must be a list of strings", key)
                kwargs[attr] = list(value)

        timestamp = data.get('timeStamp')
        if timestamp is not None and not isinstance(timestamp, str):
            raise _corrupt(f"'timeStamp' must be a string, found {timestamp!r}", 'timeStamp')
        kwargs['timestamp'] = timestamp

        state = cls(**kwargs)
        if state.selected_example < 1:
            raise _corrupt(f"'selectedIndex' must be at least 1, found {state.selected_example}", 'selectedIndex')
        if state.selected_sample_index < 1:
            raise _corrupt(
                f"'selectedSampleIndex' must be at least 1, found {state.selected_sample_index}",
                'selectedSampleIndex',
            )
        if state.num_columns < 0:
            raise _corrupt(f"'numColumns' must not be negative, found {state.num_columns}", 'numColumns')

        if 'numColumns' not in data:
            state.num_columns = max(len(state.user_annotations), len(state.expert_annotations))
        return state

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> 'SessionState':
        """
        Deserialize from JSON string.

        Raises:
            CorruptStateError: If the text is not valid JSON or has the wrong shape
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise _corrupt(f"invalid JSON ({e.msg} at line {e.lineno})") from e
        return cls.from_dict(data)

    def __str__(self) -> str:
        parts = [f"Example #{self.selected_example}", self.selected_language,
                 self.selected_country, self.entered_region]
        parts.extend(self.user_annotations)
        parts.extend(self.expert_annotations)
        parts.append(str(self.timestamp))
        return "SessionState: " + ", ".join(parts)


def _corrupt(reason: str, key: Optional[str] = None) -> CorruptStateError:
    context = {'file': Config.STATE_FILENAME}
    if key is not None:
        context['field'] = key
    return CorruptStateError.create(
        f"Could not parse {Config.STATE_FILENAME}: {reason}",
        suggested_actions=["Discard the session and start again"],
        error_code="STATE_002",
        context=context,
    )
