"""
Student answer normalization.

Raw answers arrive from the client as strings, option letters, numbers, or
objects. They are reduced to comparable canonical forms here:

- Scalars are stringified, trimmed and lower-cased.
- Multiple-choice answers written as "A) Option text" compare on the letter.
- Multi-part answers become a flat {part_id: canonical text} map; nested maps
  (notes completion with sub-items) use dotted part ids such as "notes.1".
- Anything empty or of an unusable shape becomes the UNANSWERED sentinel,
  which never matches a key.

Nothing here raises or mutates its input.
"""

import enum
import re
from collections.abc import Mapping
from typing import Any, Union

from ieltsmock.models.models import QuestionType

SINGLE_PART_TYPES = frozenset(
    {
        QuestionType.MULTIPLE_CHOICE,
        QuestionType.FILL_IN_BLANK,
        QuestionType.TRUE_FALSE_NOT_GIVEN,
    }
)

MULTI_PART_TYPES = frozenset(
    {
        QuestionType.MATCHING,
        QuestionType.MATCHING_HEADINGS,
        QuestionType.NOTES_COMPLETION,
        QuestionType.SUMMARY_COMPLETION,
    }
)

_MCQ_LETTER = re.compile(r"^([a-d])\)")

# Wrapper keys under which some clients nest a single-part answer
_SCALAR_WRAPPER_KEYS = ("answer", "value")


class _Unanswered(enum.Enum):
    UNANSWERED = "unanswered"

    def __repr__(self) -> str:
        return "UNANSWERED"


UNANSWERED = _Unanswered.UNANSWERED

NormalizedScalar = Union[str, _Unanswered]
NormalizedAnswer = Union[NormalizedScalar, dict[str, NormalizedScalar]]


def is_multi_part(question_type: QuestionType) -> bool:
    """Whether answers for this question type are marked part by part."""
    return QuestionType(question_type) in MULTI_PART_TYPES


def canonical_text(value: Any) -> NormalizedScalar:
    """Trim and lower-case a scalar; empty or non-scalar values are UNANSWERED."""
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return UNANSWERED
    if isinstance(value, bool):
        value = "true" if value else "false"
    text = str(value).strip().lower()
    return text if text else UNANSWERED


def flatten_parts(value: Mapping, prefix: str = "") -> dict[str, Any]:
    """
    Flatten a nested map into dotted part ids.

    Example:
        >>> flatten_parts({"notes": {"1": "a", "2": "b"}, "3": "c"})
        {'notes.1': 'a', 'notes.2': 'b', '3': 'c'}
    """
    flat: dict[str, Any] = {}
    for key, item in value.items():
        part_id = f"{prefix}{key}"
        if isinstance(item, Mapping):
            flat.update(flatten_parts(item, prefix=f"{part_id}."))
        else:
            flat[part_id] = item
    return flat


def _unwrap_scalar(raw: Any) -> Any:
    if isinstance(raw, Mapping):
        for key in _SCALAR_WRAPPER_KEYS:
            if key in raw:
                return raw[key]
        return None
    if isinstance(raw, (list, tuple)):
        return raw[0] if len(raw) == 1 else None
    return raw


def canonical_value(value: Any, question_type: QuestionType) -> NormalizedScalar:
    """canonical_text plus the option-letter reduction for multiple choice."""
    text = canonical_text(value)
    if text is UNANSWERED:
        return UNANSWERED
    if question_type == QuestionType.MULTIPLE_CHOICE:
        letter = _MCQ_LETTER.match(text)
        if letter:
            return letter.group(1)
    return text


def normalize_scalar(raw: Any, question_type: QuestionType) -> NormalizedScalar:
    """Normalize one answer value for comparison against a key."""
    return canonical_value(_unwrap_scalar(raw), question_type)


def normalize_parts(raw: Any, question_type: QuestionType) -> dict[str, NormalizedScalar]:
    """Normalize a multi-part answer into {part_id: normalized value}."""
    if isinstance(raw, Mapping):
        flat = flatten_parts(raw)
    elif isinstance(raw, (list, tuple)):
        flat = {str(index): item for index, item in enumerate(raw)}
    elif raw is None:
        flat = {}
    else:
        flat = {"0": raw}
    return {
        part_id: normalize_scalar(item, question_type) for part_id, item in flat.items()
    }


def normalize_answer(raw: Any, question_type: QuestionType) -> NormalizedAnswer:
    """
    Normalize a raw student answer for the given question type.

    Args:
        raw: The answer as submitted by the client
        question_type: Type of the question being answered

    Returns:
        A canonical string or UNANSWERED for single-part types, or a dict of
        part id to canonical string / UNANSWERED for multi-part types.
    """
    question_type = QuestionType(question_type)
    if is_multi_part(question_type):
        return normalize_parts(raw, question_type)
    return normalize_scalar(raw, question_type)
