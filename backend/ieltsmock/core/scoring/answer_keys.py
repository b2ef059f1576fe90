"""
Typed answer keys decoded from stored correct-answer JSON.

Correct answers are stored as loosely-typed JSON (a string, a list of
strings, or a keyed and possibly nested map). They are decoded here, at the
storage boundary, into one of two variants so that the question scorer can
dispatch on the variant instead of sniffing shapes:

- SingleAnswerKey: one blank, with one or more accepted spellings.
- MultiPartAnswerKey: several independently marked parts (matching,
  headings, notes/summary completion), each with accepted spellings.

Decoding never mutates the stored value; it builds fresh canonicalized tuples.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ieltsmock.core.exceptions import UnscorableQuestion
from ieltsmock.core.scoring.normalizer import (
    SINGLE_PART_TYPES,
    UNANSWERED,
    canonical_value,
    flatten_parts,
)
from ieltsmock.models.models import QuestionType


@dataclass(frozen=True)
class SingleAnswerKey:
    """Accepted canonical spellings for a single-part question."""

    accepted: tuple[str, ...]

    def matches(self, normalized: Any) -> bool:
        return normalized is not UNANSWERED and normalized in self.accepted


@dataclass(frozen=True)
class MultiPartAnswerKey:
    """Accepted canonical spellings per part, keyed by part identifier."""

    parts: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def total_parts(self) -> int:
        return len(self.parts)


AnswerKey = Union[SingleAnswerKey, MultiPartAnswerKey]


def _accepted_spellings(
    value: Any, question_type: QuestionType
) -> tuple[str, ...]:
    """Canonicalize a scalar or list of alternatives into a tuple."""
    candidates = value if isinstance(value, (list, tuple)) else [value]
    accepted = []
    for candidate in candidates:
        text = canonical_value(candidate, question_type)
        if text is not UNANSWERED and text not in accepted:
            accepted.append(text)
    return tuple(accepted)


def decode_answer_key(
    question_type: QuestionType,
    raw: Any,
    question_id: Optional[Any] = None,
) -> AnswerKey:
    """
    Decode a stored correct answer into a typed answer key.

    Args:
        question_type: Type of the question the key belongs to
        raw: The stored JSON value (string, list, or map)
        question_id: Used only for error reporting

    Returns:
        SingleAnswerKey for single-part types, MultiPartAnswerKey otherwise

    Raises:
        UnscorableQuestion: If the key is missing or has no usable values
    """
    if raw is None:
        raise UnscorableQuestion(question_id, "correct answer is missing")

    question_type = QuestionType(question_type)

    if question_type in SINGLE_PART_TYPES:
        if isinstance(raw, Mapping):
            raise UnscorableQuestion(
                question_id, f"{question_type.value} key must not be a map"
            )
        accepted = _accepted_spellings(raw, question_type)
        if not accepted:
            raise UnscorableQuestion(question_id, "correct answer is empty")
        return SingleAnswerKey(accepted=accepted)

    # Multi-part: a map is flattened, a list is indexed, a scalar is one part
    if isinstance(raw, Mapping):
        flat = flatten_parts(raw)
    elif isinstance(raw, (list, tuple)):
        flat = {str(index): value for index, value in enumerate(raw)}
    else:
        flat = {"0": raw}

    parts = {}
    for part_id, value in flat.items():
        accepted = _accepted_spellings(value, question_type)
        if not accepted:
            raise UnscorableQuestion(
                question_id, f"correct answer for part {part_id!r} is empty"
            )
        parts[part_id] = accepted

    if not parts:
        raise UnscorableQuestion(question_id, "correct answer has no parts")

    return MultiPartAnswerKey(parts=parts)
