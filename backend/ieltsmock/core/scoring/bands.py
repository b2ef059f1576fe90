"""
Band conversion.

Two policies turn scores into IELTS bands:

- Threshold tables (Listening/Reading): the first row of a descending
  {min_score, band} table whose min_score the raw score reaches.
- Percentage staircase (remedial tests without a stored table): the same
  rule over a fixed 5%-step table.

Writing and Speaking bands come from instructor criteria instead, averaged and
rounded with the IELTS rule (nearest half band, halves rounded up).
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ieltsmock.core.config import settings
from ieltsmock.core.exceptions import InvalidBandScore, InvalidBandTable

MIN_BAND = 0.0
MAX_BAND = 9.0

# Absorbs float error so e.g. 6.25 stays on the upper side of the midpoint
_ROUNDING_TOLERANCE = 1e-9


def ielts_round(value: float) -> float:
    """
    Round to the nearest half band, with midpoints rounded up.

    Example:
        >>> ielts_round(6.25)
        6.5
        >>> ielts_round(6.6667)
        6.5
    """
    return math.floor(value * 2 + 0.5 + _ROUNDING_TOLERANCE) / 2


def validate_band(value: float) -> float:
    """
    Check that a band is within [0, 9] and a multiple of 0.5.

    Returns:
        The band as a float

    Raises:
        InvalidBandScore: If the value is out of range or off the half-point grid
    """
    try:
        band = float(value)
    except (TypeError, ValueError):
        raise InvalidBandScore(f"Band must be a number, got {value!r}", value=value)
    if math.isnan(band) or band < MIN_BAND or band > MAX_BAND:
        raise InvalidBandScore(
            f"Band {value} is outside [{MIN_BAND}, {MAX_BAND}]", value=value
        )
    if abs(band * 2 - round(band * 2)) > _ROUNDING_TOLERANCE:
        raise InvalidBandScore(
            f"Band {value} is not a multiple of 0.5", value=value
        )
    return band


@dataclass(frozen=True)
class BandThreshold:
    """One row of a conversion table."""

    min_score: float
    band: float


class BandThresholdTable:
    """
    A conversion table sorted descending by min_score.

    Construction sorts the rows and enforces monotonicity: band never
    increases as min_score decreases.
    """

    def __init__(self, thresholds: Iterable[BandThreshold]):
        rows = sorted(thresholds, key=lambda row: row.min_score, reverse=True)
        if not rows:
            raise InvalidBandTable("Band threshold table is empty")

        seen_scores = set()
        for row in rows:
            validate_band(row.band)
            if row.min_score in seen_scores:
                raise InvalidBandTable(
                    f"Duplicate min_score {row.min_score} in band table",
                    min_score=row.min_score,
                )
            seen_scores.add(row.min_score)

        for higher, lower in zip(rows, rows[1:]):
            if lower.band > higher.band:
                raise InvalidBandTable(
                    f"Band table is not monotonic: min_score {lower.min_score} "
                    f"maps to {lower.band} but {higher.min_score} maps to "
                    f"{higher.band}",
                    min_score=lower.min_score,
                )

        self._rows: tuple[BandThreshold, ...] = tuple(rows)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[float, float]]) -> "BandThresholdTable":
        """Build a table from (min_score, band) pairs."""
        return cls(BandThreshold(min_score=score, band=band) for score, band in pairs)

    @property
    def rows(self) -> tuple[BandThreshold, ...]:
        return self._rows

    @property
    def lowest_band(self) -> float:
        return self._rows[-1].band

    def lookup(self, score: float) -> float:
        """Band of the first row whose min_score the score reaches."""
        for row in self._rows:
            if score >= row.min_score:
                return row.band
        return self.lowest_band

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{row.min_score}->{row.band}" for row in self._rows)
        return f"BandThresholdTable({pairs})"


# Standard 40-item Listening/Reading conversion
DEFAULT_LISTENING_READING_TABLE = BandThresholdTable.from_pairs(
    [
        (40, 9.0),
        (39, 8.5),
        (38, 8.0),
        (37, 7.5),
        (36, 7.0),
        (35, 6.5),
        (32, 6.0),
        (29, 5.5),
        (26, 5.0),
        (23, 4.5),
        (20, 4.0),
        (17, 3.5),
        (14, 3.0),
        (11, 2.5),
        (8, 2.0),
        (5, 1.5),
        (2, 1.0),
        (1, 0.5),
        (0, 0.0),
    ]
)

PERCENTAGE_TABLE = BandThresholdTable.from_pairs(
    [
        (95, 9.0),
        (90, 8.5),
        (85, 8.0),
        (80, 7.5),
        (75, 7.0),
        (70, 6.5),
        (65, 6.0),
        (60, 5.5),
        (55, 5.0),
        (50, 4.5),
        (45, 4.0),
        (40, 3.5),
        (35, 3.0),
        (30, 2.5),
        (25, 2.0),
        (20, 1.5),
        (15, 1.0),
        (10, 0.5),
        (0, 0.0),
    ]
)

_BAND_DESCRIPTIONS = (
    (9.0, "Expert User"),
    (8.0, "Very Good User"),
    (7.0, "Good User"),
    (6.0, "Competent User"),
    (5.0, "Modest User"),
    (4.0, "Limited User"),
    (3.0, "Extremely Limited User"),
    (2.0, "Intermittent User"),
    (1.0, "Non User"),
)


def band_from_raw_score(
    raw_score: float, table: Optional[BandThresholdTable] = None
) -> float:
    """
    Convert a raw score on the 40-item scale into a band.

    Args:
        raw_score: Score already rescaled to the table's scale
        table: The exam's own table; the standard table when None
    """
    return (table or DEFAULT_LISTENING_READING_TABLE).lookup(raw_score)


def band_from_percentage(percentage: float) -> float:
    """Convert a 0-100 percentage into a band via the fixed staircase."""
    return PERCENTAGE_TABLE.lookup(percentage)


def writing_band_from_criteria(
    task_achievement: float,
    coherence_cohesion: float,
    lexical_resource: float,
    grammar_accuracy: float,
) -> float:
    """
    Average the four Writing/Speaking criteria into a band.

    Raises:
        InvalidBandScore: If any criterion is not a valid band
    """
    criteria = [
        validate_band(task_achievement),
        validate_band(coherence_cohesion),
        validate_band(lexical_resource),
        validate_band(grammar_accuracy),
    ]
    return ielts_round(sum(criteria) / len(criteria))


def writing_band_from_tasks(
    task1_band: Optional[float] = None,
    task2_band: Optional[float] = None,
) -> float:
    """
    Combine Writing Task 1 and Task 2 bands, Task 2 weighted double.

    A single present task is used as is. At least one task is required.

    Example:
        >>> writing_band_from_tasks(6.0, 7.0)
        6.5
    """
    if task1_band is None and task2_band is None:
        raise InvalidBandScore("At least one task band is required")
    if task2_band is None:
        return validate_band(task1_band)
    if task1_band is None:
        return validate_band(task2_band)

    weight = settings.WRITING_TASK2_WEIGHT
    weighted = (validate_band(task1_band) + validate_band(task2_band) * weight) / (
        1 + weight
    )
    return ielts_round(weighted)


def get_band_description(band: Optional[float]) -> str:
    """IELTS user descriptor for a band."""
    if band is not None:
        for floor, description in _BAND_DESCRIPTIONS:
            if band >= floor:
                return description
    return "Did not attempt"


def table_from_models(thresholds: Sequence) -> Optional[BandThresholdTable]:
    """
    Build a table from stored BandThreshold rows.

    Returns:
        None when the exam has no rows, so callers fall back to the standard
        table
    """
    if not thresholds:
        return None
    return BandThresholdTable(
        BandThreshold(min_score=row.min_score, band=row.band) for row in thresholds
    )
