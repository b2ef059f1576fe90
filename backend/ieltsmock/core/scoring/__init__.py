"""
Pure scoring functions: answer normalization, per-question and per-module
scoring, band conversion and overall aggregation.
"""
from ieltsmock.core.scoring.aggregation import MODULE_KEYS, aggregate_overall_band
from ieltsmock.core.scoring.answer_keys import (
    AnswerKey,
    MultiPartAnswerKey,
    SingleAnswerKey,
    decode_answer_key,
)
from ieltsmock.core.scoring.bands import (
    DEFAULT_LISTENING_READING_TABLE,
    PERCENTAGE_TABLE,
    BandThreshold,
    BandThresholdTable,
    band_from_percentage,
    band_from_raw_score,
    get_band_description,
    ielts_round,
    table_from_models,
    validate_band,
    writing_band_from_criteria,
    writing_band_from_tasks,
)
from ieltsmock.core.scoring.breakdown import (
    BandConverter,
    ModuleBreakdown,
    SliceScore,
    default_band_converter,
    score_module_breakdown,
)
from ieltsmock.core.scoring.module_scorer import (
    ModuleScoreResult,
    round_half_up,
    score_module,
    summarize_scores,
)
from ieltsmock.core.scoring.normalizer import UNANSWERED, normalize_answer
from ieltsmock.core.scoring.question_scorer import (
    QuestionScore,
    ScorableQuestion,
    score_question,
)

__all__ = [
    "MODULE_KEYS",
    "aggregate_overall_band",
    "AnswerKey",
    "MultiPartAnswerKey",
    "SingleAnswerKey",
    "decode_answer_key",
    "BandConverter",
    "ModuleBreakdown",
    "SliceScore",
    "default_band_converter",
    "score_module_breakdown",
    "DEFAULT_LISTENING_READING_TABLE",
    "PERCENTAGE_TABLE",
    "BandThreshold",
    "BandThresholdTable",
    "band_from_percentage",
    "band_from_raw_score",
    "get_band_description",
    "ielts_round",
    "table_from_models",
    "validate_band",
    "writing_band_from_criteria",
    "writing_band_from_tasks",
    "ModuleScoreResult",
    "round_half_up",
    "score_module",
    "summarize_scores",
    "UNANSWERED",
    "normalize_answer",
    "QuestionScore",
    "ScorableQuestion",
    "score_question",
]
