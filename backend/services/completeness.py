"""
Completeness Scorer - how much of a usable PRD the record already holds.

Each dimension is scored from a handful of boolean sub-signals. The weights
and caps below are the product's quality bar; change them deliberately.
"""

from typing import List, Sequence

from models.requirement import RequirementRecord, QAEntry
from models.completeness import (
    COMPLETION_THRESHOLDS,
    DIMENSION_WEIGHTS,
    DIMENSIONS,
    CompletenessMetrics,
    DataModelScore,
    FunctionalLogicScore,
    ProblemDefinitionScore,
    QualityTier,
    UserInterfaceScore,
)

# Scores are rounded so that 0.4 + 0.3 compares equal to 0.7.
SCORE_PRECISION = 4


def _longer_than(text: str, length: int) -> bool:
    return len((text or "").strip()) > length


def _round(value: float) -> float:
    return round(value, SCORE_PRECISION)


def score_problem_definition(record: RequirementRecord) -> ProblemDefinitionScore:
    problem = record.problem_definition
    result = ProblemDefinitionScore(
        has_pain_point=_longer_than(problem.pain_point, 10),
        has_current_solution=_longer_than(problem.current_issue, 5),
        has_expected_outcome=_longer_than(problem.expected_solution, 5),
    )
    result.score = _round(
        (0.5 if result.has_pain_point else 0.0)
        + (0.3 if result.has_current_solution else 0.0)
        + (0.2 if result.has_expected_outcome else 0.0)
    )
    return result


def score_functional_logic(record: RequirementRecord) -> FunctionalLogicScore:
    features = record.functional_logic.core_features
    result = FunctionalLogicScore(
        has_core_features=len(features) > 0,
        has_input_output=any(_longer_than(f.input_output, 5) for f in features),
        has_user_steps=any(len(f.user_steps) > 0 for f in features),
        feature_count=len(features),
    )
    # Base terms reach 0.9 and the bonus adds up to 0.3; the clamp is intended.
    result.score = _round(min(
        (0.4 if result.has_core_features else 0.0)
        + (0.3 if result.has_input_output else 0.0)
        + (0.2 if result.has_user_steps else 0.0)
        + min(result.feature_count * 0.1, 0.3),
        1.0,
    ))
    return result


def score_data_model(record: RequirementRecord) -> DataModelScore:
    data_model = record.data_model
    result = DataModelScore(
        has_entities=len(data_model.entities) > 0,
        has_operations=len(data_model.operations) > 0,
        entity_count=len(data_model.entities),
    )
    result.score = _round(min(
        (0.5 if result.has_entities else 0.0)
        + (0.3 if result.has_operations else 0.0)
        + min(result.entity_count * 0.1, 0.2),
        1.0,
    ))
    return result


def score_user_interface(record: RequirementRecord) -> UserInterfaceScore:
    interface = record.user_interface
    result = UserInterfaceScore(
        has_pages=len(interface.pages) > 0,
        has_interactions=len(interface.interactions) > 0,
        has_style_preference=interface.style_preference is not None,
    )
    result.score = _round(
        (0.4 if result.has_pages else 0.0)
        + (0.4 if result.has_interactions else 0.0)
        + (0.2 if result.has_style_preference else 0.0)
    )
    return result


def score(record: RequirementRecord, qa_log: Sequence[QAEntry] = ()) -> CompletenessMetrics:
    """
    Score a record snapshot.

    Pure and deterministic. The QA log is accepted so callers can pass the
    full round state; the record is what gets scored, and callers that have
    no model-produced record derive one from the log first
    (see services.record_builder.derive_record).
    """
    metrics = CompletenessMetrics(
        problem_definition=score_problem_definition(record),
        functional_logic=score_functional_logic(record),
        data_model=score_data_model(record),
        user_interface=score_user_interface(record),
    )
    scores = metrics.dimension_scores()
    metrics.overall = _round(
        sum(scores[dimension] * DIMENSION_WEIGHTS[dimension] for dimension in DIMENSIONS)
    )
    return metrics


def meets_thresholds(metrics: CompletenessMetrics, level: str) -> bool:
    """True when every dimension and the overall score reach the named bar."""
    thresholds = COMPLETION_THRESHOLDS[level]
    scores = metrics.dimension_scores()
    return (
        all(scores[dimension] >= thresholds[dimension] for dimension in DIMENSIONS)
        and metrics.overall >= thresholds["overall"]
    )


def dimensions_below(metrics: CompletenessMetrics, level: str) -> List[str]:
    thresholds = COMPLETION_THRESHOLDS[level]
    scores = metrics.dimension_scores()
    return [d for d in DIMENSIONS if scores[d] < thresholds[d]]


def quality_tier(metrics: CompletenessMetrics) -> QualityTier:
    if meets_thresholds(metrics, "excellent"):
        return QualityTier.EXCELLENT
    if meets_thresholds(metrics, "recommended"):
        return QualityTier.RECOMMENDED
    if meets_thresholds(metrics, "minimum"):
        return QualityTier.USABLE
    return QualityTier.INSUFFICIENT
