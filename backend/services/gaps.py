"""
Gap Identifier - which parts of the record still need a question.

Aspects have fixed priorities so problem-definition gaps always surface
before interface gaps, regardless of how low each score is.
"""

from typing import List

from models.requirement import RequirementRecord
from models.completeness import (
    CompletenessMetrics,
    InformationGap,
    GAP_PRIORITIES,
    GAP_THRESHOLDS,
    PROBLEM_DEFINITION,
    FUNCTIONAL_LOGIC,
    DATA_MODEL,
    USER_INTERFACE,
)


# Question text per missing sub-signal
GAP_QUESTIONS = {
    "pain_point": "What specific difficulty or pain point are you running into?",
    "current_solution": "What do you currently do about this problem?",
    "expected_outcome": "What outcome do you hope this tool will achieve?",
    "more_features": "What are the main features this tool needs?",
    "input_output": "What does each feature take as input, and what should it produce?",
    "user_steps": "How would a user actually operate these features, step by step?",
    "entities": "What kinds of data need to be stored?",
    "relationships": "How are these pieces of data related to each other?",
    "operations": "What do you need to do with the data (add, search, update, analyse)?",
    "pages": "Which main pages or screens do you need?",
    "interactions": "How do users move between these screens, and what do they do on them?",
    "style": "What visual style do you prefer for the interface?",
}


def _problem_questions(metrics: CompletenessMetrics) -> List[str]:
    signals = metrics.problem_definition
    questions = []
    if not signals.has_pain_point:
        questions.append(GAP_QUESTIONS["pain_point"])
    if not signals.has_current_solution:
        questions.append(GAP_QUESTIONS["current_solution"])
    if not signals.has_expected_outcome:
        questions.append(GAP_QUESTIONS["expected_outcome"])
    return questions


def _functional_questions(metrics: CompletenessMetrics) -> List[str]:
    signals = metrics.functional_logic
    questions = []
    if signals.feature_count < 2:
        questions.append(GAP_QUESTIONS["more_features"])
    if not signals.has_input_output:
        questions.append(GAP_QUESTIONS["input_output"])
    if not signals.has_user_steps:
        questions.append(GAP_QUESTIONS["user_steps"])
    return questions


def _data_questions(metrics: CompletenessMetrics) -> List[str]:
    signals = metrics.data_model
    questions = []
    if not signals.has_entities:
        questions.append(GAP_QUESTIONS["entities"])
    if signals.entity_count < 2:
        questions.append(GAP_QUESTIONS["relationships"])
    if not signals.has_operations:
        questions.append(GAP_QUESTIONS["operations"])
    return questions


def _interface_questions(metrics: CompletenessMetrics) -> List[str]:
    signals = metrics.user_interface
    questions = []
    if not signals.has_pages:
        questions.append(GAP_QUESTIONS["pages"])
    if not signals.has_interactions:
        questions.append(GAP_QUESTIONS["interactions"])
    if not signals.has_style_preference:
        questions.append(GAP_QUESTIONS["style"])
    return questions


_ASPECT_QUESTIONS = (
    (PROBLEM_DEFINITION, _problem_questions),
    (FUNCTIONAL_LOGIC, _functional_questions),
    (DATA_MODEL, _data_questions),
    (USER_INTERFACE, _interface_questions),
)


def identify_gaps(metrics: CompletenessMetrics, record: RequirementRecord) -> List[InformationGap]:
    """
    Rank the aspects still below their gap threshold.

    Returns gaps sorted by descending priority (stable, so ties keep
    declaration order). An empty list means the record is ready.
    """
    scores = metrics.dimension_scores()
    gaps = []

    for aspect, build_questions in _ASPECT_QUESTIONS:
        if scores[aspect] >= GAP_THRESHOLDS[aspect]:
            continue
        questions = build_questions(metrics)
        if questions:
            gaps.append(InformationGap(
                aspect=aspect,
                priority=GAP_PRIORITIES[aspect],
                questions=questions,
            ))

    return sorted(gaps, key=lambda gap: -gap.priority)
