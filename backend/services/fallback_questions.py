"""
Deterministic fallback question bank.

Used whenever the language model cannot supply questions for a round. The
bank asks about one dimension per round, picking the least-covered gap, so a
session keeps making progress even with the model permanently down.
"""

from typing import Dict, List, Optional, Sequence
import logging

from models.requirement import QACategory, QAEntry
from models.completeness import (
    DIMENSIONS,
    DIMENSION_CATEGORIES,
    DecisionPriority,
    InformationGap,
    PROBLEM_DEFINITION,
    FUNCTIONAL_LOGIC,
    DATA_MODEL,
    USER_INTERFACE,
)
from models.questioning import GeneratedQuestion, QuestionOption

logger = logging.getLogger(__name__)


DETAIL_OPTION_TEXT = "Let me describe it in detail"


# ============================================================================
# Option bank, one entry per dimension
# ============================================================================

FALLBACK_BANK: Dict[str, Dict] = {
    PROBLEM_DEFINITION: {
        "question": "In the situation you described, what bothers you the most?",
        "purpose": "Collect a concrete pain point for the problem definition",
        "mapping": "problemDefinition.painPoint",
        "options": [
            "Too many steps, too complicated",
            "Information is hard to find quickly",
            "Data gets lost or mixed up",
            "Slow, lots of repetitive work",
        ],
    },
    FUNCTIONAL_LOGIC: {
        "question": "What are the main things this tool needs to do?",
        "purpose": "Collect the core features",
        "mapping": "functionalLogic.coreFeatures",
        "options": [
            "Enter and edit records",
            "Browse and search",
            "Statistics and analysis",
        ],
    },
    DATA_MODEL: {
        "question": "How would you like to manage and look at this information?",
        "purpose": "Collect data management needs",
        "mapping": "dataModel.operations",
        "options": [
            "View history in time order",
            "Organise and filter by category or tag",
            "Generate charts and summaries",
        ],
    },
    USER_INTERFACE: {
        "question": "How would you like to use it, and what should it look like?",
        "purpose": "Collect interaction and style preferences",
        "mapping": "userInterface.stylePreference",
        "options": [
            "Quick entry, one-click actions",
            "A visual, graphical interface",
            "Simple and focused, no clutter",
        ],
    },
}

CONFIRMATION_QUESTION = {
    "question": "Is there anything important you would like to add?",
    "purpose": "Confirm the collected information is complete",
    "mapping": "metadata.completeness",
    "options": [
        "I need to add more feature details",
        "The information is basically complete",
        "Generate the PRD now",
    ],
}


def _count_by_category(qa_log: Sequence[QAEntry]) -> Dict[QACategory, int]:
    counts = {category: 0 for category in QACategory}
    for entry in qa_log:
        counts[entry.category] += 1
    return counts


def _options(texts: Sequence[str], mapping: str) -> List[QuestionOption]:
    options = [
        QuestionOption(id=str(index), text=text, prd_mapping=mapping)
        for index, text in enumerate(texts, start=1)
    ]
    options.append(QuestionOption(id="custom", text=DETAIL_OPTION_TEXT, prd_mapping="custom"))
    return options


def pick_dimension(
    gaps: Sequence[InformationGap],
    qa_log: Sequence[QAEntry],
    missing_aspects: Sequence[str] = (),
) -> Optional[str]:
    """
    The gap dimension with the fewest answered questions in its category.
    Ties go to the fixed order problem -> functional -> data -> interface.
    When there are no gaps, dimensions named by the decision are considered.
    """
    candidates = [gap.aspect for gap in gaps if gap.aspect in DIMENSIONS]
    if not candidates:
        candidates = [aspect for aspect in missing_aspects if aspect in DIMENSIONS]
    if not candidates:
        return None

    counts = _count_by_category(qa_log)
    return min(
        candidates,
        key=lambda aspect: (counts[DIMENSION_CATEGORIES[aspect]], DIMENSIONS.index(aspect)),
    )


def build_fallback_questions(
    gaps: Sequence[InformationGap],
    qa_log: Sequence[QAEntry],
    missing_aspects: Sequence[str] = (),
) -> List[GeneratedQuestion]:
    """Build one question for the round without calling the model."""
    dimension = pick_dimension(gaps, qa_log, missing_aspects)

    if dimension is None:
        logger.info("No gaps left, asking the confirmation question")
        return [GeneratedQuestion(
            category=QACategory.GENERAL,
            question=CONFIRMATION_QUESTION["question"],
            options=_options(CONFIRMATION_QUESTION["options"], CONFIRMATION_QUESTION["mapping"]),
            purpose=CONFIRMATION_QUESTION["purpose"],
            priority=DecisionPriority.OPTIONAL,
        )]

    bank = FALLBACK_BANK[dimension]
    category = DIMENSION_CATEGORIES[dimension]
    asked = _count_by_category(qa_log)[category]

    gap = next((gap for gap in gaps if gap.aspect == dimension), None)
    if gap and gap.questions:
        # Rotate so a repeated fallback does not ask the same thing twice in a row
        text = gap.questions[asked % len(gap.questions)]
    else:
        text = bank["question"]

    logger.info(f"Fallback question for {dimension} (prior answers in category: {asked})")
    return [GeneratedQuestion(
        category=category,
        question=text,
        options=_options(bank["options"], bank["mapping"]),
        purpose=bank["purpose"],
        priority=DecisionPriority.CRITICAL if gap else DecisionPriority.IMPORTANT,
    )]
