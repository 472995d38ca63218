"""
Tests for services/fallback_questions.py - dimension choice and option bank.
"""

from models.requirement import QACategory, QAEntry
from models.completeness import (
    DATA_MODEL,
    FUNCTIONAL_LOGIC,
    PROBLEM_DEFINITION,
    USER_INTERFACE,
    InformationGap,
)
from services.fallback_questions import (
    DETAIL_OPTION_TEXT,
    build_fallback_questions,
    pick_dimension,
)


def _gap(aspect, *questions):
    return InformationGap(aspect=aspect, priority=0.5, questions=list(questions) or ["Tell me more?"])


def _entry(category):
    return QAEntry(question="Q?", answer="An answer", category=category)


class TestPickDimension:

    def test_fixed_order_breaks_ties(self):
        gaps = [_gap(USER_INTERFACE), _gap(DATA_MODEL), _gap(FUNCTIONAL_LOGIC)]
        assert pick_dimension(gaps, []) == FUNCTIONAL_LOGIC

    def test_least_covered_dimension_wins(self):
        gaps = [_gap(PROBLEM_DEFINITION), _gap(FUNCTIONAL_LOGIC)]
        qa_log = [_entry(QACategory.PAINPOINT)]
        assert pick_dimension(gaps, qa_log) == FUNCTIONAL_LOGIC

    def test_decision_aspects_used_without_gaps(self):
        assert pick_dimension([], [], [DATA_MODEL, "user-requested additional detail"]) == DATA_MODEL

    def test_nothing_to_pick(self):
        assert pick_dimension([], [], ["user-requested additional detail"]) is None


class TestBuildFallbackQuestions:

    def test_question_comes_from_gap(self):
        questions = build_fallback_questions([_gap(DATA_MODEL, "What data?", "How related?")], [])
        assert len(questions) == 1
        assert questions[0].question == "What data?"
        assert questions[0].category == QACategory.DATA

    def test_rotation_by_prior_answers(self):
        gaps = [_gap(DATA_MODEL, "What data?", "How related?")]
        questions = build_fallback_questions(gaps, [_entry(QACategory.DATA)])
        assert questions[0].question == "How related?"

    def test_last_option_is_free_text(self):
        question = build_fallback_questions([_gap(PROBLEM_DEFINITION)], [])[0]
        assert question.options[-1].text == DETAIL_OPTION_TEXT
        assert question.options[-1].id == "custom"
        assert len(question.options) >= 2

    def test_confirmation_question_when_no_gaps(self):
        question = build_fallback_questions([], [])[0]
        assert question.category == QACategory.GENERAL
        assert question.options[-1].text == DETAIL_OPTION_TEXT
