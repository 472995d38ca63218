"""
Tests for services/gaps.py - gap ranking and gap/score consistency.
"""

import random

from models.requirement import (
    CoreFeature,
    DataEntity,
    DataModel,
    FunctionalLogic,
    Interaction,
    Page,
    ProblemDefinition,
    RequirementRecord,
    UserInterface,
)
from models.completeness import (
    COMPLETION_THRESHOLDS,
    DIMENSIONS,
    PROBLEM_DEFINITION,
    FUNCTIONAL_LOGIC,
    DATA_MODEL,
    USER_INTERFACE,
)
from services.completeness import score
from services.gaps import GAP_QUESTIONS, identify_gaps


def _gaps(record):
    return identify_gaps(score(record), record)


class TestIdentifyGaps:

    def test_empty_record_has_all_gaps_in_priority_order(self, empty_record):
        """Problem, functional, data, interface - highest priority first."""
        gaps = _gaps(empty_record)
        assert [gap.aspect for gap in gaps] == [PROBLEM_DEFINITION, FUNCTIONAL_LOGIC, DATA_MODEL, USER_INTERFACE]
        assert [gap.priority for gap in gaps] == [0.9, 0.8, 0.6, 0.5]

    def test_full_record_has_no_gaps(self, full_record):
        assert _gaps(full_record) == []

    def test_questions_follow_missing_signals(self, pain_point_only_record):
        """Only the missing problem sub-signals get questions."""
        gaps = _gaps(pain_point_only_record)
        problem_gap = gaps[0]
        assert problem_gap.aspect == PROBLEM_DEFINITION
        assert problem_gap.questions == [
            GAP_QUESTIONS["current_solution"],
            GAP_QUESTIONS["expected_outcome"],
        ]

    def test_single_detailed_feature_is_not_a_gap(self):
        """One feature with input/output clears the functional gap threshold."""
        record = RequirementRecord(functional_logic=FunctionalLogic(core_features=[
            CoreFeature(name="Capture", input_output="text -> task"),
        ]))
        gaps = {gap.aspect: gap for gap in _gaps(record)}
        # 0.4 + 0.3 + 0.1 = 0.8 is above the functional gap threshold
        assert FUNCTIONAL_LOGIC not in gaps

    def test_gap_threshold_is_exclusive(self):
        """A dimension scoring exactly at its gap threshold is not a gap."""
        record = RequirementRecord(problem_definition=ProblemDefinition(
            pain_point="Invoices pile up every month",
            expected_solution="Automatic reminders",
        ))
        # 0.5 + 0.2 = 0.7, exactly the problem gap threshold
        gaps = [gap.aspect for gap in _gaps(record)]
        assert PROBLEM_DEFINITION not in gaps
        assert USER_INTERFACE in gaps


class TestGapScoreConsistency:
    """No gaps means every dimension reaches the minimum bar."""

    def _random_record(self, rng):
        def maybe(text):
            return text if rng.random() < 0.5 else ""

        return RequirementRecord(
            problem_definition=ProblemDefinition(
                pain_point=maybe("Tracking invoices by hand"),
                current_issue=maybe("Spreadsheets"),
                expected_solution=maybe("Automatic reminders"),
            ),
            functional_logic=FunctionalLogic(core_features=[
                CoreFeature(
                    name=f"Feature {i}",
                    input_output=maybe("input -> output"),
                    user_steps=[maybe("step")],
                )
                for i in range(rng.randint(0, 4))
            ]),
            data_model=DataModel(
                entities=[DataEntity(name=f"Entity {i}") for i in range(rng.randint(0, 3))],
                operations=[maybe("create")],
            ),
            user_interface=UserInterface(
                pages=[Page(name="Home")] if rng.random() < 0.5 else [],
                interactions=[Interaction(action="Tap")] if rng.random() < 0.5 else [],
                style_preference="minimal" if rng.random() < 0.5 else None,
            ),
        )

    def test_no_gaps_implies_minimum_bar(self):
        rng = random.Random(42)
        minimum = COMPLETION_THRESHOLDS["minimum"]
        for _ in range(300):
            record = self._random_record(rng)
            metrics = score(record)
            if identify_gaps(metrics, record):
                continue
            scores = metrics.dimension_scores()
            for dimension in DIMENSIONS:
                assert scores[dimension] >= minimum[dimension], (
                    f"{dimension} below minimum ({scores[dimension]}) with no gaps"
                )

    def test_every_gap_has_questions(self):
        rng = random.Random(7)
        for _ in range(200):
            record = self._random_record(rng)
            for gap in _gaps(record):
                assert gap.questions, f"Gap {gap.aspect} without questions"
