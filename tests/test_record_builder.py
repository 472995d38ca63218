"""
Tests for services/record_builder.py - QA log, derivation, additive merge, invariants.
"""

import random

import pytest

from conftest import make_entries
from models.requirement import (
    Complexity,
    CoreFeature,
    DataEntity,
    DataModel,
    FeaturePriority,
    FunctionalLogic,
    Interaction,
    Page,
    ProblemDefinition,
    QACategory,
    QAEntry,
    RecordMetadata,
    RequirementRecord,
    StylePreference,
    UserInterface,
)
from models.questioning import ConversationMessage
from services.completeness import score
from services.record_builder import (
    RecordInvariantError,
    check_invariants,
    clean_qa_log,
    conversation_to_qa_log,
    derive_record,
    detect_product_type,
    estimate_token_usage,
    merge_records,
)


def _msg(role, content, category=None):
    return ConversationMessage(role=role, content=content, category=category)


class TestConversationToQaLog:

    def test_pairs_assistant_and_user_turns(self):
        history = [
            _msg("assistant", "What bothers you most?", "painpoint"),
            _msg("user", "Losing receipts"),
            _msg("assistant", "Which features?", "functional"),
            _msg("user", "Scan and categorise"),
        ]
        qa_log = conversation_to_qa_log(history)
        assert [(e.question, e.answer, e.category) for e in qa_log] == [
            ("What bothers you most?", "Losing receipts", QACategory.PAINPOINT),
            ("Which features?", "Scan and categorise", QACategory.FUNCTIONAL),
        ]

    def test_skips_malformed_turns(self):
        """Orphan turns are skipped, the pairs after them still count."""
        history = [
            _msg("user", "Hello?"),
            _msg("assistant", "Question without answer"),
            _msg("assistant", "What data do you keep?", "data"),
            _msg("user", "Receipts and amounts"),
        ]
        qa_log = conversation_to_qa_log(history)
        assert len(qa_log) == 1
        assert qa_log[0].category == QACategory.DATA

    def test_unknown_category_becomes_general(self):
        qa_log = conversation_to_qa_log([
            _msg("assistant", "Anything else?", "weird"),
            _msg("user", "No"),
        ])
        assert qa_log[0].category == QACategory.GENERAL

    def test_blank_answers_are_dropped(self):
        qa_log = conversation_to_qa_log([
            _msg("assistant", "Anything else?"),
            _msg("user", "   "),
        ])
        assert qa_log == []


class TestCleanAndEstimate:

    def test_clean_drops_incomplete_entries(self):
        entries = [
            QAEntry(question="", answer="orphan answer"),
            QAEntry(question="Kept?", answer="Yes"),
            QAEntry(question="Unanswered?", answer=""),
        ]
        assert [e.question for e in clean_qa_log(entries)] == ["Kept?"]

    def test_token_estimate(self):
        qa_log = [QAEntry(question="abcd", answer="ef")]
        # 3000 + ceil(5 / 2) + ceil(6 / 2)
        assert estimate_token_usage("hello", qa_log) == 3006


class TestDeriveRecord:

    def test_painpoint_answers_fill_problem_definition(self):
        qa_log = [
            QAEntry(question="Q1", answer="Receipts get lost", category="painpoint"),
            QAEntry(question="Q2", answer="Shoebox full of paper", category="painpoint"),
        ]
        record = derive_record("I want an expense tracker app", qa_log)
        problem = record.problem_definition
        assert problem.pain_point == "Receipts get lost Shoebox full of paper"
        assert problem.current_issue == "Shoebox full of paper"
        assert problem.expected_solution == "I want an expense tracker app"

    def test_pain_point_falls_back_to_input(self):
        record = derive_record("An expense tracker for freelancers", [])
        assert record.problem_definition.pain_point == "An expense tracker for freelancers"
        assert record.problem_definition.expected_solution == ""

    def test_no_placeholders_without_answers(self):
        """Sections stay empty until an answer in their category exists."""
        record = derive_record("Some idea", [])
        assert record.functional_logic.core_features == []
        assert record.data_model.entities == []
        assert record.user_interface.pages == []
        assert record.user_interface.style_preference is None

    def test_one_feature_entity_and_page_per_answer(self):
        qa_log = [
            QAEntry(question="F", answer="Scan receipts with the camera", category="functional"),
            QAEntry(question="D", answer="Receipt with amount and date", category="data"),
            QAEntry(question="I", answer="A clean minimal dashboard", category="interface"),
        ]
        record = derive_record("Expense tracker", qa_log)
        feature = record.functional_logic.core_features[0]
        assert feature.description == "Scan receipts with the camera"
        assert feature.priority == FeaturePriority.HIGH
        assert record.data_model.operations == ["Receipt with amount and date"]
        assert len(record.data_model.entities) == 1
        assert len(record.user_interface.pages) == 1
        assert len(record.user_interface.interactions) == 1
        assert record.user_interface.style_preference == StylePreference.MINIMAL

    def test_metadata(self):
        record = derive_record("A website for bookings", make_entries(5))
        assert record.metadata.product_type == "Web application"
        assert record.metadata.complexity == Complexity.MEDIUM
        assert record.metadata.confidence == 0.9

    def test_product_type_default(self):
        assert detect_product_type("Something vague") == "Utility"


class TestMergeRecords:

    def test_blank_never_overwrites(self):
        base = RequirementRecord(problem_definition=ProblemDefinition(pain_point="Receipts get lost"))
        incoming = RequirementRecord(problem_definition=ProblemDefinition(pain_point="   "))
        merged = merge_records(base, incoming)
        assert merged.problem_definition.pain_point == "Receipts get lost"

    def test_more_detailed_text_wins(self):
        base = RequirementRecord(problem_definition=ProblemDefinition(pain_point="Receipts get lost"))
        longer = RequirementRecord(problem_definition=ProblemDefinition(
            pain_point="Receipts get lost before tax season",
        ))
        shorter = RequirementRecord(problem_definition=ProblemDefinition(pain_point="Lost"))
        assert merge_records(base, longer).problem_definition.pain_point.endswith("tax season")
        assert merge_records(base, shorter).problem_definition.pain_point == "Receipts get lost"

    def test_features_merge_by_name(self):
        base = RequirementRecord(functional_logic=FunctionalLogic(core_features=[
            CoreFeature(name="Scan", user_steps=["Open camera"]),
        ]))
        incoming = RequirementRecord(functional_logic=FunctionalLogic(core_features=[
            CoreFeature(name="scan", input_output="Photo -> receipt", user_steps=["Open camera", "Shoot"]),
            CoreFeature(name="Export"),
        ]))
        features = merge_records(base, incoming).functional_logic.core_features
        assert [f.name for f in features] == ["scan", "Export"]
        assert features[0].input_output == "Photo -> receipt"
        assert features[0].user_steps == ["Open camera", "Shoot"]

    def test_interactions_merge_by_triple(self):
        tap = Interaction(action="Tap", trigger="Button", result="Saved")
        base = RequirementRecord(user_interface=UserInterface(interactions=[tap]))
        incoming = RequirementRecord(user_interface=UserInterface(interactions=[
            Interaction(action="tap", trigger="button", result="saved"),
            Interaction(action="Swipe", trigger="List", result="Deleted"),
        ]))
        assert len(merge_records(base, incoming).user_interface.interactions) == 2

    def test_style_and_metadata(self):
        base = RequirementRecord(
            user_interface=UserInterface(style_preference="modern"),
            metadata=RecordMetadata(original_input="First idea", confidence=0.8),
        )
        incoming = RequirementRecord(metadata=RecordMetadata(original_input="Other", confidence=0.5))
        merged = merge_records(base, incoming)
        assert merged.user_interface.style_preference == StylePreference.MODERN
        assert merged.metadata.original_input == "First idea"
        assert merged.metadata.confidence == 0.8

    def test_inputs_are_not_modified(self, full_record):
        before = full_record.model_dump()
        merge_records(full_record, RequirementRecord(functional_logic=FunctionalLogic(
            core_features=[CoreFeature(name="Quick capture", user_steps=["New step"])],
        )))
        assert full_record.model_dump() == before


class TestMonotonicity:
    """Additive merges never lower the overall or any dimension score."""

    FRAGMENTS = [
        lambda rng: RequirementRecord(problem_definition=ProblemDefinition(
            pain_point=rng.choice(["", "Short", "A longer pain point description"]),
            current_issue=rng.choice(["", "Excel", "Manual spreadsheets"]),
            expected_solution=rng.choice(["", "Auto", "Automatic categorisation"]),
        )),
        lambda rng: RequirementRecord(functional_logic=FunctionalLogic(core_features=[
            CoreFeature(
                name=rng.choice(["Scan", "Export", "Search", "Share"]),
                input_output=rng.choice(["", "in -> out", "photo -> receipt"]),
                user_steps=rng.sample(["open", "tap", "confirm"], rng.randint(0, 2)),
            ),
        ])),
        lambda rng: RequirementRecord(data_model=DataModel(
            entities=[DataEntity(name=rng.choice(["Receipt", "Category", "User"]))],
            operations=rng.sample(["create", "search", "delete"], rng.randint(0, 2)),
        )),
        lambda rng: RequirementRecord(user_interface=UserInterface(
            pages=[Page(name=rng.choice(["Home", "Settings"]))] if rng.random() < 0.5 else [],
            interactions=[Interaction(action="Tap")] if rng.random() < 0.5 else [],
            style_preference=rng.choice([None, "minimal", "playful"]),
        )),
    ]

    def test_scores_never_decrease(self):
        rng = random.Random(1234)
        for _ in range(50):
            record = RequirementRecord()
            previous = score(record)
            for _ in range(20):
                fragment = rng.choice(self.FRAGMENTS)(rng)
                merged = merge_records(record, fragment)
                current = score(merged)
                assert current.overall >= previous.overall, (
                    f"Overall dropped from {previous.overall} to {current.overall}"
                )
                before = previous.dimension_scores()
                for dimension, value in current.dimension_scores().items():
                    assert value >= before[dimension], f"{dimension} dropped from {before[dimension]} to {value}"
                check_invariants(record, merged, current)
                record, previous = merged, current


class TestCheckInvariants:

    def test_shrunk_list_raises(self, full_record):
        shrunk = full_record.model_copy(deep=True)
        shrunk.functional_logic.core_features.pop()
        with pytest.raises(RecordInvariantError, match="coreFeatures"):
            check_invariants(full_record, shrunk, score(shrunk))

    def test_out_of_range_score_raises(self, full_record):
        metrics = score(full_record)
        metrics.overall = float("nan")
        with pytest.raises(RecordInvariantError):
            check_invariants(full_record, full_record, metrics)

    def test_valid_merge_passes(self, full_record):
        merged = merge_records(full_record, full_record)
        check_invariants(full_record, merged, score(merged))


class TestUntrustedRecord:
    """Replies that echo the blank JSON template add nothing to the record."""

    SKELETON = {
        "problemDefinition": {"painPoint": "", "currentIssue": "", "expectedSolution": ""},
        "functionalLogic": {
            "coreFeatures": [{"name": "", "description": "", "inputOutput": "", "userSteps": [], "priority": "high | medium | low"}],
            "dataFlow": "",
            "businessRules": [],
        },
        "dataModel": {
            "entities": [{"name": "", "description": "", "fields": [], "relationships": []}],
            "operations": [],
            "storageRequirements": "",
        },
        "userInterface": {
            "pages": [{"name": "", "purpose": "", "keyElements": []}],
            "interactions": [{"action": "", "trigger": "", "result": ""}],
            "stylePreference": "modern | minimal | professional | playful",
        },
    }

    def test_blank_template_scores_zero(self):
        record = RequirementRecord.from_untrusted(self.SKELETON)
        assert record.functional_logic.core_features == []
        assert record.data_model.entities == []
        assert record.user_interface.pages == []
        assert record.user_interface.interactions == []
        metrics = score(record)
        assert metrics.overall == 0.0
        assert all(value == 0.0 for value in metrics.dimension_scores().values())

    def test_entry_with_any_text_is_kept(self):
        record = RequirementRecord.from_untrusted({
            "functionalLogic": {"coreFeatures": [{"name": "", "description": "Scan receipts"}]},
            "dataModel": {"entities": [{"name": "", "fields": ["amount"]}]},
        })
        assert len(record.functional_logic.core_features) == 1
        assert len(record.data_model.entities) == 1

    def test_merging_blank_template_changes_nothing(self, pain_point_only_record):
        merged = merge_records(pain_point_only_record, RequirementRecord.from_untrusted(self.SKELETON))
        assert score(merged) == score(pain_point_only_record)
