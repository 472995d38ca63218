"""
Pytest fixtures - shared configuration for the PRD Wizard tests.

Settings are read once at import time, so the environment is prepared here
before any application module is imported.
"""

import os
import tempfile

import pytest

_AUDIT_DIR = tempfile.mkdtemp(prefix="prd-wizard-audit-")
os.environ["LLM_MODE"] = "mock"
os.environ["AUDIT_LOG_PATH"] = _AUDIT_DIR

from models.requirement import (  # noqa: E402
    CoreFeature,
    DataEntity,
    DataModel,
    FunctionalLogic,
    Interaction,
    Page,
    ProblemDefinition,
    QACategory,
    QAEntry,
    RequirementRecord,
    StylePreference,
    UserInterface,
)


def make_entries(count, category=QACategory.FUNCTIONAL, answer="We need to track orders"):
    """Build `count` answered QA entries."""
    return [
        QAEntry(question=f"Question {i + 1}?", answer=f"{answer} {i + 1}", category=category)
        for i in range(count)
    ]


@pytest.fixture
def empty_record():
    return RequirementRecord()


@pytest.fixture
def pain_point_only_record():
    """Only a pain point longer than 10 characters."""
    return RequirementRecord(
        problem_definition=ProblemDefinition(pain_point="Tracking team tasks across chat is painful"),
    )


@pytest.fixture
def full_record():
    """Every sub-signal present."""
    return RequirementRecord(
        problem_definition=ProblemDefinition(
            pain_point="Tasks get lost between chat and email",
            current_issue="Copying tasks into a spreadsheet by hand",
            expected_solution="One list that collects everything",
        ),
        functional_logic=FunctionalLogic(
            core_features=[
                CoreFeature(
                    name="Quick capture",
                    input_output="Task text -> saved task",
                    user_steps=["Open box", "Type", "Save"],
                ),
                CoreFeature(name="Reminders", input_output="Due date -> notification"),
                CoreFeature(name="Search", input_output="Query -> matching tasks"),
            ],
        ),
        data_model=DataModel(
            entities=[DataEntity(name="Task"), DataEntity(name="Project")],
            operations=["create", "complete", "search"],
        ),
        user_interface=UserInterface(
            pages=[Page(name="Inbox", purpose="Review new tasks")],
            interactions=[Interaction(action="Complete", trigger="Tick", result="Archived")],
            style_preference=StylePreference.MINIMAL,
        ),
    )


@pytest.fixture
def audit_dir(tmp_path):
    path = tmp_path / "audit"
    path.mkdir()
    return str(path)
