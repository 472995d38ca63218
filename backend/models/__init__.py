"""Pydantic models for PRD Wizard."""

from .requirement import (
    ProblemDefinition,
    CoreFeature,
    FunctionalLogic,
    DataEntity,
    DataModel,
    Page,
    Interaction,
    UserInterface,
    RecordMetadata,
    RequirementRecord,
    QAEntry,
    QACategory,
)
from .completeness import (
    CompletenessMetrics,
    CompletionDecision,
    InformationGap,
    SessionStage,
    QualityTier,
)
from .questioning import (
    CompletenessAssessment,
    GeneratedQuestion,
    QuestioningRequest,
    QuestioningResponse,
)
from .audit import AuditLogEntry, AuditAction

__all__ = [
    "ProblemDefinition",
    "CoreFeature",
    "FunctionalLogic",
    "DataEntity",
    "DataModel",
    "Page",
    "Interaction",
    "UserInterface",
    "RecordMetadata",
    "RequirementRecord",
    "QAEntry",
    "QACategory",
    "CompletenessMetrics",
    "CompletionDecision",
    "InformationGap",
    "SessionStage",
    "QualityTier",
    "CompletenessAssessment",
    "GeneratedQuestion",
    "QuestioningRequest",
    "QuestioningResponse",
    "AuditLogEntry",
    "AuditAction",
]
