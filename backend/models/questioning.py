"""
Request/response models for the questioning API, plus the validated shapes
of what the language model sends back for a round.
"""

from pydantic import AliasChoices, Field, field_validator
from typing import Any, List, Optional
from enum import Enum
import uuid

from .requirement import (
    CamelModel,
    QACategory,
    QAEntry,
    RequirementRecord,
    as_enum,
    as_object_list,
    as_text,
    as_text_list,
)
from .completeness import (
    CompletenessMetrics,
    CompletionDecision,
    DecisionPriority,
    InformationGap,
    QualityTier,
    SessionStage,
)


# ============================================================================
# Model output shapes
# ============================================================================

class RecommendedAction(str, Enum):
    CONTINUE_QUESTIONING = "continue_questioning"
    PROCEED_TO_CONFIRMATION = "proceed_to_confirmation"
    GATHER_MORE_DETAILS = "gather_more_details"


class CompletenessAssessment(CamelModel):
    """
    The model's own opinion of the record.
    Missing or unreadable fields fall back to the conservative defaults.
    """
    can_generate: bool = Field(
        False,
        validation_alias=AliasChoices("canGenerate", "canGeneratePRD", "can_generate"),
        serialization_alias="canGenerate",
    )
    completeness_score: float = 0.3
    missing_critical_info: List[str] = Field(default_factory=list)
    missing_important_info: List[str] = Field(default_factory=list)
    quality_risk: List[str] = Field(default_factory=list)
    recommended_action: RecommendedAction = RecommendedAction.CONTINUE_QUESTIONING
    reasoning: str = ""

    coerce_lists = field_validator(
        "missing_critical_info", "missing_important_info", "quality_risk", mode="before"
    )(as_text_list)
    coerce_text = field_validator("reasoning", mode="before")(as_text)

    @field_validator("can_generate", mode="before")
    @classmethod
    def _strict_bool(cls, v):
        return v if isinstance(v, bool) else False

    @field_validator("completeness_score", mode="before")
    @classmethod
    def _score(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float)) or v != v:
            return 0.3
        return min(max(float(v), 0.0), 1.0)

    @field_validator("recommended_action", mode="before")
    @classmethod
    def _known_action(cls, v):
        return as_enum(RecommendedAction, v, RecommendedAction.CONTINUE_QUESTIONING)


class QuestionOption(CamelModel):
    id: str = ""
    text: str = ""
    prd_mapping: str = ""

    coerce_text = field_validator("id", "text", "prd_mapping", mode="before")(as_text)


class GeneratedQuestion(CamelModel):
    """A question shown to the user, with clickable options."""
    id: str = Field(default_factory=lambda: f"q-{uuid.uuid4().hex[:8]}")
    category: QACategory = QACategory.GENERAL
    question: str = ""
    options: List[QuestionOption] = Field(default_factory=list)
    purpose: str = ""
    priority: DecisionPriority = DecisionPriority.IMPORTANT

    coerce_text = field_validator("question", "purpose", mode="before")(as_text)

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, v):
        return as_text(v) or f"q-{uuid.uuid4().hex[:8]}"

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v):
        return as_enum(QACategory, v, QACategory.GENERAL)

    @field_validator("priority", mode="before")
    @classmethod
    def _known_priority(cls, v):
        return as_enum(DecisionPriority, v, DecisionPriority.IMPORTANT)

    @field_validator("options", mode="before")
    @classmethod
    def _options(cls, v):
        options = as_object_list(v, "text")
        for index, option in enumerate(options):
            if isinstance(option, dict) and not option.get("id"):
                option["id"] = str(index + 1)
        return options


# ============================================================================
# API Requests
# ============================================================================

class ConversationMessage(CamelModel):
    """One chat turn as the wizard UI keeps it."""
    role: str = ""
    content: str = ""
    category: Optional[str] = None

    coerce_text = field_validator("role", "content", mode="before")(as_text)


class QuestioningRequest(CamelModel):
    """Body of POST /api/batch-questioning."""
    user_input: str = Field(..., min_length=1, description="The original product idea")
    conversation_history: List[ConversationMessage] = Field(default_factory=list)
    current_round: int = 1
    session_id: Optional[str] = None
    current_record: Optional[RequirementRecord] = None
    stage: SessionStage = SessionStage.COLLECTING


class ProcessResultRequest(CamelModel):
    """Body of POST /api/process-questioning-result."""
    user_input: str = Field(..., min_length=1)
    questioning_history: List[QAEntry] = Field(default_factory=list)
    current_record: Optional[RequirementRecord] = None
    session_id: Optional[str] = None


class CompletenessRequest(CamelModel):
    """Body of POST /api/completeness."""
    record: RequirementRecord = Field(default_factory=RequirementRecord)
    qa_log: List[QAEntry] = Field(default_factory=list)


# ============================================================================
# API Responses
# ============================================================================

class QuestioningData(CamelModel):
    questions: List[GeneratedQuestion] = Field(default_factory=list)
    completeness_assessment: CompletenessAssessment
    next_round_strategy: str
    should_proceed_to_confirmation: bool
    requirement_record: RequirementRecord
    completeness: CompletenessMetrics
    gaps: List[InformationGap] = Field(default_factory=list)
    decision: CompletionDecision
    stage: SessionStage
    quality_tier: QualityTier
    used_fallback: bool = False
    round: int = 1


class QuestioningResponse(CamelModel):
    success: bool
    data: Optional[QuestioningData] = None
    error: Optional[str] = None


class ProcessResultData(CamelModel):
    requirement_record: RequirementRecord
    completeness: CompletenessMetrics
    gaps: List[InformationGap] = Field(default_factory=list)
    decision: CompletionDecision
    ready_for_confirmation: bool
    used_fallback: bool = False


class ProcessResultResponse(CamelModel):
    success: bool
    data: Optional[ProcessResultData] = None
    error: Optional[str] = None


class CompletenessReport(CamelModel):
    completeness: CompletenessMetrics
    gaps: List[InformationGap] = Field(default_factory=list)
    decision: CompletionDecision
    quality_tier: QualityTier


def parse_questions(payload: Any) -> List[GeneratedQuestion]:
    """Validate a model-supplied question list, dropping entries without text."""
    questions = []
    for item in as_object_list(payload, "question"):
        question = GeneratedQuestion.model_validate(item)
        if question.question.strip():
            questions.append(question)
    return questions
