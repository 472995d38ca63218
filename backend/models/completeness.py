"""
Completeness metrics, continuation decisions and the thresholds behind them.

The numbers in this module define the product's quality bar. They are plain
constants rather than settings so the round limit cannot be configured away.
"""

from pydantic import Field
from typing import Dict, List
from enum import Enum

from .requirement import CamelModel, QACategory


# ============================================================================
# Dimensions and thresholds
# ============================================================================

PROBLEM_DEFINITION = "problemDefinition"
FUNCTIONAL_LOGIC = "functionalLogic"
DATA_MODEL = "dataModel"
USER_INTERFACE = "userInterface"

# Declaration order doubles as tie-break order everywhere.
DIMENSIONS = (PROBLEM_DEFINITION, FUNCTIONAL_LOGIC, DATA_MODEL, USER_INTERFACE)

DIMENSION_WEIGHTS = {
    PROBLEM_DEFINITION: 0.3,
    FUNCTIONAL_LOGIC: 0.3,
    DATA_MODEL: 0.2,
    USER_INTERFACE: 0.2,
}

DIMENSION_CATEGORIES = {
    PROBLEM_DEFINITION: QACategory.PAINPOINT,
    FUNCTIONAL_LOGIC: QACategory.FUNCTIONAL,
    DATA_MODEL: QACategory.DATA,
    USER_INTERFACE: QACategory.INTERFACE,
}

COMPLETION_THRESHOLDS = {
    # Lowest bar at which a PRD can be generated at all
    "minimum": {
        PROBLEM_DEFINITION: 0.6,
        FUNCTIONAL_LOGIC: 0.5,
        DATA_MODEL: 0.3,
        USER_INTERFACE: 0.3,
        "overall": 0.4,
    },
    # Good-quality PRD
    "recommended": {
        PROBLEM_DEFINITION: 0.8,
        FUNCTIONAL_LOGIC: 0.7,
        DATA_MODEL: 0.6,
        USER_INTERFACE: 0.6,
        "overall": 0.7,
    },
    # Ready to hand to a coding assistant
    "excellent": {
        PROBLEM_DEFINITION: 0.9,
        FUNCTIONAL_LOGIC: 0.8,
        DATA_MODEL: 0.8,
        USER_INTERFACE: 0.7,
        "overall": 0.8,
    },
}

GAP_THRESHOLDS = {
    PROBLEM_DEFINITION: 0.7,
    FUNCTIONAL_LOGIC: 0.6,
    DATA_MODEL: 0.5,
    USER_INTERFACE: 0.5,
}

GAP_PRIORITIES = {
    PROBLEM_DEFINITION: 0.9,
    FUNCTIONAL_LOGIC: 0.8,
    DATA_MODEL: 0.6,
    USER_INTERFACE: 0.5,
}

MAX_QA_ENTRIES = 15
IMPROVEMENT_WINDOW = 8
USER_CONTINUE_WINDOW = 12


# ============================================================================
# Enums
# ============================================================================

class DecisionPriority(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    OPTIONAL = "optional"


class SessionStage(str, Enum):
    COLLECTING = "collecting"
    READY_FOR_CONFIRMATION = "ready_for_confirmation"


class QualityTier(str, Enum):
    INSUFFICIENT = "insufficient"
    USABLE = "usable"
    RECOMMENDED = "recommended"
    EXCELLENT = "excellent"


# ============================================================================
# Metrics
# ============================================================================

class ProblemDefinitionScore(CamelModel):
    has_pain_point: bool = False
    has_current_solution: bool = False
    has_expected_outcome: bool = False
    score: float = 0.0


class FunctionalLogicScore(CamelModel):
    has_core_features: bool = False
    has_input_output: bool = False
    has_user_steps: bool = False
    feature_count: int = 0
    score: float = 0.0


class DataModelScore(CamelModel):
    has_entities: bool = False
    has_operations: bool = False
    entity_count: int = 0
    score: float = 0.0


class UserInterfaceScore(CamelModel):
    has_pages: bool = False
    has_interactions: bool = False
    has_style_preference: bool = False
    score: float = 0.0


class CompletenessMetrics(CamelModel):
    """Derived from one record snapshot. Recompute, never store."""
    problem_definition: ProblemDefinitionScore = Field(default_factory=ProblemDefinitionScore)
    functional_logic: FunctionalLogicScore = Field(default_factory=FunctionalLogicScore)
    data_model: DataModelScore = Field(default_factory=DataModelScore)
    user_interface: UserInterfaceScore = Field(default_factory=UserInterfaceScore)
    overall: float = 0.0

    def dimension_scores(self) -> Dict[str, float]:
        return {
            PROBLEM_DEFINITION: self.problem_definition.score,
            FUNCTIONAL_LOGIC: self.functional_logic.score,
            DATA_MODEL: self.data_model.score,
            USER_INTERFACE: self.user_interface.score,
        }


class CompletionDecision(CamelModel):
    should_continue: bool
    reason: str
    priority: DecisionPriority
    missing_aspects: List[str] = Field(default_factory=list)
    confidence: float


class InformationGap(CamelModel):
    aspect: str
    priority: float
    questions: List[str] = Field(default_factory=list)
