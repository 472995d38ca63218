"""
Pydantic models for the structured requirement record.

The record is assembled over many question rounds from two untrusted
sources: the language model's JSON and the client's own snapshot. Every
field therefore has a default and the validators coerce rather than reject,
so a half-broken payload still yields a usable record.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional
from datetime import datetime
from enum import Enum


# ============================================================================
# Enums
# ============================================================================

class FeaturePriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class StylePreference(str, Enum):
    MODERN = "modern"
    MINIMAL = "minimal"
    PROFESSIONAL = "professional"
    PLAYFUL = "playful"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class QACategory(str, Enum):
    PAINPOINT = "painpoint"
    FUNCTIONAL = "functional"
    DATA = "data"
    INTERFACE = "interface"
    GENERAL = "general"


# ============================================================================
# Coercion helpers
# ============================================================================

def as_text(value: Any) -> str:
    """Coerce a scalar to text; anything else becomes the empty string."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def as_text_list(value: Any) -> List[str]:
    """Coerce to a list of non-blank strings. A lone string is wrapped."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    return [text for text in (as_text(v) for v in value) if text.strip()]


# Enum-like keys carry a value even in an otherwise empty entry
NON_CONTENT_KEYS = ("id", "priority")


def has_content(item: Any) -> bool:
    """True when an entry holds at least one non-blank text or list item."""
    if isinstance(item, BaseModel):
        item = item.model_dump()
    if not isinstance(item, dict):
        return False
    for key, value in item.items():
        if key in NON_CONTENT_KEYS:
            continue
        if isinstance(value, str) and value.strip():
            return True
        if isinstance(value, (list, tuple)) and as_text_list(list(value)):
            return True
    return False


def as_object_list(value: Any, name_key: str) -> list:
    """
    Coerce to a list of dict-like entries.
    Bare strings are promoted to {name_key: string}; entries with no text
    at all and other junk are dropped.
    """
    if value is None:
        return []
    if isinstance(value, (dict, BaseModel)):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []

    items = []
    for item in value:
        if isinstance(item, (dict, BaseModel)):
            if has_content(item):
                items.append(item)
        elif isinstance(item, str) and item.strip():
            items.append({name_key: item})
    return items


def as_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


def as_unit_float(value: Any) -> float:
    """Clamp to [0, 1]; non-numeric and NaN become 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:
        return 0.0
    return min(max(number, 0.0), 1.0)


def as_section(value: Any) -> Any:
    return value if isinstance(value, (dict, BaseModel)) else {}


class CamelModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Sub-models
# ============================================================================

class ProblemDefinition(CamelModel):
    """What hurts today and what 'better' looks like."""
    pain_point: str = ""
    current_issue: str = ""
    expected_solution: str = ""

    coerce_text = field_validator(
        "pain_point", "current_issue", "expected_solution", mode="before"
    )(as_text)


class CoreFeature(CamelModel):
    name: str = ""
    description: str = ""
    input_output: str = ""
    user_steps: List[str] = Field(default_factory=list)
    priority: FeaturePriority = FeaturePriority.MEDIUM

    coerce_text = field_validator("name", "description", "input_output", mode="before")(as_text)
    coerce_lists = field_validator("user_steps", mode="before")(as_text_list)

    @field_validator("priority", mode="before")
    @classmethod
    def _known_priority(cls, v):
        return as_enum(FeaturePriority, v, FeaturePriority.MEDIUM)


class FunctionalLogic(CamelModel):
    core_features: List[CoreFeature] = Field(default_factory=list)
    data_flow: str = ""
    business_rules: List[str] = Field(default_factory=list)

    coerce_text = field_validator("data_flow", mode="before")(as_text)
    coerce_lists = field_validator("business_rules", mode="before")(as_text_list)

    @field_validator("core_features", mode="before")
    @classmethod
    def _features(cls, v):
        return as_object_list(v, "name")


class DataEntity(CamelModel):
    name: str = ""
    description: str = ""
    fields: List[str] = Field(default_factory=list)
    relationships: List[str] = Field(default_factory=list)

    coerce_text = field_validator("name", "description", mode="before")(as_text)
    coerce_lists = field_validator("fields", "relationships", mode="before")(as_text_list)


class DataModel(CamelModel):
    entities: List[DataEntity] = Field(default_factory=list)
    operations: List[str] = Field(default_factory=list)
    storage_requirements: str = ""

    coerce_text = field_validator("storage_requirements", mode="before")(as_text)
    coerce_lists = field_validator("operations", mode="before")(as_text_list)

    @field_validator("entities", mode="before")
    @classmethod
    def _entities(cls, v):
        return as_object_list(v, "name")


class Page(CamelModel):
    name: str = ""
    purpose: str = ""
    key_elements: List[str] = Field(default_factory=list)

    coerce_text = field_validator("name", "purpose", mode="before")(as_text)
    coerce_lists = field_validator("key_elements", mode="before")(as_text_list)


class Interaction(CamelModel):
    action: str = ""
    trigger: str = ""
    result: str = ""

    coerce_text = field_validator("action", "trigger", "result", mode="before")(as_text)


class UserInterface(CamelModel):
    pages: List[Page] = Field(default_factory=list)
    interactions: List[Interaction] = Field(default_factory=list)
    style_preference: Optional[StylePreference] = None

    @field_validator("pages", mode="before")
    @classmethod
    def _pages(cls, v):
        return as_object_list(v, "name")

    @field_validator("interactions", mode="before")
    @classmethod
    def _interactions(cls, v):
        return as_object_list(v, "action")

    @field_validator("style_preference", mode="before")
    @classmethod
    def _known_style(cls, v):
        return as_enum(StylePreference, v, None)


class RecordMetadata(CamelModel):
    original_input: str = ""
    product_type: str = ""
    complexity: Complexity = Complexity.SIMPLE
    target_users: str = ""
    confidence: float = 0.0
    completeness: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    coerce_text = field_validator(
        "original_input", "product_type", "target_users", mode="before"
    )(as_text)
    coerce_unit = field_validator("confidence", "completeness", mode="before")(as_unit_float)

    @field_validator("complexity", mode="before")
    @classmethod
    def _known_complexity(cls, v):
        return as_enum(Complexity, v, Complexity.SIMPLE)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, v):
        if isinstance(v, datetime):
            return v
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                pass
        return datetime.utcnow()


# ============================================================================
# Aggregates
# ============================================================================

class RequirementRecord(CamelModel):
    """
    The growing structured requirement document.

    Owned by one session at a time and only changed through
    services.record_builder.merge_records, which never drops entries.
    """
    problem_definition: ProblemDefinition = Field(default_factory=ProblemDefinition)
    functional_logic: FunctionalLogic = Field(default_factory=FunctionalLogic)
    data_model: DataModel = Field(default_factory=DataModel)
    user_interface: UserInterface = Field(default_factory=UserInterface)
    metadata: RecordMetadata = Field(default_factory=RecordMetadata)

    coerce_sections = field_validator(
        "problem_definition",
        "functional_logic",
        "data_model",
        "user_interface",
        "metadata",
        mode="before",
    )(as_section)

    @classmethod
    def from_untrusted(cls, payload: Any) -> "RequirementRecord":
        """Build a record from arbitrary JSON, defaulting whatever is unusable."""
        return cls.model_validate(payload if isinstance(payload, dict) else {})


class QAEntry(CamelModel):
    """One answered question. Created once, never changed."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    question: str
    answer: str
    category: QACategory = QACategory.GENERAL
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    coerce_text = field_validator("question", "answer", mode="before")(as_text)

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v):
        return as_enum(QACategory, v, QACategory.GENERAL)
