"""
Requirement record assembly.

Handles:
- Converting the UI's chat history into the append-only QA log
- Deriving a record from the QA log when the model gives us nothing usable
- Additive merging of new information into the session's record
- Invariant checks run after every merge
"""

from typing import Callable, Dict, List, Optional, Sequence
from datetime import datetime
import logging
import math

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
from models.completeness import CompletenessMetrics

logger = logging.getLogger(__name__)


class RecordInvariantError(ValueError):
    """A merged record or its scores broke an invariant; the round must be discarded."""


# ============================================================================
# QA log construction
# ============================================================================

def conversation_to_qa_log(conversation_history: Sequence) -> List[QAEntry]:
    """
    Pair assistant questions with the user answers that follow them.

    The UI sends a flat list of {role, content, category} turns. Turns that
    do not form an assistant -> user pair are skipped and logged.
    """
    entries = []
    index = 0
    while index < len(conversation_history):
        question = conversation_history[index]
        answer = conversation_history[index + 1] if index + 1 < len(conversation_history) else None

        if question.role == "assistant" and answer is not None and answer.role == "user":
            entries.append(QAEntry(
                question=question.content,
                answer=answer.content,
                category=question.category or answer.category,
            ))
            index += 2
        else:
            logger.warning(
                f"Skipping malformed conversation turn {index}: "
                f"role={question.role!r}, next={getattr(answer, 'role', None)!r}"
            )
            index += 1

    return clean_qa_log(entries)


def clean_qa_log(entries: Sequence[QAEntry]) -> List[QAEntry]:
    """Drop entries that lack either a question or an answer."""
    cleaned = []
    for position, entry in enumerate(entries):
        if entry.question.strip() and entry.answer.strip():
            cleaned.append(entry)
        else:
            logger.warning(f"Dropping incomplete QA entry {position + 1}")
    return cleaned


def estimate_token_usage(user_input: str, qa_log: Sequence[QAEntry]) -> int:
    """Rough prompt size: fixed system prompt plus ~2 characters per token."""
    system_prompt_tokens = 3000
    input_tokens = math.ceil(len(user_input or "") / 2)
    history_tokens = sum(
        math.ceil(len(entry.question + entry.answer) / 2) for entry in qa_log
    )
    return system_prompt_tokens + input_tokens + history_tokens


# ============================================================================
# Derivation from answers
# ============================================================================

PRODUCT_TYPE_KEYWORDS = (
    (("website", "web", "网站"), "Web application"),
    (("app", "mobile", "应用"), "Mobile application"),
    (("extension", "plugin", "插件"), "Browser extension"),
    (("tool", "工具"), "Productivity tool"),
    (("manage", "system", "管理", "系统"), "Management system"),
)

STYLE_KEYWORDS = (
    (("minimal", "simple", "clean", "简洁", "简单"), StylePreference.MINIMAL),
    (("modern", "现代", "科技"), StylePreference.MODERN),
    (("professional", "business", "专业", "商务"), StylePreference.PROFESSIONAL),
    (("playful", "fun", "colorful", "活泼", "有趣"), StylePreference.PLAYFUL),
)

INTENT_MARKERS = ("i want", "i'd like", "i would like", "hope", "wish", "希望", "想要")


def detect_product_type(user_input: str) -> str:
    lowered = (user_input or "").lower()
    for keywords, product_type in PRODUCT_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return product_type
    return "Utility"


def detect_style(answers: Sequence[str]) -> Optional[StylePreference]:
    for answer in answers:
        lowered = answer.lower()
        for keywords, style in STYLE_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return style
    return None


def _short(text: str, limit: int = 40) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit].rstrip() + "..."


def derive_record(user_input: str, qa_log: Sequence[QAEntry]) -> RequirementRecord:
    """
    Build a record straight from the user's answers, grouped by category.

    Deterministic and model-free. Nothing is invented: a section stays
    empty until an answer in its category exists.
    """
    by_category: Dict[QACategory, List[str]] = {category: [] for category in QACategory}
    for entry in qa_log:
        by_category[entry.category].append(entry.answer.strip())

    painpoints = by_category[QACategory.PAINPOINT]
    functional = by_category[QACategory.FUNCTIONAL]
    data = by_category[QACategory.DATA]
    interface = by_category[QACategory.INTERFACE]
    user_input = (user_input or "").strip()

    expected_solution = ""
    if any(marker in user_input.lower() for marker in INTENT_MARKERS):
        expected_solution = user_input[:200]

    answer_count = len(qa_log)

    return RequirementRecord(
        problem_definition=ProblemDefinition(
            pain_point=" ".join(painpoints) if painpoints else user_input[:100],
            current_issue=painpoints[1] if len(painpoints) > 1 else "",
            expected_solution=expected_solution,
        ),
        functional_logic=FunctionalLogic(
            core_features=[
                CoreFeature(
                    name=_short(answer),
                    description=answer,
                    input_output=answer,
                    priority=FeaturePriority.HIGH,
                )
                for answer in functional
            ],
        ),
        data_model=DataModel(
            entities=[DataEntity(name=_short(answer), description=answer) for answer in data],
            operations=list(data),
        ),
        user_interface=UserInterface(
            pages=[Page(name=_short(answer), purpose=answer) for answer in interface],
            interactions=[Interaction(action=_short(answer), result=answer) for answer in interface],
            style_preference=detect_style(interface),
        ),
        metadata=RecordMetadata(
            original_input=user_input,
            product_type=detect_product_type(user_input),
            complexity=Complexity.MEDIUM if answer_count > 4 else Complexity.SIMPLE,
            confidence=min(0.5 + answer_count * 0.1, 0.9),
        ),
    )


# ============================================================================
# Additive merge
# ============================================================================

def _merge_text(base: str, incoming: str) -> str:
    """Blank never overwrites; otherwise the more detailed text wins."""
    if not (incoming or "").strip():
        return base
    if not (base or "").strip():
        return incoming
    return incoming if len(incoming.strip()) >= len(base.strip()) else base


def _merge_text_list(base: Sequence[str], incoming: Sequence[str]) -> List[str]:
    merged = list(base)
    seen = {item.strip().lower() for item in base}
    for item in incoming:
        key = item.strip().lower()
        if key and key not in seen:
            merged.append(item)
            seen.add(key)
    return merged


def _merge_entries(base: Sequence, incoming: Sequence, key: Callable, merge_one: Callable) -> list:
    """Merge entries with matching keys, append the rest. Never removes."""
    merged = [item.model_copy(deep=True) for item in base]
    positions = {key(item): i for i, item in enumerate(merged)}
    for item in incoming:
        item_key = key(item)
        if item_key in positions:
            merged[positions[item_key]] = merge_one(merged[positions[item_key]], item)
        else:
            positions[item_key] = len(merged)
            merged.append(item.model_copy(deep=True))
    return merged


def _name_key(item) -> str:
    name = item.name.strip().lower()
    return name or repr(item.model_dump())


def _interaction_key(item: Interaction) -> str:
    return "|".join(part.strip().lower() for part in (item.action, item.trigger, item.result))


def _merge_feature(base: CoreFeature, incoming: CoreFeature) -> CoreFeature:
    return CoreFeature(
        name=_merge_text(base.name, incoming.name),
        description=_merge_text(base.description, incoming.description),
        input_output=_merge_text(base.input_output, incoming.input_output),
        user_steps=_merge_text_list(base.user_steps, incoming.user_steps),
        priority=incoming.priority if "priority" in incoming.model_fields_set else base.priority,
    )


def _merge_entity(base: DataEntity, incoming: DataEntity) -> DataEntity:
    return DataEntity(
        name=_merge_text(base.name, incoming.name),
        description=_merge_text(base.description, incoming.description),
        fields=_merge_text_list(base.fields, incoming.fields),
        relationships=_merge_text_list(base.relationships, incoming.relationships),
    )


def _merge_page(base: Page, incoming: Page) -> Page:
    return Page(
        name=_merge_text(base.name, incoming.name),
        purpose=_merge_text(base.purpose, incoming.purpose),
        key_elements=_merge_text_list(base.key_elements, incoming.key_elements),
    )


def merge_records(base: RequirementRecord, incoming: RequirementRecord) -> RequirementRecord:
    """
    Fold `incoming` into `base` and return a new record.

    Neither input is modified. No entry is dropped and no filled text field
    is emptied, so no scoring sub-signal can flip from present to absent.
    """
    problem = ProblemDefinition(
        pain_point=_merge_text(base.problem_definition.pain_point, incoming.problem_definition.pain_point),
        current_issue=_merge_text(base.problem_definition.current_issue, incoming.problem_definition.current_issue),
        expected_solution=_merge_text(
            base.problem_definition.expected_solution, incoming.problem_definition.expected_solution
        ),
    )

    functional = FunctionalLogic(
        core_features=_merge_entries(
            base.functional_logic.core_features,
            incoming.functional_logic.core_features,
            _name_key,
            _merge_feature,
        ),
        data_flow=_merge_text(base.functional_logic.data_flow, incoming.functional_logic.data_flow),
        business_rules=_merge_text_list(
            base.functional_logic.business_rules, incoming.functional_logic.business_rules
        ),
    )

    data_model = DataModel(
        entities=_merge_entries(
            base.data_model.entities, incoming.data_model.entities, _name_key, _merge_entity
        ),
        operations=_merge_text_list(base.data_model.operations, incoming.data_model.operations),
        storage_requirements=_merge_text(
            base.data_model.storage_requirements, incoming.data_model.storage_requirements
        ),
    )

    interface = UserInterface(
        pages=_merge_entries(base.user_interface.pages, incoming.user_interface.pages, _name_key, _merge_page),
        interactions=_merge_entries(
            base.user_interface.interactions,
            incoming.user_interface.interactions,
            _interaction_key,
            lambda existing, _: existing,
        ),
        style_preference=incoming.user_interface.style_preference or base.user_interface.style_preference,
    )

    base_meta, incoming_meta = base.metadata, incoming.metadata
    metadata = RecordMetadata(
        original_input=base_meta.original_input or incoming_meta.original_input,
        product_type=_merge_text(base_meta.product_type, incoming_meta.product_type),
        complexity=(
            incoming_meta.complexity
            if "complexity" in incoming_meta.model_fields_set
            else base_meta.complexity
        ),
        target_users=_merge_text(base_meta.target_users, incoming_meta.target_users),
        confidence=max(base_meta.confidence, incoming_meta.confidence),
        completeness=max(base_meta.completeness, incoming_meta.completeness),
        timestamp=datetime.utcnow(),
    )

    return RequirementRecord(
        problem_definition=problem,
        functional_logic=functional,
        data_model=data_model,
        user_interface=interface,
        metadata=metadata,
    )


# ============================================================================
# Invariants
# ============================================================================

def record_sizes(record: RequirementRecord) -> Dict[str, int]:
    return {
        "coreFeatures": len(record.functional_logic.core_features),
        "businessRules": len(record.functional_logic.business_rules),
        "entities": len(record.data_model.entities),
        "operations": len(record.data_model.operations),
        "pages": len(record.user_interface.pages),
        "interactions": len(record.user_interface.interactions),
    }


def check_invariants(
    previous: RequirementRecord,
    merged: RequirementRecord,
    metrics: CompletenessMetrics,
) -> None:
    """Raise RecordInvariantError if a merge lost data or produced impossible scores."""
    before, after = record_sizes(previous), record_sizes(merged)
    for field, size in before.items():
        if after[field] < size:
            raise RecordInvariantError(f"{field} shrank from {size} to {after[field]}")

    scores = dict(metrics.dimension_scores(), overall=metrics.overall)
    for dimension, value in scores.items():
        if not isinstance(value, (int, float)) or math.isnan(value) or not 0.0 <= value <= 1.0:
            raise RecordInvariantError(f"{dimension} score out of range: {value!r}")
