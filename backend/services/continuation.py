"""
Continuation Policy - keep asking, or hand the record to confirmation?

Rules are evaluated in a fixed order and the first match wins. The round
limit and the minimum bar come first so that neither the user nor the model
can keep a session looping forever or push an unusable record forward.
"""

from typing import Iterable, List, Sequence
import re

from models.requirement import QAEntry
from models.completeness import (
    CompletenessMetrics,
    CompletionDecision,
    COMPLETION_THRESHOLDS,
    DecisionPriority,
    SessionStage,
    IMPROVEMENT_WINDOW,
    MAX_QA_ENTRIES,
    USER_CONTINUE_WINDOW,
)
from services.completeness import dimensions_below, meets_thresholds


REASON_MAX_ROUNDS = "max rounds reached"
REASON_INSUFFICIENT = "insufficient for PRD"
REASON_CAN_IMPROVE = "can improve"
REASON_USER_STOP = "user confirmed sufficiency"
REASON_USER_MORE = "user requested more"
REASON_MEETS_BAR = "meets bar"

# English markers match at the start of a word ("detail" also catches
# "details"), CJK markers as substrings.
STOP_MARKERS = (
    "done",
    "enough",
    "generate now",
    "generate the prd",
    "next step",
    "足够",
    "完成",
    "下一步",
    "生成PRD",
)
CONTINUE_MARKERS = (
    "more",
    "continue",
    "detail",
    "继续",
    "更多",
    "详细",
)


def _compile_markers(markers: Iterable[str]) -> re.Pattern:
    parts = []
    for marker in markers:
        if marker.isascii():
            parts.append(r"\b" + re.escape(marker))
        else:
            parts.append(re.escape(marker))
    return re.compile("|".join(parts), re.IGNORECASE)


_STOP_PATTERN = _compile_markers(STOP_MARKERS)
_CONTINUE_PATTERN = _compile_markers(CONTINUE_MARKERS)


def user_wants_to_stop(qa_log: Sequence[QAEntry]) -> bool:
    return any(_STOP_PATTERN.search(entry.answer or "") for entry in qa_log)


def user_wants_more(qa_log: Sequence[QAEntry]) -> bool:
    return any(_CONTINUE_PATTERN.search(entry.answer or "") for entry in qa_log)


def _missing_aspects(metrics: CompletenessMetrics, level: str) -> List[str]:
    """Dimensions below the bar, plus "overall" when the total is below it too."""
    missing = dimensions_below(metrics, level)
    if metrics.overall < COMPLETION_THRESHOLDS[level]["overall"]:
        missing.append("overall")
    return missing


def decide(metrics: CompletenessMetrics, qa_log: Sequence[QAEntry]) -> CompletionDecision:
    """Decide whether another question round is needed."""
    answered = len(qa_log)

    # 1. Hard stop, regardless of anything else
    if answered >= MAX_QA_ENTRIES:
        return CompletionDecision(
            should_continue=False,
            reason=REASON_MAX_ROUNDS,
            priority=DecisionPriority.CRITICAL,
            missing_aspects=[],
            confidence=1.0,
        )

    # 2. Minimum bar
    if not meets_thresholds(metrics, "minimum"):
        return CompletionDecision(
            should_continue=True,
            reason=REASON_INSUFFICIENT,
            priority=DecisionPriority.CRITICAL,
            missing_aspects=_missing_aspects(metrics, "minimum"),
            confidence=0.9,
        )

    # 3. Recommended bar, only while the session is still short
    if not meets_thresholds(metrics, "recommended") and answered < IMPROVEMENT_WINDOW:
        return CompletionDecision(
            should_continue=True,
            reason=REASON_CAN_IMPROVE,
            priority=DecisionPriority.IMPORTANT,
            missing_aspects=_missing_aspects(metrics, "recommended"),
            confidence=0.7,
        )

    # 4. Explicit stop beats explicit continue
    if user_wants_to_stop(qa_log):
        return CompletionDecision(
            should_continue=False,
            reason=REASON_USER_STOP,
            priority=DecisionPriority.OPTIONAL,
            missing_aspects=[],
            confidence=0.9,
        )

    # 5. Explicit continue, bounded
    if user_wants_more(qa_log) and answered < USER_CONTINUE_WINDOW:
        return CompletionDecision(
            should_continue=True,
            reason=REASON_USER_MORE,
            priority=DecisionPriority.OPTIONAL,
            missing_aspects=["user-requested additional detail"],
            confidence=0.8,
        )

    return CompletionDecision(
        should_continue=False,
        reason=REASON_MEETS_BAR,
        priority=DecisionPriority.OPTIONAL,
        missing_aspects=[],
        confidence=0.8,
    )


def advance_stage(stage: SessionStage, decision: CompletionDecision) -> SessionStage:
    """
    COLLECTING -> READY_FOR_CONFIRMATION, never back.

    A session that is already ready stays ready even when the user asks for
    more detail; those extra rounds are optional continuations.
    """
    if stage == SessionStage.READY_FOR_CONFIRMATION:
        return stage
    if not decision.should_continue:
        return SessionStage.READY_FOR_CONFIRMATION
    return SessionStage.COLLECTING
