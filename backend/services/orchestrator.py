"""
Question Round Orchestrator - runs one round of the questioning session.

Round flow:
1. Fold the answers so far into the client's record snapshot
2. Score the record and ask the continuation policy what to do
3. Make at most one model call (assessment + questions + extracted fields)
4. Merge what the model extracted, re-score, check invariants
5. Produce questions (from the model, or from the fallback bank)

The orchestrator holds no session state. The record and QA log come in with
every call and go back out in the result.
"""

from pydantic import Field
from typing import Any, Dict, List, Optional, Sequence
import logging

from config import get_settings
from models.requirement import CamelModel, QAEntry, RequirementRecord
from models.completeness import (
    CompletenessMetrics,
    CompletionDecision,
    InformationGap,
    QualityTier,
    SessionStage,
)
from models.questioning import (
    CompletenessAssessment,
    GeneratedQuestion,
    RecommendedAction,
    parse_questions,
)
from models.audit import AuditAction
from prompts.questioning import build_questioning_prompt
from prompts.extraction import build_extraction_prompt
from services.llm_service import LLMService, LLMUnavailableError, get_llm_service
from services.audit_logger import AuditLogger, get_audit_logger
from services.completeness import meets_thresholds, quality_tier, score
from services.gaps import identify_gaps
from services.continuation import REASON_MAX_ROUNDS, advance_stage, decide
from services.fallback_questions import build_fallback_questions
from services.record_builder import (
    RecordInvariantError,
    check_invariants,
    clean_qa_log,
    derive_record,
    estimate_token_usage,
    merge_records,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class RoundInvariantError(ValueError):
    """The caller sent a round that cannot exist (e.g. a negative round number)."""


class RoundResult(CamelModel):
    """Everything one question round produced."""
    questions: List[GeneratedQuestion] = Field(default_factory=list)
    completeness_assessment: CompletenessAssessment = Field(default_factory=CompletenessAssessment)
    next_round_strategy: str
    should_proceed_to_confirmation: bool
    requirement_record: RequirementRecord
    completeness: CompletenessMetrics
    gaps: List[InformationGap] = Field(default_factory=list)
    decision: CompletionDecision
    stage: SessionStage
    quality_tier: QualityTier
    used_fallback: bool = False
    aborted: bool = False
    llm_called: bool = False
    estimated_tokens: int = 0
    round: int = 1


class ExtractionResult(CamelModel):
    requirement_record: RequirementRecord
    completeness: CompletenessMetrics
    gaps: List[InformationGap] = Field(default_factory=list)
    decision: CompletionDecision
    ready_for_confirmation: bool
    used_fallback: bool = False


def local_assessment(metrics: CompletenessMetrics, decision: CompletionDecision) -> CompletenessAssessment:
    """An assessment built from our own scores, used when the model gave none."""
    if decision.should_continue:
        action = RecommendedAction.CONTINUE_QUESTIONING
    else:
        action = RecommendedAction.PROCEED_TO_CONFIRMATION
    return CompletenessAssessment(
        can_generate=meets_thresholds(metrics, "minimum"),
        completeness_score=metrics.overall,
        missing_critical_info=list(decision.missing_aspects),
        recommended_action=action,
        reasoning=decision.reason,
    )


class QuestionRoundOrchestrator:
    """
    Drives question rounds and the final requirement extraction.

    The model is advisory: the local continuation policy alone decides
    whether another round happens.
    """

    def __init__(self, llm_service: LLMService = None, audit_logger: AuditLogger = None):
        self.llm = llm_service or get_llm_service()
        self.audit = audit_logger or get_audit_logger()
        self.max_questions = max(1, settings.max_questions_per_round)

    # ========================================================================
    # Question round
    # ========================================================================

    async def run_round(
        self,
        record: Optional[RequirementRecord],
        qa_log: Sequence[QAEntry],
        user_input: str,
        current_round: int = 1,
        stage: SessionStage = SessionStage.COLLECTING,
        session_id: Optional[str] = None,
    ) -> RoundResult:
        """
        Run one question round.

        Raises:
            RoundInvariantError: the round number is negative
        """
        if current_round < 0:
            raise RoundInvariantError(f"currentRound must not be negative, got {current_round}")

        qa_log = clean_qa_log(qa_log)
        previous = record or RequirementRecord()
        working = merge_records(previous, derive_record(user_input, qa_log))

        metrics = score(working, qa_log)
        decision = decide(metrics, qa_log)

        estimated_tokens = estimate_token_usage(user_input, qa_log)
        if estimated_tokens > settings.token_warning_threshold:
            logger.warning(
                f"[{session_id}] Estimated prompt size {estimated_tokens} tokens "
                f"exceeds {settings.token_warning_threshold}"
            )

        logger.info(
            f"[{session_id}] Round {current_round}: {len(qa_log)} answers, "
            f"overall={metrics.overall}, decision={decision.reason}"
        )

        assessment = None
        model_questions: List[GeneratedQuestion] = []
        llm_called = False
        aborted = False

        # The hard stop never spends a model call
        if decision.reason != REASON_MAX_ROUNDS:
            llm_called = True
            payload = await self._ask_model(user_input, qa_log, working, metrics, session_id)
            if payload is not None:
                raw_assessment = payload.get("completenessAssessment")
                assessment = CompletenessAssessment.model_validate(
                    raw_assessment if isinstance(raw_assessment, dict) else {}
                )
                model_questions = parse_questions(payload.get("questions"))[: self.max_questions]
                extracted = payload.get("extractedRequirements")
                if isinstance(extracted, dict) and extracted:
                    working = merge_records(working, RequirementRecord.from_untrusted(extracted))

        metrics = score(working, qa_log)
        try:
            check_invariants(previous, working, metrics)
        except RecordInvariantError as e:
            logger.error(f"[{session_id}] Round {current_round} aborted: {e}")
            await self.audit.log(
                action=AuditAction.ROUND_ABORTED,
                session_id=session_id,
                metadata={"round": current_round, "error": str(e)},
            )
            aborted = True
            working = previous
            metrics = score(working, qa_log)
            model_questions = []

        decision = decide(metrics, qa_log)
        gaps = identify_gaps(metrics, working)

        questions: List[GeneratedQuestion] = []
        used_fallback = False
        if decision.should_continue:
            questions = model_questions
            if not questions:
                questions = build_fallback_questions(gaps, qa_log, decision.missing_aspects)
                used_fallback = True
                await self.audit.log(
                    action=AuditAction.FALLBACK_QUESTIONS_USED,
                    session_id=session_id,
                    metadata={"round": current_round, "categories": [q.category.value for q in questions]},
                )

        if assessment is None:
            assessment = local_assessment(metrics, decision)

        new_stage = advance_stage(stage, decision)

        await self.audit.log(
            action=AuditAction.QUESTION_ROUND_COMPLETED,
            session_id=session_id,
            metadata={
                "round": current_round,
                "answers": len(qa_log),
                "overall": metrics.overall,
                "decision": decision.reason,
                "stage": new_stage.value,
                "used_fallback": used_fallback,
                "aborted": aborted,
            },
        )

        return RoundResult(
            questions=questions,
            completeness_assessment=assessment,
            next_round_strategy=(
                RecommendedAction.CONTINUE_QUESTIONING.value
                if decision.should_continue
                else RecommendedAction.PROCEED_TO_CONFIRMATION.value
            ),
            should_proceed_to_confirmation=not decision.should_continue,
            requirement_record=working,
            completeness=metrics,
            gaps=gaps,
            decision=decision,
            stage=new_stage,
            quality_tier=quality_tier(metrics),
            used_fallback=used_fallback,
            aborted=aborted,
            llm_called=llm_called,
            estimated_tokens=estimated_tokens,
            round=current_round,
        )

    async def _ask_model(
        self,
        user_input: str,
        qa_log: Sequence[QAEntry],
        record: RequirementRecord,
        metrics: CompletenessMetrics,
        session_id: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """One assess-and-ask call. None means unavailable or malformed."""
        system_prompt, user_prompt = build_questioning_prompt(
            user_input,
            list(qa_log),
            identify_gaps(metrics, record),
            max_questions=self.max_questions,
        )

        try:
            result = await self.llm.call_with_structured_output(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
            )
        except LLMUnavailableError as e:
            logger.warning(f"[{session_id}] Questioning model unavailable, using fallback: {e}")
            return None

        await self.audit.log_llm_call(
            action=AuditAction.LLM_QUESTIONING_CALLED,
            session_id=session_id,
            llm_result=result,
            prompt=user_prompt,
        )

        content = result.get("content")
        if not isinstance(content, dict):
            logger.warning(f"[{session_id}] Questioning reply is not a JSON object, using fallback")
            return None
        return content

    # ========================================================================
    # Requirement extraction
    # ========================================================================

    async def extract_requirements(
        self,
        user_input: str,
        qa_log: Sequence[QAEntry],
        record: Optional[RequirementRecord] = None,
        session_id: Optional[str] = None,
    ) -> ExtractionResult:
        """
        Turn the finished Q&A into a full RequirementRecord.

        The record derived from the answers is always merged in, so a failed
        model call still yields everything the answers contain.
        """
        qa_log = clean_qa_log(qa_log)
        previous = record or RequirementRecord()
        base = merge_records(previous, derive_record(user_input, qa_log))
        merged = base
        used_fallback = False

        system_prompt, user_prompt = build_extraction_prompt(user_input, qa_log)
        try:
            result = await self.llm.call_with_structured_output(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=settings.extraction_temperature,
                max_tokens=settings.extraction_max_tokens,
            )
            await self.audit.log_llm_call(
                action=AuditAction.LLM_EXTRACTION_CALLED,
                session_id=session_id,
                llm_result=result,
                prompt=user_prompt,
            )
            content = result.get("content")
            if isinstance(content, dict):
                merged = merge_records(base, RequirementRecord.from_untrusted(content))
            else:
                logger.warning(f"[{session_id}] Extraction reply is not a JSON object, using derived record")
                used_fallback = True
        except LLMUnavailableError as e:
            logger.warning(f"[{session_id}] Extraction model unavailable, using derived record: {e}")
            used_fallback = True

        metrics = score(merged, qa_log)
        try:
            check_invariants(previous, merged, metrics)
        except RecordInvariantError as e:
            logger.error(f"[{session_id}] Extracted record rejected: {e}")
            merged = previous
            metrics = score(merged, qa_log)
            used_fallback = True

        decision = decide(metrics, qa_log)
        gaps = identify_gaps(metrics, merged)

        await self.audit.log(
            action=AuditAction.REQUIREMENTS_EXTRACTED,
            session_id=session_id,
            metadata={
                "answers": len(qa_log),
                "overall": metrics.overall,
                "decision": decision.reason,
                "used_fallback": used_fallback,
            },
        )

        return ExtractionResult(
            requirement_record=merged,
            completeness=metrics,
            gaps=gaps,
            decision=decision,
            ready_for_confirmation=not decision.should_continue,
            used_fallback=used_fallback,
        )


# Singleton instance
_orchestrator: Optional[QuestionRoundOrchestrator] = None


def get_orchestrator() -> QuestionRoundOrchestrator:
    """Get or create the singleton orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = QuestionRoundOrchestrator()
    return _orchestrator
