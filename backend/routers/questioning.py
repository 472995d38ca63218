"""
Questioning Router - the wizard's question rounds.

Endpoints:
- POST /batch-questioning: run one adaptive question round
- POST /process-questioning-result: extract the final RequirementRecord
- POST /completeness: score a record locally, no model call

No session state lives here: the client sends the record snapshot and the
conversation with every request and keeps what comes back.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import logging

from models.questioning import (
    CompletenessReport,
    CompletenessRequest,
    ProcessResultData,
    ProcessResultRequest,
    ProcessResultResponse,
    QuestioningData,
    QuestioningRequest,
    QuestioningResponse,
)
from services.completeness import quality_tier, score
from services.continuation import decide
from services.gaps import identify_gaps
from services.orchestrator import RoundInvariantError, get_orchestrator
from services.record_builder import clean_qa_log, conversation_to_qa_log

logger = logging.getLogger(__name__)

router = APIRouter()


def _failure(error: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "error": str(error)})


@router.post("/batch-questioning", response_model=QuestioningResponse)
async def batch_questioning(request: QuestioningRequest):
    """
    Run one question round.

    Converts the conversation into the QA log, merges what it says into the
    client's record, and returns the next questions (empty when the session
    is ready for confirmation) with the updated record and scores.

    A negative `currentRound` is rejected with 400.
    """
    qa_log = conversation_to_qa_log(request.conversation_history)

    try:
        result = await get_orchestrator().run_round(
            record=request.current_record,
            qa_log=qa_log,
            user_input=request.user_input,
            current_round=request.current_round,
            stage=request.stage,
            session_id=request.session_id,
        )
    except RoundInvariantError:
        raise
    except Exception as e:
        logger.error(f"[{request.session_id}] Question round failed: {e}", exc_info=True)
        return _failure(e)

    data = QuestioningData(
        questions=result.questions,
        completeness_assessment=result.completeness_assessment,
        next_round_strategy=result.next_round_strategy,
        should_proceed_to_confirmation=result.should_proceed_to_confirmation,
        requirement_record=result.requirement_record,
        completeness=result.completeness,
        gaps=result.gaps,
        decision=result.decision,
        stage=result.stage,
        quality_tier=result.quality_tier,
        used_fallback=result.used_fallback,
        round=result.round,
    )
    return QuestioningResponse(success=True, data=data)


@router.post("/process-questioning-result", response_model=ProcessResultResponse)
async def process_questioning_result(request: ProcessResultRequest):
    """
    Turn the finished questioning session into a full RequirementRecord.

    Uses one extraction call; when that fails the record derived from the
    answers is returned instead, flagged with `usedFallback`.
    """
    try:
        result = await get_orchestrator().extract_requirements(
            user_input=request.user_input,
            qa_log=request.questioning_history,
            record=request.current_record,
            session_id=request.session_id,
        )
    except Exception as e:
        logger.error(f"[{request.session_id}] Requirement extraction failed: {e}", exc_info=True)
        return _failure(e)

    return ProcessResultResponse(
        success=True,
        data=ProcessResultData(
            requirement_record=result.requirement_record,
            completeness=result.completeness,
            gaps=result.gaps,
            decision=result.decision,
            ready_for_confirmation=result.ready_for_confirmation,
            used_fallback=result.used_fallback,
        ),
    )


@router.post("/completeness", response_model=CompletenessReport)
async def completeness(request: CompletenessRequest):
    """Score a record against the QA log. Purely local."""
    qa_log = clean_qa_log(request.qa_log)
    metrics = score(request.record, qa_log)
    return CompletenessReport(
        completeness=metrics,
        gaps=identify_gaps(metrics, request.record),
        decision=decide(metrics, qa_log),
        quality_tier=quality_tier(metrics),
    )
