"""Business logic services for PRD Wizard."""

from .llm_service import LLMService, LLMUnavailableError
from .audit_logger import AuditLogger
from .orchestrator import QuestionRoundOrchestrator, RoundInvariantError

__all__ = ["LLMService", "LLMUnavailableError", "AuditLogger", "QuestionRoundOrchestrator", "RoundInvariantError"]
