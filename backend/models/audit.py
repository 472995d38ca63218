"""
Audit logging models.
Every question round and model call is recorded for traceability.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum
import hashlib
import json


class AuditAction(str, Enum):
    """Types of auditable actions."""
    # Session actions
    QUESTION_ROUND_COMPLETED = "question_round_completed"
    ROUND_ABORTED = "round_aborted"
    REQUIREMENTS_EXTRACTED = "requirements_extracted"
    FALLBACK_QUESTIONS_USED = "fallback_questions_used"

    # LLM actions
    LLM_QUESTIONING_CALLED = "llm_questioning_called"
    LLM_EXTRACTION_CALLED = "llm_extraction_called"


class AuditLogEntry(BaseModel):
    """
    A single audit log entry.
    These are immutable and append-only.
    """
    id: str = Field(..., description="Unique log entry ID")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    # Action
    action: AuditAction
    resource_type: str = Field(default="session", description="e.g., 'session'")
    resource_id: str = Field(..., description="Session ID, or 'anonymous'")

    # LLM-specific fields
    llm_model: Optional[str] = None
    llm_tokens_input: Optional[int] = None
    llm_tokens_output: Optional[int] = None
    llm_latency_ms: Optional[int] = None
    llm_attempts: Optional[int] = None

    # Content hashes (answers can be personal, so only hashes are kept)
    request_hash: Optional[str] = Field(
        None,
        description="SHA-256 hash of request payload"
    )
    response_hash: Optional[str] = Field(
        None,
        description="SHA-256 hash of response payload"
    )

    # Additional metadata
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @staticmethod
    def compute_hash(data: Any) -> str:
        """Compute SHA-256 hash of data for audit purposes."""
        if isinstance(data, str):
            content = data
        else:
            content = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(content.encode()).hexdigest()
