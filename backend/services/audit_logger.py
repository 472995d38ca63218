"""
Audit Logger Service - Append-only trail of questioning sessions.

Logged:
- Completed, aborted and fallback question rounds
- LLM calls (model, tokens, latency, attempts; payloads as hashes only)
- Requirement extraction results
"""

from typing import Optional, Dict, Any
from datetime import datetime
import json
import uuid
from pathlib import Path
import logging

from models.audit import AuditLogEntry, AuditAction
from config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class AuditLogger:
    """
    Append-only audit logging service.

    Writes buffered entries to one JSONL file per day.
    """

    def __init__(self, log_path: str = None, buffer_size: int = 10):
        self.log_path = Path(log_path or settings.audit_log_path)
        self.log_path.mkdir(parents=True, exist_ok=True)

        # In-memory buffer for batch writes
        self._buffer: list = []
        self._buffer_size = buffer_size

    async def log(
        self,
        action: AuditAction,
        session_id: Optional[str] = None,
        resource_type: str = "session",
        metadata: Optional[Dict[str, Any]] = None,
        # LLM-specific fields
        llm_model: Optional[str] = None,
        llm_tokens_input: Optional[int] = None,
        llm_tokens_output: Optional[int] = None,
        llm_latency_ms: Optional[int] = None,
        llm_attempts: Optional[int] = None,
        request_data: Optional[Any] = None,
        response_data: Optional[Any] = None,
    ) -> str:
        """
        Log an auditable action.

        Args:
            action: The type of action (from AuditAction enum)
            session_id: Opaque session id supplied by the client
            resource_type: Type of resource affected
            metadata: Additional context
            llm_model: Model used for LLM actions
            llm_tokens_input: Input tokens for LLM actions
            llm_tokens_output: Output tokens for LLM actions
            llm_latency_ms: Latency in ms for LLM actions
            llm_attempts: Attempts the retry wrapper needed
            request_data: Request payload (will be hashed, not stored)
            response_data: Response payload (will be hashed, not stored)

        Returns:
            The unique log entry ID
        """

        entry_id = f"audit-{uuid.uuid4().hex}"
        resource_id = session_id or "anonymous"

        request_hash = None
        response_hash = None

        if request_data is not None:
            request_hash = AuditLogEntry.compute_hash(request_data)

        if response_data is not None:
            response_hash = AuditLogEntry.compute_hash(response_data)

        entry = AuditLogEntry(
            id=entry_id,
            timestamp=datetime.utcnow(),
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            llm_model=llm_model,
            llm_tokens_input=llm_tokens_input,
            llm_tokens_output=llm_tokens_output,
            llm_latency_ms=llm_latency_ms,
            llm_attempts=llm_attempts,
            request_hash=request_hash,
            response_hash=response_hash,
            metadata=metadata or {},
        )

        self._buffer.append(entry)

        if len(self._buffer) >= self._buffer_size:
            await self._flush()

        logger.info(f"AUDIT: {action.value} on {resource_type}/{resource_id}")

        return entry_id

    async def _flush(self):
        """Flush the buffer to disk."""
        if not self._buffer:
            return

        date_str = datetime.utcnow().strftime("%Y-%m-%d")
        log_file = self.log_path / f"audit_{date_str}.jsonl"

        try:
            with open(log_file, "a") as f:
                for entry in self._buffer:
                    f.write(json.dumps(entry.model_dump(), default=str) + "\n")

            self._buffer.clear()

        except OSError as e:
            logger.error(f"Failed to write audit log: {e}")

    async def log_llm_call(
        self,
        action: AuditAction,
        session_id: Optional[str],
        llm_result: Dict[str, Any],
        prompt: str,
    ) -> str:
        """
        Convenience method for logging LLM calls from an LLMService result dict.
        """
        return await self.log(
            action=action,
            session_id=session_id,
            llm_model=llm_result.get("model"),
            llm_tokens_input=llm_result.get("input_tokens"),
            llm_tokens_output=llm_result.get("output_tokens"),
            llm_latency_ms=llm_result.get("latency_ms"),
            llm_attempts=llm_result.get("attempts"),
            request_data=prompt,
            response_data=llm_result.get("content"),
        )

    async def close(self):
        """Flush any remaining entries and close."""
        await self._flush()


# Singleton instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get or create the singleton audit logger instance."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger
