"""
Tests for services/audit_logger.py - buffering, JSONL files, hashing.
"""

import asyncio
import json
from pathlib import Path

from models.audit import AuditAction, AuditLogEntry
from services.audit_logger import AuditLogger


def _files(audit_dir):
    return sorted(Path(audit_dir).glob("audit_*.jsonl"))


class TestAuditLogger:

    def test_entries_are_buffered_until_full(self, audit_dir):
        logger = AuditLogger(log_path=audit_dir, buffer_size=2)
        asyncio.run(logger.log(AuditAction.QUESTION_ROUND_COMPLETED, session_id="s-1"))
        assert _files(audit_dir) == []

        asyncio.run(logger.log(AuditAction.QUESTION_ROUND_COMPLETED, session_id="s-1"))
        lines = _files(audit_dir)[0].read_text().splitlines()
        assert len(lines) == 2

    def test_close_flushes_remaining_entries(self, audit_dir):
        logger = AuditLogger(log_path=audit_dir)
        asyncio.run(logger.log(AuditAction.ROUND_ABORTED, session_id="s-2", metadata={"round": 3}))
        asyncio.run(logger.close())
        entry = json.loads(_files(audit_dir)[0].read_text().splitlines()[0])
        assert entry["action"] == "round_aborted"
        assert entry["resource_type"] == "session"
        assert entry["resource_id"] == "s-2"
        assert entry["metadata"] == {"round": 3}

    def test_missing_session_is_anonymous(self, audit_dir):
        logger = AuditLogger(log_path=audit_dir)
        asyncio.run(logger.log(AuditAction.FALLBACK_QUESTIONS_USED))
        assert logger._buffer[0].resource_id == "anonymous"

    def test_llm_call_stores_hashes_only(self, audit_dir):
        logger = AuditLogger(log_path=audit_dir)
        result = {
            "content": {"questions": []},
            "input_tokens": 120,
            "output_tokens": 40,
            "model": "fake-model",
            "latency_ms": 250,
            "attempts": 2,
        }
        asyncio.run(logger.log_llm_call(AuditAction.LLM_QUESTIONING_CALLED, "s-3", result, "my secret answer"))
        entry = logger._buffer[0]
        assert entry.llm_model == "fake-model"
        assert entry.llm_attempts == 2
        assert entry.request_hash == AuditLogEntry.compute_hash("my secret answer")
        assert "my secret answer" not in entry.model_dump_json()

    def test_hash_is_stable_for_dicts(self):
        assert AuditLogEntry.compute_hash({"b": 1, "a": 2}) == AuditLogEntry.compute_hash({"a": 2, "b": 1})
