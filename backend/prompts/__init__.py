"""
LLM Prompt Templates for the PRD Wizard questioning engine.

Each prompt is designed for:
- Strict JSON outputs the engine can validate field by field
- No invented requirements
- Plain, non-technical questions for the end user
"""

from .questioning import QUESTIONING_SYSTEM_PROMPT, QUESTIONING_USER_TEMPLATE, build_questioning_prompt
from .extraction import EXTRACTION_SYSTEM_PROMPT, EXTRACTION_USER_TEMPLATE, build_extraction_prompt

__all__ = [
    "QUESTIONING_SYSTEM_PROMPT",
    "QUESTIONING_USER_TEMPLATE",
    "build_questioning_prompt",
    "EXTRACTION_SYSTEM_PROMPT",
    "EXTRACTION_USER_TEMPLATE",
    "build_extraction_prompt",
]
