"""
LLM Service - Handles all interactions with language models.

Supports:
- OpenAI
- Azure OpenAI
- Groq (OpenAI-compatible endpoint)

Features:
- Bounded retries: fixed delay on rate limiting, exponential backoff
  with jitter on everything else
- Per-attempt timeout
- Token tracking
- Mock mode for development
"""

from typing import Optional, Dict, Any, List
from datetime import datetime
import json
import logging
import asyncio
import random

from openai import RateLimitError

from config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class LLMUnavailableError(Exception):
    """Every attempt failed. Callers treat this as 'capability unavailable'."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


def is_rate_limited(error: Exception) -> bool:
    """True for provider throttling (HTTP 429), whatever client raised it."""
    if isinstance(error, RateLimitError):
        return True
    return getattr(error, "status_code", None) == 429


class LLMService:
    """
    Centralized LLM interaction service.
    All model calls go through this service so retry and degradation
    behaviour is the same everywhere.
    """

    def __init__(self):
        self.mode = settings.llm_mode.lower()  # "mock" or "real"
        self.provider = settings.llm_provider
        self.model = settings.llm_model
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens

        self.max_attempts = max(1, settings.llm_max_attempts)
        self.timeout_seconds = settings.llm_timeout_seconds
        self.rate_limit_delay = settings.llm_rate_limit_delay_seconds
        self.backoff_base = settings.llm_backoff_base_seconds
        self.backoff_jitter = settings.llm_backoff_jitter_seconds

        # Initialize client based on provider (only if real mode)
        self._client = None
        if self.mode == "real":
            self._init_client()
        else:
            logger.info("LLM Service running in MOCK mode")

        # Token tracking
        self.total_input_tokens = 0
        self.total_output_tokens = 0

    def _init_client(self):
        """Initialize the LLM client based on provider configuration."""
        try:
            if self.provider == "groq":
                from openai import AsyncOpenAI
                # Groq uses OpenAI-compatible API
                self._client = AsyncOpenAI(
                    api_key=settings.groq_api_key,
                    base_url="https://api.groq.com/openai/v1",
                    max_retries=0,
                )
                logger.info(f"Initialized Groq client with model: {self.model}")
            elif self.provider == "openai":
                from openai import AsyncOpenAI
                self._client = AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0)
            elif self.provider == "azure":
                from openai import AsyncAzureOpenAI
                self._client = AsyncAzureOpenAI(
                    azure_endpoint=settings.azure_openai_endpoint,
                    api_key=settings.azure_openai_key,
                    api_version="2024-02-01",
                    max_retries=0,
                )
            else:
                logger.warning(f"Unknown LLM provider: {self.provider}. Using mock mode.")
                self._client = None
        except Exception as e:
            logger.error(f"Failed to initialize LLM client: {e}")
            self._client = None

    def _retry_delay(self, attempt: int, error: Exception) -> float:
        """Seconds to wait before the attempt after `attempt` (0-based)."""
        if is_rate_limited(error):
            # Fixed: exponential waits compound under sustained throttling
            return self.rate_limit_delay
        return self.backoff_base * (2 ** attempt) + random.uniform(0, self.backoff_jitter)

    async def call(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model_id: Optional[str] = None,
        expect_json: bool = False,
    ) -> Dict[str, Any]:
        """
        Make an LLM call with retry logic.

        Args:
            messages: Role-tagged chat messages
            temperature: Sampling temperature (defaults to settings)
            max_tokens: Completion budget (defaults to settings)
            model_id: Model override (defaults to settings)
            expect_json: Ask for a JSON object and try to parse it

        Returns:
            Dict with 'content', 'input_tokens', 'output_tokens', 'model', 'latency_ms', 'attempts'.
            With expect_json, 'content' is a dict when parsing succeeded and the
            raw text otherwise.

        Raises:
            LLMUnavailableError: every attempt failed
        """

        start_time = datetime.utcnow()

        if self.mode == "mock" or self._client is None:
            # Mock mode for development
            logger.info("Using mock LLM response")
            return self._mock_response(messages)

        model_name = model_id or self.model
        if self.provider == "azure":
            model_name = settings.azure_openai_deployment

        kwargs = {
            "model": model_name,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }
        if expect_json:
            kwargs["response_format"] = {"type": "json_object"}

        errors = []
        for attempt in range(self.max_attempts):
            try:
                response = await asyncio.wait_for(
                    self._client.chat.completions.create(**kwargs),
                    timeout=self.timeout_seconds,
                )

                content = response.choices[0].message.content
                input_tokens = response.usage.prompt_tokens if response.usage else 0
                output_tokens = response.usage.completion_tokens if response.usage else 0

                # Track tokens
                self.total_input_tokens += input_tokens
                self.total_output_tokens += output_tokens

                latency_ms = int((datetime.utcnow() - start_time).total_seconds() * 1000)

                if expect_json and content:
                    content = parse_json_content(content)

                return {
                    "content": content,
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                    "model": model_name,
                    "latency_ms": latency_ms,
                    "attempts": attempt + 1,
                }

            except Exception as e:
                errors.append(f"{type(e).__name__}: {e}")
                logger.error(f"LLM call failed (attempt {attempt + 1}/{self.max_attempts}): {e}")
                if attempt < self.max_attempts - 1:
                    delay = self._retry_delay(attempt, e)
                    if is_rate_limited(e):
                        logger.warning(f"Rate limited, waiting {delay:.1f}s before retrying")
                    await asyncio.sleep(delay)

        raise LLMUnavailableError(
            f"LLM call failed after {self.max_attempts} attempts: {errors[-1]}",
            errors=errors,
        )

    async def call_with_structured_output(
        self,
        system_prompt: str,
        user_prompt: str,
        output_schema: Optional[Dict[str, Any]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Make an LLM call expecting structured JSON output.

        The system prompt should instruct the LLM to output valid JSON;
        when a schema is given it is appended as a reminder.
        """

        enhanced_system = system_prompt
        if output_schema:
            enhanced_system = f"""{system_prompt}

IMPORTANT: Your response MUST be valid JSON matching this schema:
{json.dumps(output_schema, indent=2)}

Do not include any text before or after the JSON object."""

        return await self.call(
            messages=[
                {"role": "system", "content": enhanced_system},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            expect_json=True,
        )

    def _mock_response(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        """Generate a mock response for development/testing."""
        prompt = " ".join(m.get("content", "") for m in messages)
        prompt_lower = prompt.lower()

        if "extract" in prompt_lower and "requirementrecord" in prompt_lower:
            content = self._mock_extraction_response()
        else:
            content = self._mock_questioning_response()

        input_tokens = len(prompt.split())
        self.total_input_tokens += input_tokens
        self.total_output_tokens += 300

        return {
            "content": content,
            "input_tokens": input_tokens,
            "output_tokens": 300,
            "model": f"{self.model} (mock)",
            "latency_ms": 100,
            "attempts": 1,
        }

    def _mock_questioning_response(self) -> Dict[str, Any]:
        """Canned assess-and-ask payload."""
        return {
            "completenessAssessment": {
                "canGenerate": False,
                "completenessScore": 0.4,
                "missingCriticalInfo": ["Core features are not described yet"],
                "missingImportantInfo": ["Data the tool needs to keep"],
                "qualityRisk": [],
                "recommendedAction": "continue_questioning",
                "reasoning": "The pain point is clear but the feature set is not.",
            },
            "questions": [
                {
                    "id": "mock-q-1",
                    "category": "functional",
                    "question": "What should the tool do first when you open it?",
                    "options": [
                        {"id": "1", "text": "Show today's items", "prdMapping": "functionalLogic.coreFeatures"},
                        {"id": "2", "text": "Let me add something quickly", "prdMapping": "functionalLogic.coreFeatures"},
                        {"id": "custom", "text": "Let me describe it in detail", "prdMapping": "custom"},
                    ],
                    "purpose": "Identify the primary feature",
                    "priority": "critical",
                }
            ],
            "extractedRequirements": {},
        }

    def _mock_extraction_response(self) -> Dict[str, Any]:
        """Canned record extraction payload."""
        return {
            "problemDefinition": {
                "painPoint": "Tasks get lost between chat, email and notes",
                "currentIssue": "Copying tasks by hand into a spreadsheet",
                "expectedSolution": "One list that collects tasks automatically",
            },
            "functionalLogic": {
                "coreFeatures": [
                    {
                        "name": "Quick capture",
                        "description": "Add a task from anywhere",
                        "inputOutput": "Task text -> saved task",
                        "userSteps": ["Open capture box", "Type task", "Press enter"],
                        "priority": "high",
                    }
                ],
                "dataFlow": "Capture -> list -> reminders",
                "businessRules": ["Tasks without a due date go to the inbox"],
            },
            "dataModel": {
                "entities": [
                    {"name": "Task", "description": "A unit of work", "fields": ["title", "due"], "relationships": []}
                ],
                "operations": ["create", "complete"],
                "storageRequirements": "Local storage is enough",
            },
            "userInterface": {
                "pages": [{"name": "Inbox", "purpose": "Review new tasks", "keyElements": ["list"]}],
                "interactions": [{"action": "Complete task", "trigger": "Tick checkbox", "result": "Task archived"}],
                "stylePreference": "minimal",
            },
            "metadata": {"productType": "Productivity tool", "complexity": "simple", "confidence": 0.7},
        }

    def get_token_stats(self) -> Dict[str, int]:
        """Get cumulative token usage statistics."""
        return {
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_input_tokens + self.total_output_tokens,
        }


def parse_json_content(content: str) -> Any:
    """
    Parse a JSON reply, tolerating a surrounding markdown fence.
    Returns the raw text when it is not JSON.
    """
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Failed to parse JSON response")
        return content


# Singleton instance
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Get or create the singleton LLM service instance."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
