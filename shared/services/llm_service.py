"""
LLM Service — Centralized interface for all LLM API calls.

Wraps the OpenAI Chat Completions API. `call()` makes a single request with
retry on rate limits and timeouts; `stream_chat()` streams a tutoring reply as
frame payloads shaped like the chat SSE events (`{"type": "text" | "done" |
"error", ...}`).
"""

import json
import time
from typing import Dict, Any, Iterator, Optional
from openai import OpenAI, OpenAIError, RateLimitError, APITimeoutError
import logging

from config import Settings, get_settings

logger = logging.getLogger(__name__)


class LLMService:
    """
    Service for making LLM API calls with retry logic and error handling.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model_id: str,
        max_retries: int = 3,
        initial_retry_delay: float = 1.0,
        timeout: int = 60,
    ):
        self.client = OpenAI(api_key=api_key)
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.timeout = timeout
        self.model_id = model_id

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LLMService":
        settings = settings or get_settings()
        return cls(
            settings.openai_api_key,
            model_id=settings.llm_model,
            max_retries=settings.llm_max_retries,
            timeout=settings.llm_timeout,
        )

    # ─── Single request ───────────────────────────────────────────────

    def call(
        self,
        prompt: str,
        system: Optional[str] = None,
        json_mode: bool = True,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> Dict[str, Any]:
        """
        Call the Chat Completions API with one user prompt.

        Always returns: {output_text: str, reasoning: None}
        """
        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "starting",
            "model": self.model_id,
            "params": {"json_mode": json_mode, "temperature": temperature}
        }))

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        def _api_call():
            kwargs = {
                "model": self.model_id,
                "messages": messages,
                "max_completion_tokens": max_tokens,
                "temperature": temperature,
                "timeout": self.timeout,
            }
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}
            response = self.client.chat.completions.create(**kwargs)
            return response.choices[0].message.content

        text = self._execute_with_retry(_api_call, self.model_id)
        return {"output_text": text or "", "reasoning": None}

    # ─── Streaming chat ───────────────────────────────────────────────

    def stream_chat(
        self,
        messages: list[Dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 600,
    ) -> Iterator[Dict[str, Any]]:
        """
        Stream a chat completion as frame payloads.

        Yields `{"type": "text", "content": ...}` per delta, then
        `{"type": "done"}`. A failure before or during the stream yields a
        single `{"type": "error", "error": ...}` and ends the stream.
        """
        start_time = time.time()
        logger.info(json.dumps({
            "step": "LLM_STREAM",
            "status": "starting",
            "model": self.model_id,
            "params": {
                "messages": len(messages),
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        }))

        emitted = 0
        try:
            stream = self.client.chat.completions.create(
                model=self.model_id,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                stream=True,
                timeout=self.timeout,
            )
            for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    emitted += len(content)
                    yield {"type": "text", "content": content}
        except OpenAIError as e:
            logger.error(f"{self.model_id} streaming error: {str(e)}")
            logger.info(json.dumps({
                "step": "LLM_STREAM",
                "status": "failed",
                "model": self.model_id,
                "error": str(e),
                "duration_ms": int((time.time() - start_time) * 1000),
            }))
            yield {"type": "error", "error": str(e) or "Streaming failed"}
            return

        logger.info(json.dumps({
            "step": "LLM_STREAM",
            "status": "complete",
            "model": self.model_id,
            "output": {"response_length": emitted},
            "duration_ms": int((time.time() - start_time) * 1000),
        }))
        yield {"type": "done"}

    # ─── Helpers ──────────────────────────────────────────────────────

    def _execute_with_retry(self, api_call_fn, model_name: str) -> Any:
        """Execute API call with exponential backoff retry logic."""
        last_error = None
        delay = self.initial_retry_delay
        start_time = time.time()

        for attempt in range(self.max_retries):
            try:
                result = api_call_fn()
                duration_ms = int((time.time() - start_time) * 1000)

                logger.info(json.dumps({
                    "step": "LLM_CALL",
                    "status": "complete",
                    "model": model_name,
                    "output": {"response_length": len(str(result)) if result else 0},
                    "duration_ms": duration_ms,
                    "attempts": attempt + 1
                }))

                if attempt > 0:
                    logger.info(f"{model_name} call succeeded on attempt {attempt + 1}")
                return result

            except (RateLimitError, APITimeoutError) as e:
                last_error = e
                reason = "rate limit hit" if isinstance(e, RateLimitError) else "timeout"
                logger.warning(
                    f"{model_name} {reason} (attempt {attempt + 1}/{self.max_retries}). "
                    f"Retrying in {delay}s..."
                )
                time.sleep(delay)
                delay *= 2

            except OpenAIError as e:
                logger.error(f"{model_name} API error: {str(e)}")
                raise LLMServiceError(
                    f"{model_name} API error: {str(e)}", model_name=model_name, attempts=attempt + 1
                ) from e

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "failed",
            "model": model_name,
            "error": str(last_error),
            "duration_ms": duration_ms,
            "attempts": self.max_retries
        }))
        raise LLMServiceError(
            f"{model_name} failed after {self.max_retries} attempts. Last error: {str(last_error)}",
            model_name=model_name,
            attempts=self.max_retries,
        ) from last_error


class LLMServiceError(Exception):
    """Custom exception for LLM service errors"""

    def __init__(self, message: str, model_name: Optional[str] = None, attempts: Optional[int] = None):
        super().__init__(message)
        self.model_name = model_name
        self.attempts = attempts
