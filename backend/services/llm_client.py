"""LLM Client for grounded answer generation through the Groq API."""
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import GROQ_API_KEY, GENERATION_MODEL, MAX_ANSWER_TOKENS, ANSWER_TEMPERATURE
from models.chunk import ScoredChunk

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a precise, helpful assistant that answers questions based ONLY on provided source excerpts.

Rules:
1. Answer using ONLY information from the provided sources
2. Cite sources inline with [Source N] notation
3. If sources don't contain enough information, say so clearly
4. Be concise and direct
5. Never hallucinate or add information not in the sources"""

CONTEXT_SEPARATOR = "\n\n---\n\n"


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for interfacing with Groq API for text generation."""

    def __init__(self, api_key: Optional[str] = None, model: str = GENERATION_MODEL):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Default model used when a call does not name one
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.client = Groq(api_key=self.api_key)
        logger.info("LLMClient initialized successfully")

    def generate(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = MAX_ANSWER_TOKENS
    ) -> LLMResponse:
        """
        Generate a complete response using Groq API.

        Args:
            system_prompt: Instructions sent as the system message
            user_message: Question with retrieved context
            model: Model name (defaults to the client's model)
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        model = model or self.model
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            response = self.client.chat.completions.create(
                model=model,
                messages=self._messages(system_prompt, user_message),
                max_tokens=max_tokens,
                temperature=ANSWER_TEMPERATURE
            )

            latency_ms = int((time.time() - start_time) * 1000)
            text = response.choices[0].message.content
            tokens_input = response.usage.prompt_tokens
            tokens_output = response.usage.completion_tokens

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except Exception as e:
            raise self._to_client_error(e, model, start_time) from e

    def generate_stream(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = MAX_ANSWER_TOKENS
    ) -> Iterator[Dict[str, Any]]:
        """
        Stream a response token by token.

        Yields:
            {"type": "token", "content": "..."} for each text delta, then one
            {"type": "metadata", "data": {...}} with usage and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        model = model or self.model
        start_time = time.time()
        tokens_input = 0
        tokens_output = 0

        try:
            logger.debug(f"Streaming response with model: {model}")

            stream = self.client.chat.completions.create(
                model=model,
                messages=self._messages(system_prompt, user_message),
                max_tokens=max_tokens,
                temperature=ANSWER_TEMPERATURE,
                stream=True
            )

            for event in stream:
                if event.choices:
                    content = event.choices[0].delta.content
                    if content:
                        yield {"type": "token", "content": content}

                # Groq reports usage on the final chunk under x_groq
                x_groq = getattr(event, "x_groq", None)
                usage = getattr(x_groq, "usage", None) if x_groq is not None else None
                if usage is not None:
                    tokens_input = usage.prompt_tokens
                    tokens_output = usage.completion_tokens

        except Exception as e:
            raise self._to_client_error(e, model, start_time) from e

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Streamed response: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )
        yield {
            "type": "metadata",
            "data": {
                "model_used": model,
                "tokens_input": tokens_input,
                "tokens_output": tokens_output,
                "latency_ms": latency_ms
            }
        }

    @staticmethod
    def _messages(system_prompt: str, user_message: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message}
        ]

    @staticmethod
    def _to_client_error(e: Exception, model: str, start_time: float) -> LLMClientError:
        """Map a Groq SDK exception to a structured LLMClientError."""
        latency_ms = int((time.time() - start_time) * 1000)
        details = {
            "model": model,
            "latency_ms": latency_ms,
            "original_error": str(e)
        }

        if isinstance(e, RateLimitError):
            details["retry_after"] = 60  # Suggest retry after 60 seconds
            error = LLMError(
                code="RATE_LIMIT_ERROR",
                message="Rate limit exceeded. Please try again in a few moments.",
                details=details
            )
        elif isinstance(e, AuthenticationError):
            error = LLMError(
                code="AUTHENTICATION_ERROR",
                message="Authentication failed. Please check your API key.",
                details=details
            )
        elif isinstance(e, APITimeoutError):
            error = LLMError(
                code="TIMEOUT_ERROR",
                message="Request timed out. Please try again.",
                details=details
            )
        elif isinstance(e, APIError):
            error = LLMError(
                code="API_ERROR",
                message=f"Groq API error: {str(e)}",
                details=details
            )
        else:
            details["error_type"] = type(e).__name__
            error = LLMError(
                code="UNKNOWN_ERROR",
                message=f"Unexpected error during generation: {str(e)}",
                details=details
            )

        logger.error(
            f"{error.code}: model={model}, latency={latency_ms}ms, error={e}",
            exc_info=True,
            extra={"extra": {"error_code": error.code, "error_details": error.details}}
        )
        return LLMClientError(error)

    @staticmethod
    def build_context(scored_chunks: List[ScoredChunk]) -> str:
        """
        Format retrieved chunks as numbered sources.

        Args:
            scored_chunks: Retrieved chunks in ranking order

        Returns:
            Sources joined by a horizontal rule
        """
        return CONTEXT_SEPARATOR.join(
            f"[Source {i}: {sc.chunk.doc_name}, relevance score: {sc.score:.2f}]\n{sc.chunk.text}"
            for i, sc in enumerate(scored_chunks, start=1)
        )

    @staticmethod
    def build_prompt(query: str, scored_chunks: List[ScoredChunk]) -> Tuple[str, str]:
        """
        Build the system prompt and user message for a grounded answer.

        Args:
            query: User question
            scored_chunks: Retrieved chunks, cited as [Source N] in this order

        Returns:
            (system_prompt, user_message)
        """
        context = LLMClient.build_context(scored_chunks)

        user_message = f"""Based on these retrieved document excerpts, answer the question.

=== RETRIEVED CONTEXT ===
{context}
=== END CONTEXT ===

Question: {query}

Answer based only on the above sources, with [Source N] citations:"""

        return SYSTEM_PROMPT, user_message
