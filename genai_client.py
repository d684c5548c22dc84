# One outbound call to the generative-language service, no retries.
# Failures come back as the closed set in errors.py:
#   ConfigurationError (no credential, nothing sent)
#   TransportError     (connection failure / timeout)
#   UpstreamAPIError   (non-2xx, provider status + body in details)
import json
import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import httpx
import openai
from openai import AsyncOpenAI

from audit import write_event
from errors import ConfigurationError, TransportError, UpstreamAPIError
from prompt_builder import AnalysisRequestPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationEnvelope:
    """What came back: the text of every completion candidate, in order."""

    candidates: Tuple[Optional[str], ...]
    model: str


class GenerationClient:
    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        audit_path: Optional[str] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.audit_path = audit_path
        # Only set in tests: routes the SDK through an httpx transport.
        self._transport = transport

    @classmethod
    def from_settings(cls, settings, transport=None) -> "GenerationClient":
        return cls(
            api_key=settings.GENAI_API_KEY,
            model=settings.GENAI_MODEL,
            base_url=settings.GENAI_BASE_URL,
            timeout=settings.GENAI_TIMEOUT_SECONDS,
            transport=transport,
            audit_path=settings.AUDIT_LOG_PATH,
        )

    def _open_client(self) -> AsyncOpenAI:
        # A fresh client per call, so it always belongs to the running event loop.
        http_client = httpx.AsyncClient(transport=self._transport) if self._transport else None
        return AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def generate(self, payload: AnalysisRequestPayload) -> GenerationEnvelope:
        if not self.api_key:
            logger.error("GENAI_API_KEY is not set; refusing to call the analysis service")
            write_event("GENAI_CONFIGURATION_ERROR", {"missing": "GENAI_API_KEY"}, path=self.audit_path)
            raise ConfigurationError(details="GENAI_API_KEY is not set.")

        start = time.time()
        try:
            async with self._open_client() as client:
                resp = await client.chat.completions.create(
                    model=self.model,
                    messages=payload.messages(),
                    temperature=payload.temperature,
                    max_tokens=payload.max_tokens,
                    response_format=payload.response_format,
                )
        except openai.APIStatusError as e:
            logger.warning("Analysis service returned HTTP %s", e.status_code)
            raise UpstreamAPIError(e.status_code, _error_body(e)) from e
        except openai.APITimeoutError as e:
            logger.warning("Analysis service timed out after %.1fs", self.timeout)
            raise TransportError(details=f"Request timed out after {self.timeout:g}s.") from e
        except openai.APIConnectionError as e:
            logger.warning("Analysis service unreachable: %s", e)
            raise TransportError(details=str(e)) from e
        except openai.APIResponseValidationError as e:
            logger.warning("Analysis service sent an unreadable response body")
            raise UpstreamAPIError(e.status_code, _error_body(e)) from e

        elapsed = time.time() - start
        logger.info(
            "Analysis call model=%s input_chars=%d elapsed=%.2fs",
            self.model, len(payload.user_prompt), elapsed,
        )

        candidates = tuple(
            choice.message.content if choice.message is not None else None
            for choice in (resp.choices or [])
        )
        return GenerationEnvelope(candidates=candidates, model=resp.model or self.model)


def _error_body(e: openai.APIError) -> str:
    body = getattr(e, "body", None)
    if body is not None:
        try:
            return json.dumps(body)
        except (TypeError, ValueError):
            return str(body)
    response = getattr(e, "response", None)
    return response.text if response is not None else ""
