"""Text-completion clients backed by Anthropic chat models.

The rest of the service only depends on the ``TextCompletionClient``
protocol: a single blocking ``complete(prompt) -> str`` call.  Tests pass
in stubs; production wires two ``AnthropicCompletionClient`` instances, one
per model tier (see ``build_chat_client`` / ``build_classifier_client``).

Calls are single-shot: there is no retry, and any failure from the model
SDK is re-raised as ``UpstreamError`` after the failure metric is recorded.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

from src.config import ANTHROPIC_API_KEY, MODEL_NAME, ROUTER_MODEL_NAME
from src.errors import UpstreamError
from src.services.metrics import metrics

logger = logging.getLogger(__name__)


class TextCompletionClient(Protocol):
    def complete(self, prompt: str) -> str: ...


def _response_text(content) -> str:
    """Flatten a chat-model response ``content`` into plain text.

    Anthropic may return either a string or a list of content blocks.
    """
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class AnthropicCompletionClient:
    """Adapts a LangChain chat model to ``complete(prompt) -> str``.

    ``operation`` names the call in logs and metrics.
    """

    def __init__(self, llm: BaseChatModel, *, operation: str = "complete"):
        self._llm = llm
        self._operation = operation

    def complete(self, prompt: str) -> str:
        op = self._operation
        t0 = time.perf_counter()
        try:
            response = self._llm.invoke([HumanMessage(content=prompt)])
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                "anthropic", op, error_type=type(exc).__name__, latency_ms=elapsed,
            )
            logger.warning("Completion %s failed after %.0fms: %s", op, elapsed, exc)
            raise UpstreamError(f"Text completion failed ({op})", operation=op) from exc

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("anthropic", op, latency_ms=elapsed)
        logger.debug("Completion %s responded in %.0fms", op, elapsed)
        return _response_text(response.content)


# ── LLM builders ────────────────────────────────────────────────────


def _build_chat_llm() -> ChatAnthropic:
    """Nurse and doctor-persona replies."""
    return ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.3,
        max_tokens=1024,
    )


def _build_router_llm() -> ChatAnthropic:
    """Doctor-intent classification: deterministic, one word back."""
    return ChatAnthropic(
        model=ROUTER_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.0,
        max_tokens=10,
    )


def build_chat_client() -> AnthropicCompletionClient:
    return AnthropicCompletionClient(_build_chat_llm(), operation="chat")


def build_classifier_client() -> AnthropicCompletionClient:
    return AnthropicCompletionClient(_build_router_llm(), operation="intent_classify")
