"""In-process mock models used when the service runs in test mode.

The registry is built once at startup (see ``main.lifespan``). Resolving
against it before that happens is a deployment bug and raises
ConfigurationError rather than a user-facing error.

Mock models never touch the network:
- free-form streaming comes from LangChain's GenericFakeChatModel, which
  splits the canned reply on whitespace
- structured streaming re-emits the canned code as a growing whole value,
  one line at a time, the way a real structured stream reports the current
  field value
"""

from collections.abc import AsyncIterator
from itertools import cycle
from typing import Any

from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage
from langchain_core.runnables import Runnable, RunnableGenerator

from docstream.core.exceptions import ConfigurationError

CHAT_MODEL_ID = "openai/gpt-4o"
REASONING_MODEL_ID = "openai/o1-mini"
ARTIFACT_MODEL_ID = "openai/gpt-4o-mini"

_CHAT_REPLY = (
    "# Test document\n\n"
    "This is a canned response from the mock chat model. "
    "It is streamed word by word."
)
_REASONING_REPLY = "After thinking it through, the answer is simple: keep it small."
_ARTIFACT_REPLY = "A short artifact written by the mock artifact model."

_CODE_REPLY = (
    "def greet(name):\n"
    "    return f\"Hello, {name}!\"\n"
    "\n"
    "print(greet(\"world\"))\n"
)


class MockChatModel(GenericFakeChatModel):
    """Fake chat model that also supports structured output."""

    code_reply: str = _CODE_REPLY

    def with_structured_output(self, schema: Any, **kwargs: Any) -> Runnable:
        code_reply = self.code_reply

        async def _stream_code(inputs: AsyncIterator[Any]) -> AsyncIterator[dict]:
            async for _ in inputs:
                pass
            lines = code_reply.splitlines(keepends=True)
            for i in range(1, len(lines) + 1):
                yield {"code": "".join(lines[:i])}

        return RunnableGenerator(_stream_code)


def _mock_model(reply: str) -> MockChatModel:
    return MockChatModel(messages=cycle([AIMessage(content=reply)]))


_registry: dict[str, MockChatModel] | None = None


def init_mock_registry() -> dict[str, MockChatModel]:
    """Create the mock model registry. Idempotent."""
    global _registry

    if _registry is None:
        _registry = {
            CHAT_MODEL_ID: _mock_model(_CHAT_REPLY),
            REASONING_MODEL_ID: _mock_model(_REASONING_REPLY),
            ARTIFACT_MODEL_ID: _mock_model(_ARTIFACT_REPLY),
        }
    return _registry


def reset_mock_registry() -> None:
    global _registry
    _registry = None


def get_mock_registry() -> dict[str, MockChatModel]:
    """Return the mock model registry.

    Raises ConfigurationError if init_mock_registry() has not been called.
    """
    if _registry is None:
        raise ConfigurationError(
            surface="models",
            detail="Mock model registry not initialized. Call init_mock_registry() first.",
        )
    return _registry
