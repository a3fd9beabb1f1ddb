"""Incremental generation capability.

The engine only sees the GenerationCapability protocol. LangChainGeneration
is the production implementation on top of LangChain chat models:
- stream_text yields text fragments, smoothed to whole words
- stream_object yields the current value of a structured output as a dict;
  every item is the full object so far, not a diff
"""

import json
from collections.abc import AsyncGenerator
from contextlib import aclosing
from typing import Any, Protocol, runtime_checkable

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel

from docstream.generation.smoothing import smooth_words
from docstream.providers.handle import ModelHandle

# Providers whose structured output streams through tool calls
_TOOL_CALLING_PROVIDERS = frozenset({"anthropic"})


@runtime_checkable
class GenerationCapability(Protocol):
    def stream_text(
        self,
        handle: ModelHandle,
        *,
        system: str,
        prompt: str,
        provider_options: dict[str, dict[str, Any]] | None = None,
    ) -> AsyncGenerator[str, None]:
        ...

    def stream_object(
        self,
        handle: ModelHandle,
        *,
        system: str,
        prompt: str,
        schema: type[BaseModel],
    ) -> AsyncGenerator[dict, None]:
        ...


def _chunk_text(content: str | list) -> str:
    """Extract plain text from a message chunk's content.

    Anthropic chunks carry a list of content blocks; OpenAI chunks carry a str.
    """
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _json_instruction(schema: type[BaseModel]) -> str:
    """Schema instruction appended to the system prompt in JSON mode."""
    return (
        "Respond only with a JSON object matching this JSON schema:\n"
        f"{json.dumps(schema.model_json_schema())}"
    )


class LangChainGeneration:
    """GenerationCapability backed by LangChain's async streaming APIs."""

    async def stream_text(
        self,
        handle: ModelHandle,
        *,
        system: str,
        prompt: str,
        provider_options: dict[str, dict[str, Any]] | None = None,
    ) -> AsyncGenerator[str, None]:
        """Stream free-form text.

        ``provider_options`` is keyed by provider id; only the entry matching
        the handle's provider is passed to the model (e.g. OpenAI's predicted
        output hint), the rest are ignored.
        """
        model = handle.model
        options = (provider_options or {}).get(handle.provider)
        if options:
            model = model.bind(**options)

        messages = [SystemMessage(content=system), HumanMessage(content=prompt)]

        async def _fragments() -> AsyncGenerator[str, None]:
            async for chunk in model.astream(messages):
                text = _chunk_text(chunk.content)
                if text:
                    yield text

        async with aclosing(_fragments()) as fragments:
            async for word in smooth_words(fragments):
                yield word

    async def stream_object(
        self,
        handle: ModelHandle,
        *,
        system: str,
        prompt: str,
        schema: type[BaseModel],
    ) -> AsyncGenerator[dict, None]:
        """Stream a structured object constrained to ``schema``.

        Partial parses that do not validate against the schema are never
        yielded by the structured output parser.

        Anthropic models keep their default tool-calling method. Everything
        else goes through the OpenAI-compatible gateway in JSON mode, whose
        parser re-emits the partial object on every chunk; the default
        json_schema method only yields once the response is complete.
        """
        if handle.provider in _TOOL_CALLING_PROVIDERS:
            structured = handle.model.with_structured_output(schema)
        else:
            structured = handle.model.with_structured_output(schema, method="json_mode")
            system = f"{system}\n\n{_json_instruction(schema)}"
        messages = [SystemMessage(content=system), HumanMessage(content=prompt)]

        async for obj in structured.astream(messages):
            if isinstance(obj, BaseModel):
                obj = obj.model_dump()
            if obj:
                yield obj
