"""DocumentGenerationEngine: streams a document into a sink and returns the draft.

Each DocumentKind has its own handler with its own accumulation rule:
- text: increments are fragments and are concatenated
- code: increments are the whole current value of the ``code`` field and
  replace the draft (last write wins)

Invariants:
- exactly one DeltaEvent per non-empty increment, in arrival order
- the returned draft matches the last emitted event ("" when none)
- a failing generation stream raises UpstreamFailureError; events already
  written to the sink stay there
- no retries; the caller owns retry policy

The engine keeps no state between calls. Every draft lives in the task
that called generate(), so any number of generations can run concurrently.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import aclosing

import structlog

from docstream.core.exceptions import DocStreamError, UpstreamFailureError
from docstream.generation.capability import GenerationCapability, LangChainGeneration
from docstream.generation.prompts import (
    CODE_CREATE_SYSTEM_PROMPT,
    TEXT_CREATE_SYSTEM_PROMPT,
    update_document_prompt,
)
from docstream.generation.schemas import (
    CodeArtifact,
    DeltaEvent,
    DeltaType,
    DocumentAction,
    DocumentKind,
    GenerationRequest,
)
from docstream.generation.sink import DataStreamSink

logger = structlog.get_logger(__name__)


class DocumentHandler(ABC):
    """Base class for per-kind generation behaviour."""

    kind: DocumentKind
    delta_type: DeltaType
    create_prompt: str = ""

    @abstractmethod
    def open(
        self, capability: GenerationCapability, request: GenerationRequest
    ) -> AsyncGenerator[str, None]:
        """Start the generation stream; yields increments as strings."""

    @abstractmethod
    def accumulate(self, draft: str, increment: str) -> str:
        """Fold one increment into the draft."""

    def system_prompt(self, request: GenerationRequest) -> str:
        if request.action is DocumentAction.UPDATE:
            return update_document_prompt(request.existing_content or "", self.kind.value)
        return self.create_prompt


class TextDocumentHandler(DocumentHandler):
    kind = DocumentKind.TEXT
    delta_type = "text-delta"
    create_prompt = TEXT_CREATE_SYSTEM_PROMPT

    def open(
        self, capability: GenerationCapability, request: GenerationRequest
    ) -> AsyncGenerator[str, None]:
        provider_options = None
        if request.action is DocumentAction.UPDATE:
            # Existing content is a good guess at the output; OpenAI can use it
            # as a predicted output to speed the rewrite up.
            provider_options = {
                "openai": {
                    "prediction": {"type": "content", "content": request.existing_content or ""},
                },
            }

        return capability.stream_text(
            request.model_handle,
            system=self.system_prompt(request),
            prompt=request.prompt,
            provider_options=provider_options,
        )

    def accumulate(self, draft: str, increment: str) -> str:
        return draft + increment


class CodeDocumentHandler(DocumentHandler):
    kind = DocumentKind.CODE
    delta_type = "code-delta"
    create_prompt = CODE_CREATE_SYSTEM_PROMPT

    def open(
        self, capability: GenerationCapability, request: GenerationRequest
    ) -> AsyncGenerator[str, None]:
        objects = capability.stream_object(
            request.model_handle,
            system=self.system_prompt(request),
            prompt=request.prompt,
            schema=CodeArtifact,
        )
        return self._code_values(objects)

    async def _code_values(self, objects: AsyncGenerator[dict, None]) -> AsyncGenerator[str, None]:
        async with aclosing(objects):
            async for obj in objects:
                yield obj.get("code") or ""

    def accumulate(self, draft: str, increment: str) -> str:
        return increment


HANDLERS: dict[DocumentKind, DocumentHandler] = {
    DocumentKind.TEXT: TextDocumentHandler(),
    DocumentKind.CODE: CodeDocumentHandler(),
}


class DocumentGenerationEngine:
    """Generates documents of any registered kind.

    Public API:
        generate(request, sink) -> str
    """

    def __init__(self, capability: GenerationCapability | None = None):
        self.capability = capability or LangChainGeneration()

    async def generate(self, request: GenerationRequest, sink: DataStreamSink) -> str:
        """Stream the document into ``sink`` and return the final draft.

        Raises:
            UpstreamFailureError: the generation stream failed. Sink writes
                made before the failure are not undone.

        Cancelling the calling task stops consumption and closes the
        generation stream; already forwarded events stand.
        """
        handler = HANDLERS[request.kind]
        log = logger.bind(
            kind=request.kind.value,
            action=request.action.value,
            model=request.model_handle.identifier,
        )
        log.info("document_generation_started")

        draft = ""
        emitted = 0
        increments = handler.open(self.capability, request)

        async with aclosing(increments):
            while True:
                try:
                    increment = await anext(increments)
                except StopAsyncIteration:
                    break
                except DocStreamError:
                    raise
                except Exception as exc:
                    log.warning(
                        "document_generation_failed",
                        events_emitted=emitted,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                    raise UpstreamFailureError(surface="document", detail=str(exc)) from exc

                if not increment:
                    continue

                draft = handler.accumulate(draft, increment)
                await sink.write(DeltaEvent(type=handler.delta_type, content=increment))
                emitted += 1

        log.info("document_generation_completed", events_emitted=emitted, length=len(draft))
        return draft
