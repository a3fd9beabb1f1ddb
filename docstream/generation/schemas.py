"""Document generation types: kinds, requests and stream events."""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from docstream.core.exceptions import BadRequestError
from docstream.providers.handle import ModelHandle


class DocumentKind(str, Enum):
    TEXT = "text"
    CODE = "code"


class DocumentAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"


DeltaType = Literal["text-delta", "code-delta"]


class DeltaEvent(BaseModel):
    """One increment forwarded to the client feed."""

    type: DeltaType
    content: str


class CodeArtifact(BaseModel):
    """Structured output schema for code documents.

    ``code`` is required, so a partial parse that has not produced the field
    yet fails validation and is dropped instead of surfacing as empty code.
    """

    code: str = Field(description="The complete source code of the document")


@dataclass(frozen=True)
class GenerationRequest:
    """Everything the engine needs to produce one document.

    create: ``title`` is the prompt; ``existing_content`` is ignored.
    update: ``existing_content`` is revised according to ``description``.
    """

    kind: DocumentKind
    action: DocumentAction
    model_handle: ModelHandle
    title: str | None = None
    description: str | None = None
    existing_content: str | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "kind", DocumentKind(self.kind))
            object.__setattr__(self, "action", DocumentAction(self.action))
        except ValueError as exc:
            raise BadRequestError(surface="document", detail=str(exc)) from exc

        if self.action is DocumentAction.CREATE:
            if not self.title:
                raise BadRequestError(surface="document", detail="create requires a title")
        else:
            if self.existing_content is None:
                raise BadRequestError(surface="document", detail="update requires existing content")
            if not self.description:
                raise BadRequestError(surface="document", detail="update requires a description")

    @property
    def prompt(self) -> str:
        """User prompt sent to the model: the title, or the change description."""
        if self.action is DocumentAction.CREATE:
            return self.title or ""
        return self.description or ""
