"""Document generation and stream API routes."""

import asyncio
import json
import time
import uuid

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from docstream.api.deps import get_engine
from docstream.core.auth import Session, get_session
from docstream.db.redis import get_redis
from docstream.generation.engine import DocumentGenerationEngine
from docstream.generation.schemas import DocumentAction, DocumentKind, GenerationRequest
from docstream.generation.sink import FINISH_EVENT_TYPE, RedisStreamSink, document_stream_key
from docstream.providers.resolver import ModelResolver, get_model_resolver

logger = structlog.get_logger(__name__)

router = APIRouter()

_HEARTBEAT_INTERVAL = 20  # seconds
_POLL_BLOCK_MS = 500  # milliseconds for xread blocking poll
_READ_COUNT = 100


class GenerateDocumentRequest(BaseModel):
    id: str | None = None
    kind: DocumentKind
    action: DocumentAction = DocumentAction.CREATE
    title: str | None = None
    description: str | None = None
    existing_content: str | None = None
    model_id: str = Field(min_length=1)


class GenerateDocumentResponse(BaseModel):
    id: str
    kind: DocumentKind
    content: str


async def _finish_failed(sink: RedisStreamSink) -> None:
    """Mark the stream failed so tailing readers stop; the original error still propagates."""
    try:
        await asyncio.shield(sink.finish(status="failed"))
    except RedisError as exc:
        logger.warning(
            "document_stream_finish_failed",
            document_id=sink.document_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )


@router.post("", response_model=GenerateDocumentResponse)
async def generate_document(
    body: GenerateDocumentRequest,
    session: Session = Depends(get_session),
    resolver: ModelResolver = Depends(get_model_resolver),
    engine: DocumentGenerationEngine = Depends(get_engine),
    redis=Depends(get_redis),
):
    """Generate a document, streaming deltas to ``document:{id}:stream``.

    Clients follow progress on GET /documents/{id}/stream; this call returns
    once the draft is final. A ``finish`` marker is appended on every exit,
    including cancellation, so stream readers can stop.

    Raises:
        BadRequestError / UnauthorizedError / ForbiddenError: from model
            resolution or request validation (mapped to 400/401/403)
        UpstreamFailureError: generation failed (mapped to 500)
    """
    handle = await resolver.resolve(session, body.model_id)
    request = GenerationRequest(
        kind=body.kind,
        action=body.action,
        model_handle=handle,
        title=body.title,
        description=body.description,
        existing_content=body.existing_content,
    )

    document_id = body.id or str(uuid.uuid4())
    sink = RedisStreamSink(redis, document_id)

    try:
        content = await engine.generate(request, sink)
    except BaseException:
        await _finish_failed(sink)
        raise

    await sink.finish()
    return GenerateDocumentResponse(id=document_id, kind=request.kind, content=content)


def _format_entry(fields: dict) -> str:
    event_type = fields.get("type", "message")
    return f"event: {event_type}\ndata: {json.dumps(fields)}\n\n"


@router.get("/{document_id}/stream")
async def stream_document(
    document_id: str,
    request: Request,
    redis=Depends(get_redis),
):
    """Stream a document's delta events via SSE.

    Replays the stream from the start, then tails it until the ``finish``
    marker. Sends heartbeat events every 20 seconds to keep idle proxies
    from closing the connection.
    """
    stream_key = document_stream_key(document_id)

    async def event_generator():
        last_id = "0-0"
        last_heartbeat = time.monotonic()

        while True:
            if await request.is_disconnected():
                return

            now = time.monotonic()
            if now - last_heartbeat >= _HEARTBEAT_INTERVAL:
                yield "event: heartbeat\ndata: {}\n\n"
                last_heartbeat = now

            try:
                results = await redis.xread(
                    {stream_key: last_id},
                    block=_POLL_BLOCK_MS,
                    count=_READ_COUNT,
                )
            except Exception as exc:
                logger.warning(
                    "document_stream_read_failed",
                    document_id=document_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                await asyncio.sleep(0.5)
                continue

            for _key, entries in results or []:
                for entry_id, fields in entries:
                    last_id = entry_id
                    yield _format_entry(fields)
                    if fields.get("type") == FINISH_EVENT_TYPE:
                        return

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
