"""Tests for DocumentGenerationEngine.

Coverage:
- text create: one text-delta per fragment, in order; draft is the concatenation
- code create: one code-delta per whole value; draft is the last value
- empty increments produce no events
- zero increments -> empty draft
- update: system prompt embeds existing content, prompt is the description
- update (text): OpenAI prediction hint carries the existing content
- failure mid-stream: UpstreamFailureError, earlier events stay in the sink
- cancellation closes the generation stream
- concurrent generations keep separate drafts
"""

import asyncio

import pytest

from docstream.core.exceptions import BadRequestError, UpstreamFailureError
from docstream.generation.engine import HANDLERS, DocumentGenerationEngine, DocumentHandler
from docstream.generation.prompts import CODE_CREATE_SYSTEM_PROMPT, TEXT_CREATE_SYSTEM_PROMPT
from docstream.generation.schemas import (
    CodeArtifact,
    DocumentAction,
    DocumentKind,
    GenerationRequest,
)
from tests.fakes import ListSink, ScriptedCapability

pytestmark = pytest.mark.unit


def _text_create(handle, title="Hello world essay"):
    return GenerationRequest(
        kind=DocumentKind.TEXT,
        action=DocumentAction.CREATE,
        model_handle=handle,
        title=title,
    )


def _code_create(handle, title="A function f"):
    return GenerationRequest(
        kind=DocumentKind.CODE,
        action=DocumentAction.CREATE,
        model_handle=handle,
        title=title,
    )


# ---------------------------------------------------------------------------
# text
# ---------------------------------------------------------------------------


async def test_text_create_emits_one_event_per_fragment(model_handle, sink):
    capability = ScriptedCapability(text=["Hello", " ", "world"])
    engine = DocumentGenerationEngine(capability)

    draft = await engine.generate(_text_create(model_handle), sink)

    assert sink.types == ["text-delta", "text-delta", "text-delta"]
    assert sink.contents == ["Hello", " ", "world"]
    assert draft == "Hello world"


async def test_text_create_uses_topic_prompt_and_title(model_handle, sink):
    capability = ScriptedCapability(text=["x"])
    engine = DocumentGenerationEngine(capability)

    await engine.generate(_text_create(model_handle, title="Otters"), sink)

    method, kwargs = capability.calls[0]
    assert method == "stream_text"
    assert kwargs["system"] == TEXT_CREATE_SYSTEM_PROMPT
    assert kwargs["prompt"] == "Otters"
    assert kwargs["provider_options"] is None
    assert kwargs["handle"] is model_handle


async def test_empty_fragments_are_not_emitted(model_handle, sink):
    capability = ScriptedCapability(text=["", "Hi", "", " there", ""])
    engine = DocumentGenerationEngine(capability)

    draft = await engine.generate(_text_create(model_handle), sink)

    assert sink.contents == ["Hi", " there"]
    assert draft == "Hi there"


async def test_no_increments_returns_empty_draft(model_handle, sink):
    engine = DocumentGenerationEngine(ScriptedCapability(text=[]))

    draft = await engine.generate(_text_create(model_handle), sink)

    assert draft == ""
    assert sink.events == []


# ---------------------------------------------------------------------------
# code
# ---------------------------------------------------------------------------


async def test_code_create_replaces_draft_with_each_value(model_handle, sink):
    capability = ScriptedCapability(
        objects=[{"code": "def f():"}, {"code": "def f():\n    pass"}]
    )
    engine = DocumentGenerationEngine(capability)

    draft = await engine.generate(_code_create(model_handle), sink)

    assert sink.types == ["code-delta", "code-delta"]
    assert sink.contents == ["def f():", "def f():\n    pass"]
    assert draft == "def f():\n    pass"


async def test_code_create_uses_code_schema_and_prompt(model_handle, sink):
    capability = ScriptedCapability(objects=[{"code": "print(1)"}])
    engine = DocumentGenerationEngine(capability)

    await engine.generate(_code_create(model_handle, title="Print one"), sink)

    method, kwargs = capability.calls[0]
    assert method == "stream_object"
    assert kwargs["schema"] is CodeArtifact
    assert kwargs["system"] == CODE_CREATE_SYSTEM_PROMPT
    assert kwargs["prompt"] == "Print one"


async def test_code_objects_without_code_are_skipped(model_handle, sink):
    capability = ScriptedCapability(objects=[{}, {"code": ""}, {"code": "x = 1"}, {"code": None}])
    engine = DocumentGenerationEngine(capability)

    draft = await engine.generate(_code_create(model_handle), sink)

    assert sink.contents == ["x = 1"]
    assert draft == "x = 1"


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("kind", [DocumentKind.TEXT, DocumentKind.CODE])
async def test_update_embeds_existing_content_in_system_prompt(model_handle, sink, kind):
    prompts = []
    for existing in ("first version", "second version"):
        capability = ScriptedCapability(text=["ok"], objects=[{"code": "ok"}])
        request = GenerationRequest(
            kind=kind,
            action=DocumentAction.UPDATE,
            model_handle=model_handle,
            description="Make it shorter",
            existing_content=existing,
        )
        await DocumentGenerationEngine(capability).generate(request, ListSink())
        _method, kwargs = capability.calls[0]
        assert existing in kwargs["system"]
        assert kind.value in kwargs["system"]
        prompts.append((kwargs["system"], kwargs["prompt"]))

    (system_a, prompt_a), (system_b, prompt_b) = prompts
    assert system_a != system_b
    assert prompt_a == prompt_b == "Make it shorter"


async def test_text_update_passes_prediction_hint(model_handle, sink):
    capability = ScriptedCapability(text=["new"])
    request = GenerationRequest(
        kind=DocumentKind.TEXT,
        action=DocumentAction.UPDATE,
        model_handle=model_handle,
        description="Rewrite",
        existing_content="old text",
    )

    await DocumentGenerationEngine(capability).generate(request, sink)

    _method, kwargs = capability.calls[0]
    assert kwargs["provider_options"] == {
        "openai": {"prediction": {"type": "content", "content": "old text"}}
    }


async def test_text_update_concatenates_fragments(model_handle, sink):
    capability = ScriptedCapability(text=["Short ", "version."])
    request = GenerationRequest(
        kind=DocumentKind.TEXT,
        action=DocumentAction.UPDATE,
        model_handle=model_handle,
        description="Shorten",
        existing_content="A much longer version of the text.",
    )

    draft = await DocumentGenerationEngine(capability).generate(request, sink)

    assert draft == "Short version."


# ---------------------------------------------------------------------------
# failures
# ---------------------------------------------------------------------------


async def test_failure_after_two_increments_keeps_sink_events(model_handle, sink):
    capability = ScriptedCapability(text=["one ", "two ", "three"], fail_after=2)
    engine = DocumentGenerationEngine(capability)

    with pytest.raises(UpstreamFailureError) as exc_info:
        await engine.generate(_text_create(model_handle), sink)

    assert sink.contents == ["one ", "two "]
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert exc_info.value.code == "upstream_failure:document"


async def test_code_failure_keeps_sink_events(model_handle, sink):
    capability = ScriptedCapability(
        objects=[{"code": "a"}, {"code": "ab"}, {"code": "abc"}], fail_after=2
    )

    with pytest.raises(UpstreamFailureError):
        await DocumentGenerationEngine(capability).generate(_code_create(model_handle), sink)

    assert sink.contents == ["a", "ab"]


async def test_failure_before_first_increment(model_handle, sink):
    capability = ScriptedCapability(text=["never"], fail_after=0)

    with pytest.raises(UpstreamFailureError):
        await DocumentGenerationEngine(capability).generate(_text_create(model_handle), sink)

    assert sink.events == []


async def test_typed_errors_from_capability_are_not_rewrapped(model_handle, sink):
    capability = ScriptedCapability(text=["x"], fail_after=0, error=BadRequestError(surface="api"))

    with pytest.raises(BadRequestError):
        await DocumentGenerationEngine(capability).generate(_text_create(model_handle), sink)


async def test_sink_errors_are_not_reported_as_upstream(model_handle):
    class BrokenSink:
        async def write(self, event):
            raise ConnectionError("sink down")

    capability = ScriptedCapability(text=["x"])

    with pytest.raises(ConnectionError):
        await DocumentGenerationEngine(capability).generate(_text_create(model_handle), BrokenSink())
    assert capability.closed is True


# ---------------------------------------------------------------------------
# concurrency and cancellation
# ---------------------------------------------------------------------------


async def test_cancellation_closes_generation_stream(model_handle, sink):
    started = asyncio.Event()
    closed = asyncio.Event()

    class SlowCapability:
        async def _stream(self):
            try:
                yield "first "
                started.set()
                await asyncio.sleep(3600)
                yield "never"
            finally:
                closed.set()

        def stream_text(self, handle, **kwargs):
            return self._stream()

    engine = DocumentGenerationEngine(SlowCapability())
    task = asyncio.create_task(engine.generate(_text_create(model_handle), sink))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert closed.is_set()
    assert sink.contents == ["first "]


async def test_concurrent_generations_do_not_share_drafts(model_handle):
    engine_a = DocumentGenerationEngine(ScriptedCapability(text=["alpha ", "one"]))
    engine_b = DocumentGenerationEngine(ScriptedCapability(objects=[{"code": "b"}, {"code": "b2"}]))
    sink_a, sink_b = ListSink(), ListSink()

    draft_a, draft_b = await asyncio.gather(
        engine_a.generate(_text_create(model_handle), sink_a),
        engine_b.generate(_code_create(model_handle), sink_b),
    )

    assert draft_a == "alpha one"
    assert draft_b == "b2"
    assert sink_a.types == ["text-delta", "text-delta"]
    assert sink_b.types == ["code-delta", "code-delta"]


def test_every_kind_has_a_handler():
    assert set(HANDLERS) == set(DocumentKind)
    assert HANDLERS[DocumentKind.TEXT].delta_type == "text-delta"
    assert HANDLERS[DocumentKind.CODE].delta_type == "code-delta"


def test_handler_without_accumulation_rule_cannot_be_built():
    class _HalfHandler(DocumentHandler):
        kind = DocumentKind.TEXT
        delta_type = "text-delta"

        def open(self, capability, request):
            return capability.stream_text(request.model_handle, system="", prompt=request.prompt)

    with pytest.raises(TypeError):
        _HalfHandler()
