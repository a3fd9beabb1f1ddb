"""Document generation: engine, capability, sinks and request types."""

from docstream.generation.engine import DocumentGenerationEngine
from docstream.generation.schemas import (
    DeltaEvent,
    DocumentAction,
    DocumentKind,
    GenerationRequest,
)
from docstream.generation.sink import DataStreamSink, RedisStreamSink

__all__ = [
    "DataStreamSink",
    "DeltaEvent",
    "DocumentAction",
    "DocumentGenerationEngine",
    "DocumentKind",
    "GenerationRequest",
    "RedisStreamSink",
]
