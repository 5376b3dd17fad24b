"""Streaming package: SSE parsing, normalization and the closable stream type."""

from .sse import DATA_PREFIX, DONE_SENTINEL, STREAM_DONE, SSELineBuffer, format_sse, iter_sse_payloads
from .streaming_metrics import StreamMetrics, apply_token_usage
from .stream_outcome import StreamOutcome
from .normalizer import ChunkTranslation, StreamNormalizer, Translator, failed_stream, register_stream_cleanup
from .chat_stream import ChatStream
from .accumulate import accumulate_stream

__all__ = [
    "DATA_PREFIX",
    "DONE_SENTINEL",
    "STREAM_DONE",
    "SSELineBuffer",
    "format_sse",
    "iter_sse_payloads",
    "StreamMetrics",
    "apply_token_usage",
    "StreamOutcome",
    "ChunkTranslation",
    "StreamNormalizer",
    "Translator",
    "failed_stream",
    "register_stream_cleanup",
    "ChatStream",
    "accumulate_stream",
]
