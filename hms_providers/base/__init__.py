"""
Providers Base Package

Provider-agnostic contracts and building blocks shared by every adapter:

- Interfaces: the ``AIProvider`` contract
- Models (DTOs): normalized request/response/stream chunk objects
- Errors: the ``AIError`` taxonomy and classification helpers
- Resilience: retry policy with capped exponential backoff
- Streaming: SSE parsing, normalization and the closable ``ChatStream``
- Metrics: per-provider health state machine and usage counters
- Factory: lazy creation of provider adapters by canonical name
"""
