"""Thin FastAPI service exposing the provider manager over HTTP.

Routes (see :mod:`hms_providers.service.app`):

- ``POST /api/v1/ai/chat``: JSON or server-sent events.
- ``GET /api/v1/ai/providers``
- ``POST /api/v1/ai/provider/switch``
- ``GET /api/v1/ai/stats``
- ``GET /api/health``
"""
