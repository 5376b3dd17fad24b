"""HTTP helpers shared by vendor adapters."""

from .client import (
    HttpTextStream,
    build_http_client,
    close_all_clients,
    open_text_stream,
    raise_for_vendor_status,
)

__all__ = [
    "HttpTextStream",
    "build_http_client",
    "close_all_clients",
    "open_text_stream",
    "raise_for_vendor_status",
]
