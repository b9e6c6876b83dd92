"""Resolution of local gRPC endpoints."""

from __future__ import annotations

import re

_PORT_ENDPOINT = re.compile(r"port:[0-9]+")


def resolve_local_grpc_endpoint(endpoint: str) -> str:
    """Turn ``port:N`` into ``localhost:N``; pass ``unix:`` endpoints through."""
    if _PORT_ENDPOINT.fullmatch(endpoint):
        return endpoint.replace("port", "localhost", 1)
    if not endpoint.startswith("unix:"):
        raise ValueError("Invalid Endpoint: " + endpoint)
    return endpoint