"""ETag helpers for conditional reads and optimistic updates of payloads."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from flask import Response, request

from app.services._shared.errors import PreconditionFailedError


def generate_etag(payload: Any) -> str:
    """Hash the canonical JSON of a serialized payload (SHA-256 hex).

    Cached and freshly built payloads serialize identically, so both yield the
    same tag.
    """

    canonical = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()


def verify_if_match(payload: Any) -> None:
    """Enforce an ``If-Match`` header against the current payload, when sent.

    :raises PreconditionFailedError: The client holds a stale representation.
    """

    provided = request.headers.get("If-Match")
    if not provided:
        return
    tags = {tag.strip().strip('"') for tag in provided.split(",")}
    if "*" not in tags and generate_etag(payload) not in tags:
        raise PreconditionFailedError()


def set_response_etag(response: Response, payload: Any) -> Response:
    """Attach an ``ETag`` and answer ``304`` when ``If-None-Match`` matches."""

    response.set_etag(generate_etag(payload))
    return response.make_conditional(request)
