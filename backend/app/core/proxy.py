"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` when enabled.

    The client address resolved here keys anonymous rate limits, so the hop
    count must match the real proxy chain in front of the app.

    Notes
    -----
    Controlled by ``USE_PROXYFIX`` (default ``True``) and ``PROXYFIX_HOPS``
    (default ``1``) for the ``X-Forwarded-*`` headers.
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXYFIX_HOPS", 1))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops)
