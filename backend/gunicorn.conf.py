"""Gunicorn settings for the storefront API (``gunicorn -c gunicorn.conf.py 'app.factory:create_app()'``)."""

import os

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
# Tokens, cache and locks are only shared between workers through Redis
workers = int(os.getenv("GUNICORN_WORKERS", "2" if os.getenv("REDIS_URL") else "1"))
threads = int(os.getenv("GUNICORN_THREADS", "1"))
timeout = 60
graceful_timeout = 30
keepalive = 5

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "*")
proxy_protocol = False
