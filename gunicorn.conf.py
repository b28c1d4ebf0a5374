"""
Gunicorn configuration for the Screen Ledger API.

Run with:  gunicorn -c gunicorn.conf.py screenledger.main:app

Env vars that override defaults:
  PORT     — TCP port to bind
  WORKERS  — number of worker processes (default: 1)

The ledger serializes writes with an in-process lock, so one worker owns
the database. Raise WORKERS only behind a single-writer database setup.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "1"))

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5
timeout = 120

# stdout only; application loggers share the same stream.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
