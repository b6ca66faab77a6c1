"""
Gunicorn configuration for the Habitual API.

Env vars that override defaults:
  PORT     — TCP port to bind
  WORKERS  — number of worker processes (default: 1)
"""
import os

wsgi_app = "habitual.main:app"

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# The overdue confirmation queue lives in process memory; more than one
# worker means more than one queue.
workers = int(os.environ.get("WORKERS", "1"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5
timeout = 120

# Logs to stdout only.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
