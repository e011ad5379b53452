# =============================================================================
# GUNICORN CONFIGURATION
# Campus Complaints Backend - ASGI server (HTTP + WebSocket)
# Run with: gunicorn campus_complaints.asgi:application -c gunicorn.conf.py
# =============================================================================

import multiprocessing
import os

# =============================================================================
# SERVER SOCKET
# =============================================================================

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# =============================================================================
# WORKER PROCESSES
# =============================================================================

workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() + 1))

# Uvicorn workers serve both the REST API and the notification WebSocket.
# Use CHANNEL_LAYER_BACKEND=redis with more than one worker so group pushes
# reach sockets held by other processes.
worker_class = os.getenv("GUNICORN_WORKER_CLASS", "uvicorn.workers.UvicornWorker")

max_requests = 2000
max_requests_jitter = 200

# Attachment uploads are capped at a few MB
timeout = int(os.getenv("GUNICORN_TIMEOUT", 60))
graceful_timeout = 30
keepalive = 5

# =============================================================================
# SECURITY
# =============================================================================

limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

# =============================================================================
# LOGGING
# =============================================================================

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
capture_output = True

proc_name = "campus-complaints"


def post_worker_init(worker):
    """Called just after a worker has initialized the application."""
    worker.log.info(f"Worker {worker.pid} ready ({worker_class})")
