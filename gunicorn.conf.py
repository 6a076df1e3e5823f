"""
Production Server Configuration

Uvicorn workers under Gunicorn. Each worker runs the application lifespan,
so every worker owns its own database engine, Redis client and summary
refresh job; keep SUMMARY_REFRESH_INTERVAL_SECONDS at 0 here and schedule the
refresh from a single process when running several workers.
"""

import multiprocessing
import os

bind = os.getenv("BIND", "0.0.0.0:8000")

workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 8)))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
timeout = 60
keepalive = 5
# long enough for pending post-insert hooks to drain
graceful_timeout = 30

proc_name = "mediatrack-api"

errorlog = "-"
accesslog = None
loglevel = os.getenv("LOG_LEVEL", "info").lower()


def when_ready(server):
    server.log.info("mediatrack ready on %s with %s workers", bind, workers)


def worker_abort(worker):
    worker.log.warning("Worker %s aborted; in-flight requests were lost", worker.pid)
