"""Gunicorn configuration for the SCIM provisioning server.

Run with:
    gunicorn -c gunicorn.conf.py scim_server.wsgi:app

Connection pools must never be shared across forked workers, so any engine
inherited from a preloaded master is disposed of in post_fork.
"""
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:5000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Drops pooled database connections inherited from the master (only present
    when the app was preloaded) so each worker opens its own.
    """
    app = getattr(server.app, "callable", None)
    engine = app.config.get("DB_ENGINE") if app is not None and hasattr(app, "config") else None
    if engine is None:
        worker.log.info("Worker %s started (no preloaded engine)", worker.pid)
        return

    engine.dispose(close=False)
    worker.log.info("Worker %s started; disposed inherited connection pool", worker.pid)
