"""Gunicorn configuration for LoftBook production deployment."""

import os

# Server socket
bind = os.environ.get('GUNICORN_BIND', '0.0.0.0:8000')

# SQLite allows a single writer, keep the worker count low and scale with threads
workers = int(os.environ.get('GUNICORN_WORKERS', 2))
threads = 4
worker_class = 'gthread'

# Audit exports stream up to AUDIT_EXPORT_MAX_BATCHES batches
timeout = 120
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', 'logs/gunicorn-access.log')
errorlog = os.environ.get('GUNICORN_ERROR_LOG', 'logs/gunicorn-error.log')
loglevel = 'info'
access_log_format = '%(h)s %(u)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

proc_name = 'loftbook'

# Not preloaded: each worker owns its clone lock timer thread
preload_app = False

max_requests = 1000
max_requests_jitter = 50

limit_request_line = 8190
limit_request_fields = 100
