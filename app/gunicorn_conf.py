import os

# Gunicorn config variables
bind = os.getenv("BIND", "127.0.0.1:8000")
# Room state lives in process memory: a second worker would see different rooms
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
# WebSocket sessions are long-lived; keep the worker timeout generous
timeout = 120
keepalive = 5
accesslog = os.getenv("ACCESS_LOG", "-")
errorlog = os.getenv("ERROR_LOG", "-")
loglevel = os.getenv("LOG_LEVEL", "info")
daemon = False
