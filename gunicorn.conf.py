import os

# Server socket
bind = f"{os.getenv('API_HOST', '0.0.0.0')}:{os.getenv('API_PORT', '4000')}"
backlog = 2048

# Worker processes
# Paused approval runs live in the in-process checkpointer, so a decision
# must reach the worker that produced the preview. Keep one worker unless
# requests are pinned to workers upstream.
workers = int(os.getenv('GUNICORN_WORKERS', 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
timeout = 120
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Process naming
proc_name = "jira_story_agent"

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None
