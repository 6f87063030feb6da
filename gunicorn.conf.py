# Gunicorn configuration for the ClinicDesk API
# Run with: gunicorn -c gunicorn.conf.py "clinicdesk.app:create_app()"
import os

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', 8000)}"
backlog = 256

# One worker: the negotiated session and the workflow queues live in process memory
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
timeout = int(float(os.environ.get("ERP_REQUEST_TIMEOUT", 30))) + 15
keepalive = 2

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()

# Process naming
proc_name = "clinicdesk"

# Server mechanics
preload_app = False
daemon = False
