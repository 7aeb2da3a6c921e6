# gunicorn_conf.py: uvicorn workers davanti a verifier.main:app
import os

wsgi_app = "verifier.main:app"
bind = os.getenv("GUNICORN_BIND", f"0.0.0.0:{os.getenv('PORT', '8000')}")
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
worker_class = "uvicorn.workers.UvicornWorker"

# deve superare REQUEST_TIMEOUT_S, altrimenti il worker muore prima del 504
timeout = int(os.getenv("GUNICORN_TIMEOUT", str(int(float(os.getenv("REQUEST_TIMEOUT_S", "120"))) + 30)))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "500"))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", "50"))

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", os.getenv("LOG_LEVEL", "info")).lower()
forwarded_allow_ips = "*"
