# Entry point: gunicorn -c gunicorn.conf.py "hyperlocal:create_app()"

# Bind & workers
bind = "0.0.0.0:8000"
workers = 2  # override with GUNICORN_WORKERS
threads = 4
timeout = 30
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr; app lines are already JSON
accesslog = "-"
errorlog = "-"
loglevel = "info"  # override with LOG_LEVEL

# Trust X-Forwarded-* from the proxy in front (see USE_PROXYFIX)
forwarded_allow_ips = "*"
proxy_protocol = False
