# use in gunicorn as: env/bin/gunicorn prefixfs.api:app -c gunicorn.conf.py
# every worker keeps its own listing cache, so mutations only invalidate the worker that handled them

# Workers
workers = 1
worker_class = 'uvicorn.workers.UvicornWorker'

# Socket
bind = 'localhost:5001'

# Logging
# loglevel = 'debug'
# accesslog = '/tmp/prefixfs_access_log'
# errorlog = '/tmp/prefixfs_error_log'
