"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn -k uvicorn.workers.UvicornWorker) importe
  `marketplace.asgi:app` pour servir l'application FastAPI.
- Toute la configuration (routes, middlewares, exceptions) est centralisée dans
  marketplace.app_setup; ce fichier ne fait qu'exposer l'instance `app`.
"""

from marketplace.app import app
