"""
ASGI entrypoint: expose `app` pour les process managers.

- En production, uvicorn/gunicorn importe `damda.asgi:app`.
- Toute la configuration (routes, middlewares, handlers) est centralisée dans damda.app_setup.factory.
"""

from damda.app import app
