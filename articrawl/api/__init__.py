"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from articrawl.api import app

    uvicorn articrawl.api:app --reload
"""

from articrawl.api.app import app, create_app

__all__ = ["app", "create_app"]
