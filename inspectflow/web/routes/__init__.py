"""InspectFlow operator API route modules.

Each module exports a ``router`` (APIRouter instance) included by
inspectflow.web.app.

Usage:
    from inspectflow.web.routes import review_queue
    app.include_router(review_queue.router)
"""

from inspectflow.web.routes import health, imports, jobs, review_queue

__all__ = [
    "health",
    "imports",
    "jobs",
    "review_queue",
]
