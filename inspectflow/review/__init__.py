"""Review queue data models and services."""

from inspectflow.review.models import ApprovalResult, ReviewEvent, ReviewFilters, ReviewPage
from inspectflow.review.repository import fetch_review_event, fetch_review_queue
from inspectflow.review.service import approve_event, reject_event

__all__ = [
    "ApprovalResult",
    "ReviewEvent",
    "ReviewFilters",
    "ReviewPage",
    "fetch_review_event",
    "fetch_review_queue",
    "approve_event",
    "reject_event",
]
