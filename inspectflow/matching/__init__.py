"""Builder matching, confidence scoring and routing."""

from inspectflow.matching.auto_router import AutoRouter, RoutingDecision, route_event
from inspectflow.matching.builder_matcher import BuilderMatcher, match_builder
from inspectflow.matching.confidence import ConfidenceScorer, assess_date

__all__ = [
    "AutoRouter",
    "BuilderMatcher",
    "ConfidenceScorer",
    "RoutingDecision",
    "assess_date",
    "match_builder",
    "route_event",
]
