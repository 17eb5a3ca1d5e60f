"""Auto-routing logic for calendar import decisions.

Routes scored events to auto-create, manual review or rejection based on
confidence, builder match and duplicate status.
"""

from __future__ import annotations

from dataclasses import dataclass

from inspectflow.config import ImportConfig
from inspectflow.models import RoutingOutcome


@dataclass(frozen=True)
class RoutingDecision:
    outcome: RoutingOutcome
    reason: str


class AutoRouter:
    """Auto-routing decision engine (confidence + builder match → outcome)."""

    def __init__(self, config: ImportConfig):
        self.high_threshold = config.high_confidence_threshold
        self.low_threshold = config.low_confidence_threshold

    def route(
        self,
        confidence: int,
        builder_matched: bool,
        existing: bool = False,
    ) -> RoutingDecision:
        """Determine the routing outcome for one event.

        Rules, first match wins:
        - A record already exists for the external id → duplicate
        - Confidence >= high threshold AND builder matched → auto-create
        - Confidence >= low threshold → manual review queue
        - Otherwise → rejected (audit only)

        Args:
            confidence: Confidence score (0-100)
            builder_matched: Whether the matcher resolved a builder
            existing: Whether a record for this external id is already stored

        Returns:
            RoutingDecision with outcome and reason
        """
        if existing:
            return RoutingDecision(RoutingOutcome.DUPLICATE, "Already imported; updated in place")

        if confidence >= self.high_threshold and builder_matched:
            return RoutingDecision(
                RoutingOutcome.AUTO_CREATE,
                f"High confidence ({confidence}) with builder match",
            )

        if confidence >= self.low_threshold:
            reasons = []
            if confidence < self.high_threshold:
                reasons.append(f"confidence {confidence} < {self.high_threshold}")
            if not builder_matched:
                reasons.append("no builder match")
            return RoutingDecision(
                RoutingOutcome.QUEUE,
                f"Manual review required: {'; '.join(reasons)}",
            )

        return RoutingDecision(
            RoutingOutcome.REJECT,
            f"Confidence {confidence} < {self.low_threshold}",
        )


def route_event(
    confidence: int,
    builder_matched: bool,
    config: ImportConfig,
    existing: bool = False,
) -> RoutingDecision:
    """Convenience function: route one event."""
    return AutoRouter(config).route(confidence, builder_matched, existing)
