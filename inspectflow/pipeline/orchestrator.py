"""Calendar import orchestrator - runs one batch for one calendar.

fetch → parse → match → score → route → (create job → assign) → log

Key features:
- Parallel: parse/match/score is side-effect free and runs on a bounded
  worker pool
- Sequential: routing and workload mutation run one event at a time
- Idempotent: an external event id maps to at most one stored record;
  re-ingestion updates it in place
- Contained: each event's routing runs in its own SAVEPOINT, so a failure
  rolls back that event only and is counted as errored
- Auditable: every batch writes a calendar_import_logs row, even when the
  fetch itself fails
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inspectflow.assignment.engine import AssignmentEngine
from inspectflow.assignment.workload import WorkloadLocks
from inspectflow.calendar.source import EventSource, GoogleCalendarSource
from inspectflow.config import AppConfig, AssignmentConfig, ImportConfig, get_config
from inspectflow.db.connection import get_session
from inspectflow.db.models import PendingCalendarEventModel
from inspectflow.directory import BuilderDirectory, JobSink, SqlBuilderDirectory, SqlJobSink
from inspectflow.matching.auto_router import AutoRouter, RoutingDecision
from inspectflow.matching.builder_matcher import BuilderMatcher
from inspectflow.matching.confidence import ConfidenceScorer, assess_date
from inspectflow.models import (
    ConfidenceSignals,
    EventStatus,
    JobSpec,
    RawCalendarEvent,
    RoutingOutcome,
)
from inspectflow.parsing.event_parser import EventParser, derive_territory
from inspectflow.parsing.vocabulary import job_type_label
from inspectflow.pipeline.import_log import write_import_log
from inspectflow.pipeline.types import EventOutcome, ImportSummary, ScoredEvent
from inspectflow.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


def job_name_for(job_type: str, location: str | None, title: str) -> str:
    """"<Job Type> - <location>" when a location exists, else the event title."""
    if location and location.strip():
        return f"{job_type_label(job_type)} - {location.strip()}"
    return title


class CalendarImportOrchestrator:
    """Runs calendar import batches inside one database session.

    The caller owns the session's outer transaction (see ``run_import``).
    """

    def __init__(
        self,
        session: AsyncSession,
        source: EventSource,
        import_config: ImportConfig | None = None,
        assignment_config: AssignmentConfig | None = None,
        directory: BuilderDirectory | None = None,
        job_sink: JobSink | None = None,
        locks: WorkloadLocks | None = None,
    ):
        self.session = session
        self.source = source
        self.import_config = import_config or ImportConfig()
        self.assignment_config = assignment_config or AssignmentConfig()
        self.directory = directory or SqlBuilderDirectory(session)
        self.job_sink = job_sink or SqlJobSink(session)

        self.parser = EventParser()
        self.scorer = ConfidenceScorer(self.import_config)
        self.router = AutoRouter(self.import_config)
        self.engine = AssignmentEngine(session, self.assignment_config, locks)

    async def run(
        self,
        calendar_id: str,
        since: datetime | None = None,
        triggered_by: str | None = None,
        now: datetime | None = None,
    ) -> ImportSummary:
        """Execute one full batch.

        Adapter failures never propagate: they are recorded in the summary's
        ``error_text`` and in the log row.

        Returns:
            ImportSummary with counters, per-event outcomes and log id
        """
        started = time.perf_counter()
        run_timestamp = as_utc(now) if now else utcnow()
        summary = ImportSummary(calendar_id=calendar_id, run_timestamp=run_timestamp)

        logger.info("calendar_import_started: calendar=%s since=%s", calendar_id, since)

        try:
            events = await self.source.fetch_events(calendar_id, since)
        except Exception as e:
            summary.error_text = f"{type(e).__name__}: {e}"
            summary.duration_seconds = round(time.perf_counter() - started, 3)
            logger.error(
                "calendar_import_fetch_failed: calendar=%s error=%s", calendar_id, e, exc_info=True
            )
            await write_import_log(self.session, summary, triggered_by)
            return summary

        summary.events_processed = len(events)

        titled: list[RawCalendarEvent] = []
        for event in events:
            if not event.title.strip():
                summary.events_skipped += 1
                logger.info("calendar_event_skipped: id=%s reason=untitled", event.external_id)
                continue
            titled.append(event)

        try:
            matcher = BuilderMatcher(
                await self.directory.list_abbreviations(),
                self.import_config.fuzzy_similarity_floor,
            )
            scored = await self._score_all(titled, matcher, run_timestamp)
        except Exception as e:
            summary.error_text = f"{type(e).__name__}: {e}"
            summary.events_errored = len(titled)
            summary.duration_seconds = round(time.perf_counter() - started, 3)
            logger.error("calendar_import_scoring_failed: calendar=%s", calendar_id, exc_info=True)
            await write_import_log(self.session, summary, triggered_by)
            return summary

        for item in scored:
            try:
                outcome = await self._route_in_savepoint(item, run_timestamp)
            except Exception as e:
                logger.error(
                    "calendar_event_failed: id=%s error=%s",
                    item.event.external_id,
                    e,
                    exc_info=True,
                )
                outcome = EventOutcome(
                    external_id=item.event.external_id,
                    outcome=None,
                    confidence=item.score,
                    error=f"{type(e).__name__}: {e}",
                )

            summary.record(outcome)
            if outcome.outcome is RoutingOutcome.AUTO_CREATE and outcome.error is None:
                if outcome.assigned_to is not None:
                    summary.jobs_assigned += 1
                else:
                    summary.jobs_unassigned += 1

        summary.duration_seconds = round(time.perf_counter() - started, 3)
        await write_import_log(self.session, summary, triggered_by)

        logger.info(
            "calendar_import_completed: calendar=%s processed=%d created=%d queued=%d "
            "rejected=%d duplicate=%d errored=%d assigned=%d",
            calendar_id,
            summary.events_processed,
            summary.jobs_created,
            summary.events_queued,
            summary.events_rejected,
            summary.events_duplicate,
            summary.events_errored,
            summary.jobs_assigned,
        )
        return summary

    async def _score_all(
        self,
        events: list[RawCalendarEvent],
        matcher: BuilderMatcher,
        now: datetime,
    ) -> list[ScoredEvent]:
        semaphore = asyncio.Semaphore(self.import_config.parse_workers)

        async def score(event: RawCalendarEvent) -> ScoredEvent:
            async with semaphore:
                return await asyncio.to_thread(self.score_event, event, matcher, now)

        # gather preserves input order, so routing stays in fetch order
        return list(await asyncio.gather(*(score(e) for e in events)))

    def score_event(
        self, event: RawCalendarEvent, matcher: BuilderMatcher, now: datetime
    ) -> ScoredEvent:
        """Parse, match and score one event. Pure; safe to run in a worker thread."""
        candidate = self.parser.parse(event)
        match = matcher.match(candidate.builder_name_guess)
        date_sanity = assess_date(event.start, now, self.import_config)
        confidence = self.scorer.score(
            ConfidenceSignals(
                builder_score=match.score,
                job_type_quality=candidate.job_type_quality,
                has_address=candidate.has_address,
                date_sanity=date_sanity,
            )
        )
        return ScoredEvent(event, candidate, match, date_sanity, confidence)

    async def _route_in_savepoint(
        self, item: ScoredEvent, run_timestamp: datetime
    ) -> EventOutcome:
        """Route one event inside its own SAVEPOINT.

        A concurrent batch can store the same external id between our lookup
        and insert; the unique constraint rejects ours and a second pass
        finds the stored row and resolves to DUPLICATE.
        """
        try:
            async with self.session.begin_nested():
                return await self._route(item, run_timestamp)
        except IntegrityError:
            logger.info(
                "calendar_event_conflict: id=%s retrying as duplicate", item.event.external_id
            )
            async with self.session.begin_nested():
                return await self._route(item, run_timestamp)

    async def _find_existing(self, external_id: str) -> PendingCalendarEventModel | None:
        stmt = select(PendingCalendarEventModel).where(
            PendingCalendarEventModel.external_event_id == external_id
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def _route(self, item: ScoredEvent, run_timestamp: datetime) -> EventOutcome:
        existing = await self._find_existing(item.event.external_id)
        decision = self.router.route(item.score, item.match.matched, existing is not None)

        if existing is not None:
            self._refresh_existing(existing, item, decision, run_timestamp)
            await self.session.flush()
            return EventOutcome(
                external_id=item.event.external_id,
                outcome=RoutingOutcome.DUPLICATE,
                confidence=item.score,
                job_id=existing.job_id,
            )

        record = PendingCalendarEventModel(
            external_event_id=item.event.external_id,
            calendar_id=item.event.calendar_id,
            status=decision.outcome.initial_status.value,
            seen_count=1,
            last_seen_at=run_timestamp,
        )
        self._apply_scored_fields(record, item, decision)

        outcome = EventOutcome(
            external_id=item.event.external_id,
            outcome=decision.outcome,
            confidence=item.score,
        )

        if decision.outcome is RoutingOutcome.AUTO_CREATE:
            job_id = await self.job_sink.create_job(self._job_spec(item, run_timestamp))
            record.job_id = job_id
            outcome.job_id = job_id

            self.session.add(record)
            await self.session.flush()

            assignment = await self.engine.assign(job_id)
            outcome.assigned_to = assignment.inspector_id
        else:
            self.session.add(record)
            await self.session.flush()

        logger.debug(
            "calendar_event_routed: id=%s outcome=%s confidence=%d",
            item.event.external_id,
            decision.outcome.value,
            item.score,
        )
        return outcome

    def _refresh_existing(
        self,
        record: PendingCalendarEventModel,
        item: ScoredEvent,
        decision: RoutingDecision,
        run_timestamp: datetime,
    ) -> None:
        record.seen_count = (record.seen_count or 0) + 1
        record.last_seen_at = run_timestamp
        # Resolved records keep the fields they were resolved with
        if EventStatus(record.status) is EventStatus.PENDING:
            self._apply_scored_fields(record, item, decision)

    @staticmethod
    def _apply_scored_fields(
        record: PendingCalendarEventModel,
        item: ScoredEvent,
        decision: RoutingDecision,
    ) -> None:
        event, candidate, match = item.event, item.candidate, item.match
        record.title = event.title
        record.description = event.description
        record.location = event.location
        record.start_time = event.start
        record.end_time = event.end
        record.raw_payload = event.payload()

        record.builder_name_guess = candidate.builder_name_guess
        record.job_type_guess = candidate.job_type_guess
        record.address_guess = candidate.address_guess
        record.urgency = candidate.urgency.value

        record.matched_builder_id = match.builder_id
        record.matched_abbreviation = match.abbreviation
        record.match_method = match.method.value
        record.confidence_score = item.score
        record.score_details = {
            **item.confidence.details,
            "builder_match_score": match.score,
            "match_similarity": match.similarity,
            "job_type_keyword": candidate.job_type_keyword,
            "routing_reason": decision.reason,
        }

    def _job_spec(self, item: ScoredEvent, run_timestamp: datetime) -> JobSpec:
        event, candidate = item.event, item.candidate
        address = candidate.address_guess or event.location or event.title or "TBD"
        job_type = candidate.job_type_guess or "full_test"
        return JobSpec(
            name=job_name_for(job_type, event.location, event.title),
            builder_id=item.match.builder_id,
            inspection_type=job_type,
            address=address,
            territory=derive_territory(address),
            latitude=event.latitude,
            longitude=event.longitude,
            scheduled_date=as_utc(event.start) if event.start else run_timestamp,
            urgency=candidate.urgency,
            source_event_id=event.external_id,
            notes=f"Imported from calendar event {event.external_id}",
            created_by=self.import_config.import_user_id,
        )


async def run_import(
    calendar_id: str | None = None,
    since: datetime | None = None,
    source: EventSource | None = None,
    config: AppConfig | None = None,
    triggered_by: str = "manual",
) -> ImportSummary:
    """Batch entry point: one full pipeline pass for one calendar.

    Opens its own session; everything but the failing events commits.
    """
    config = config or get_config()
    calendar_id = calendar_id or config.calendar.calendar_id
    if since is None:
        since = utcnow() - timedelta(hours=config.imports.date_grace_hours)
    source = source or GoogleCalendarSource(config.calendar)

    async with get_session() as session:
        orchestrator = CalendarImportOrchestrator(
            session,
            source,
            import_config=config.imports,
            assignment_config=config.assignment,
        )
        return await orchestrator.run(calendar_id, since, triggered_by=triggered_by)
