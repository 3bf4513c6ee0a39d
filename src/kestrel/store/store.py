"""Reactive state store.

``StateStore`` owns the single canonical state snapshot. Every change goes
through :meth:`StateStore.publish`, which merges, persists, audits,
broadcasts to subscribers and finally schedules the readiness pipeline.

Scheduling rules:

- Non-urgent triggers re-arm one debounce timer; only the last trigger in
  the window starts a run.
- Urgent triggers skip the timer and run inline.
- At most one run is in flight. Requests arriving meanwhile set a single
  pending flag and cause exactly one follow-up run.
- Run starts are spaced by ``1 / max_runs_per_sec``; the wait happens while
  holding the in-flight guard so bursts collapse into the pending flag.
- The pipeline's output is published back with ``trigger_orchestrator=False``
  so the engine never re-triggers itself.
- While offline, user and sync publishes are also queued. On reconnection
  the drained queue goes to ``replay_handler``, an outbound sink such as
  ``HttpSyncUploader``; it is never re-applied to this store.

Usage:
    store = StateStore(persistence=InMemoryPersistence())
    await store.hydrate()
    unsubscribe = store.subscribe(lambda s: s["orchestrator"], on_change)
    await store.publish({"sleep": {...}}, EventMeta("SLEEP_LOGGED"))
    await store.flush()
"""

from __future__ import annotations

import asyncio
import logging
import time
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping

from kestrel.advisory import (
    AdvisoryClient,
    AdvisoryClientConfig,
    AdvisoryRequest,
    HttpAdvisoryClient,
)
from kestrel.classify import StatusClassifier
from kestrel.contracts import (
    ADVISORY_READINESS_THRESHOLD,
    DEFAULT_AUDIT_CAPACITY,
    DEFAULT_COALESCE_WINDOW_MS,
    DEFAULT_MAX_RUNS_PER_SEC,
    DEFAULT_PERSISTENCE_KEY,
    SUBSCRIPTION_INIT,
    AuditEntry,
    EventMeta,
    EventSource,
    default_state,
    freeze,
    thaw,
    unknown_keys,
)
from kestrel.core.config import KestrelSettings
from kestrel.engine.pipeline import PipelineOutput, ReadinessPipeline
from kestrel.evaluators.base import section
from kestrel.store.audit import AuditTrail
from kestrel.store.connectivity import ConnectivitySignal, OfflineQueue, QueuedEvent
from kestrel.store.persistence import (
    InMemoryPersistence,
    PersistenceStore,
    RedisPersistence,
    decode_state,
    encode_state,
)
from kestrel.store.subscriptions import (
    Callback,
    Selector,
    SubscriberRole,
    SubscriptionRegistry,
)
from kestrel.sync.uploader import HttpSyncUploader, SyncUploaderConfig

_logger = logging.getLogger(__name__)

# Sources whose publishes are never queued for upload
_DERIVED_SOURCES = frozenset({EventSource.ENGINE, EventSource.ADVISORY})

ReplayHandler = Callable[[list[QueuedEvent]], Awaitable[None]]


class StateStore:
    """Single-writer reactive store driving the readiness pipeline."""

    def __init__(
        self,
        *,
        initial_state: Mapping[str, Any] | None = None,
        pipeline: ReadinessPipeline | None = None,
        persistence: PersistenceStore | None = None,
        persistence_key: str = DEFAULT_PERSISTENCE_KEY,
        coalesce_window_ms: float = DEFAULT_COALESCE_WINDOW_MS,
        max_runs_per_sec: float | None = DEFAULT_MAX_RUNS_PER_SEC,
        audit_capacity: int = DEFAULT_AUDIT_CAPACITY,
        advisory: AdvisoryClient | None = None,
        advisory_timeout_s: float = 8.0,
        connectivity: ConnectivitySignal | None = None,
        replay_handler: ReplayHandler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        base = default_state()
        if initial_state is not None:
            base.update(thaw(initial_state))
        self._state: Mapping[str, Any] = freeze(base)

        self._pipeline = pipeline or ReadinessPipeline()
        self._persistence: PersistenceStore = persistence or InMemoryPersistence()
        self._persistence_key = persistence_key
        self._coalesce_s = max(0.0, coalesce_window_ms / 1000.0)
        self._min_run_interval_s = (
            1.0 / max_runs_per_sec if max_runs_per_sec and max_runs_per_sec > 0 else 0.0
        )
        self._audit = AuditTrail(audit_capacity)
        self._subscriptions = SubscriptionRegistry()
        self._advisory = advisory
        self._advisory_timeout_s = advisory_timeout_s
        self._connectivity = connectivity or ConnectivitySignal()
        self._offline_queue = OfflineQueue()
        self._replay_handler = replay_handler
        self._clock = clock

        self._timer: asyncio.TimerHandle | None = None
        self._running = False
        self._pending = False
        self._force_advisory = False
        self._last_run_started: float | None = None
        self._generation = 0
        self._completed_generation = 0
        self._last_output: PipelineOutput | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False
        self._warned_closed = False
        self._stats: dict[str, int] = {
            "publishes": 0,
            "runs": 0,
            "run_failures": 0,
            "coalesced": 0,
            "persist_failures": 0,
            "advisory_requests": 0,
            "advisory_failures": 0,
            "advisory_discarded": 0,
        }
        self._detach_connectivity = self._connectivity.add_listener(
            self._on_connectivity
        )

    @classmethod
    def from_settings(
        cls,
        settings: KestrelSettings | None = None,
        *,
        persistence: PersistenceStore | None = None,
        advisory: AdvisoryClient | None = None,
        connectivity: ConnectivitySignal | None = None,
        replay_handler: ReplayHandler | None = None,
    ) -> StateStore:
        """Build a store wired from environment settings.

        Without an explicit persistence collaborator the snapshot goes to
        Redis at ``REDIS_URL``. The advisory client is created only when
        ``KESTREL_ADVISORY_URL`` is set, and offline batches are uploaded
        only when ``KESTREL_SYNC_URL`` is set.
        """
        settings = settings or KestrelSettings()
        if replay_handler is None and settings.sync_url:
            replay_handler = HttpSyncUploader(SyncUploaderConfig(url=settings.sync_url))
        if advisory is None and settings.advisory_url:
            advisory = HttpAdvisoryClient(
                AdvisoryClientConfig(
                    url=settings.advisory_url, timeout=settings.advisory_timeout_s
                )
            )
        return cls(
            pipeline=ReadinessPipeline(
                classifier=StatusClassifier.from_settings(settings),
                integration=settings.readiness_integration,
            ),
            persistence=persistence or RedisPersistence(settings.redis_url),
            persistence_key=settings.persistence_key,
            coalesce_window_ms=settings.coalesce_window_ms,
            max_runs_per_sec=settings.max_runs_per_sec,
            audit_capacity=settings.audit_capacity,
            advisory=advisory,
            advisory_timeout_s=settings.advisory_timeout_s,
            connectivity=connectivity,
            replay_handler=replay_handler,
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_state(self) -> Mapping[str, Any]:
        """Read-only snapshot; nested mappings and sequences are frozen."""
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_output(self) -> PipelineOutput | None:
        return self._last_output

    @property
    def offline_queue_length(self) -> int:
        return len(self._offline_queue)

    def audit_log(self) -> list[AuditEntry]:
        """Most recent entries first."""
        return self._audit.entries()

    def stats(self) -> dict[str, int]:
        out = dict(self._stats)
        out["callback_failures"] = self._subscriptions.failures
        out["subscribers"] = len(self._subscriptions)
        out["offline_queued"] = len(self._offline_queue)
        out["generation"] = self._generation
        return out

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        selector: Selector,
        callback: Callback,
        *,
        immediate: bool = False,
        throttle_ms: float = 0.0,
        role: SubscriberRole | str = SubscriberRole.USER,
        subscriber_id: str | None = None,
    ) -> Callable[[], None]:
        """Register ``callback(new, old, meta)`` for changes of ``selector(state)``.

        Returns an idempotent unsubscribe function.
        """
        entry = self._subscriptions.add(
            selector,
            callback,
            role=role,
            throttle_ms=throttle_ms,
            subscriber_id=subscriber_id,
        )
        primed = self._subscriptions.prime(entry, self._state)
        if immediate and primed:
            entry.last_called = self._clock()
            meta = EventMeta(
                event_type=SUBSCRIPTION_INIT,
                source=EventSource.SYSTEM,
                trigger_orchestrator=False,
            )
            pending = self._subscriptions.invoke(entry, entry.cached_value, None, meta)
            if pending is not None:
                self._spawn(pending)

        registry = self._subscriptions
        subscriber = entry

        def unsubscribe() -> None:
            if registry.get(subscriber.id) is subscriber:
                registry.remove(subscriber.id)

        return unsubscribe

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def publish(
        self, changes: Mapping[str, Any], meta: EventMeta | None = None
    ) -> None:
        """Merge ``changes`` into the canonical state and react to them."""
        meta = meta or EventMeta(event_type="STATE_UPDATE")
        if self._closed:
            if not self._warned_closed:
                _logger.warning("Publish after close ignored (event %s)", meta.event_type)
                self._warned_closed = True
            return
        if not isinstance(changes, Mapping):
            raise TypeError(f"changes must be a mapping, got {type(changes).__name__}")

        unknown = unknown_keys(changes)
        if unknown:
            _logger.warning(
                "Schema violation in %s from %s: unknown top-level keys %s",
                meta.event_type,
                meta.source.value,
                unknown,
            )

        frozen_changes = freeze(changes)
        if not self._connectivity.online and meta.source not in _DERIVED_SOURCES:
            self._offline_queue.append(frozen_changes, meta)

        merged = dict(self._state)
        merged.update(frozen_changes)
        self._state = MappingProxyType(merged)
        self._stats["publishes"] += 1

        await self._persist()
        self._audit.record(meta, changes.keys())
        await self._subscriptions.broadcast(self._state, meta, self._clock())

        if not meta.trigger_orchestrator:
            return
        if meta.override_use_llm:
            self._force_advisory = True
        if meta.urgent:
            self._cancel_timer()
            await self._request_run()
        else:
            self._schedule_run()

    async def hydrate(self) -> bool:
        """Load the persisted snapshot over the current state.

        Returns True when a snapshot was found and applied.
        """
        try:
            blob = await self._persistence.get(self._persistence_key)
        except Exception:
            _logger.exception("Failed to read persisted state")
            return False
        if blob is None:
            return False
        try:
            data = decode_state(blob)
        except ValueError as exc:
            _logger.warning("Ignoring corrupt persisted state: %s", exc)
            return False

        unknown = unknown_keys(data)
        if unknown:
            _logger.warning("Persisted state carries unknown keys %s", unknown)
        merged = dict(self._state)
        merged.update(freeze(data))
        self._state = MappingProxyType(merged)
        meta = EventMeta(
            event_type="HYDRATE", source=EventSource.SYSTEM, trigger_orchestrator=False
        )
        self._audit.record(meta, data.keys())
        await self._subscriptions.broadcast(self._state, meta, self._clock())
        return True

    async def flush(self) -> None:
        """Fire any armed debounce timer now and wait for all background work."""
        while True:
            if self._timer is not None:
                self._cancel_timer()
                self._spawn(self._request_run())
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """Drop the armed timer, finish background work and detach."""
        if self._closed:
            return
        self._cancel_timer()
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
            self._cancel_timer()
        self._closed = True
        self._subscriptions.clear()
        self._detach_connectivity()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _spawn(self, awaitable: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Background store task failed", exc_info=exc)

    async def _persist(self) -> None:
        try:
            blob = encode_state(self._state)
            await self._persistence.set(self._persistence_key, blob)
        except Exception:
            self._stats["persist_failures"] += 1
            _logger.exception("Persisting state failed; in-memory state kept")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_run(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._stats["coalesced"] += 1
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._coalesce_s, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self._spawn(self._request_run())

    async def _request_run(self) -> None:
        if self._running:
            if not self._pending:
                self._pending = True
            else:
                self._stats["coalesced"] += 1
            return
        self._running = True
        try:
            while True:
                self._pending = False
                await self._respect_rate_limit()
                await self._run_once()
                if not self._pending or self._closed:
                    break
        finally:
            self._running = False
            self._pending = False

    async def _respect_rate_limit(self) -> None:
        if self._min_run_interval_s and self._last_run_started is not None:
            wait = self._min_run_interval_s - (self._clock() - self._last_run_started)
            if wait > 0:
                await asyncio.sleep(wait)
        self._last_run_started = self._clock()

    async def _run_once(self) -> None:
        snapshot = self._state
        self._generation += 1
        generation = self._generation
        try:
            output = self._pipeline.run(snapshot)
            changes = output.to_changes(
                snapshot, generation=generation, timestamp=time.time()
            )
        except Exception:
            self._stats["run_failures"] += 1
            _logger.exception(
                "Readiness pipeline failed (generation %d); canonical state kept",
                generation,
            )
            return
        self._stats["runs"] += 1
        self._last_output = output
        await self.publish(changes, EventMeta.engine())
        self._completed_generation = generation
        self._maybe_advise(output, snapshot, generation)

    def _maybe_advise(
        self, output: PipelineOutput, snapshot: Mapping[str, Any], generation: int
    ) -> None:
        forced = self._force_advisory
        self._force_advisory = False
        if self._advisory is None:
            return
        if not (
            forced
            or output.readiness < ADVISORY_READINESS_THRESHOLD
            or output.has_risk_signals
        ):
            return
        command = output.decision.active_command
        request = AdvisoryRequest(
            generation=generation,
            readiness=output.readiness,
            risk_signals=tuple(s.to_dict() for s in output.assessment.signals),
            active_command=command.to_dict() if command else None,
            user_profile=thaw(section(snapshot, "user_profile")),
            override_use_llm=forced,
        )
        self._stats["advisory_requests"] += 1
        self._spawn(self._advise(request))

    async def _advise(self, request: AdvisoryRequest) -> None:
        assert self._advisory is not None
        try:
            result = await asyncio.wait_for(
                self._advisory.advise(request), timeout=self._advisory_timeout_s
            )
        except asyncio.TimeoutError:
            self._stats["advisory_failures"] += 1
            _logger.warning(
                "Advisory synthesis timed out after %.1fs", self._advisory_timeout_s
            )
            return
        except Exception as exc:
            self._stats["advisory_failures"] += 1
            _logger.warning("Advisory synthesis failed: %s", exc)
            return
        if result is None:
            return
        if request.generation < self._completed_generation:
            self._stats["advisory_discarded"] += 1
            _logger.info(
                "Discarding stale advisory for generation %d (current %d)",
                request.generation,
                self._completed_generation,
            )
            return
        orchestrator = thaw(section(self._state, "orchestrator"))
        orchestrator["advisory"] = {**result.to_dict(), "generation": request.generation}
        orchestrator["explanation"] = [
            result.human_explanation,
            *(
                line
                for line in orchestrator.get("explanation", [])
                if line != result.human_explanation
            ),
        ]
        if result.coach_override:
            override = thaw(result.coach_override)
            orchestrator["recommended_actions"] = [
                override,
                *(
                    action
                    for action in orchestrator.get("recommended_actions", [])
                    if action.get("id") is None or action.get("id") != override.get("id")
                ),
            ]
        await self.publish({"orchestrator": orchestrator}, EventMeta.advisory())

    def _on_connectivity(self, online: bool) -> None:
        if online and len(self._offline_queue):
            self._spawn(self._replay_offline())

    async def _replay_offline(self) -> None:
        events = self._offline_queue.drain()
        if not events or self._replay_handler is None:
            return
        try:
            await self._replay_handler(events)
        except Exception:
            _logger.exception("Replaying %d offline events failed", len(events))


__all__ = ["ReplayHandler", "StateStore"]
