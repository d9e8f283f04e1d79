"""
Realtime status event reconciliation.

The processing worker publishes every file status update on ONE channel
shared by all sessions. Nothing partitions it, so each session's reconciler
must filter by the ``sessionId`` inside the payload.

Components:
    RealtimeEventReconciler - one per active session; parses, filters and
                              merges events into the CartStateStore
    EventSubscriber         - background thread on the Redis pub/sub channel
                              that routes each message to the reconciler of
                              the session it names

Delivery guarantees (weaker than strict, and documented as such):
    - best effort, at most once: Redis pub/sub drops messages published
      while the subscriber is disconnected
    - unordered per file: merges are last-received-wins
    - a dropped event leaves the item stale until the next full re-fetch

The delivery callback never blocks: a merge is a constant-time dict update
under the store lock with no I/O.

Usage:
    subscriber = EventSubscriber(redis_url)
    subscriber.start()

    reconciler = RealtimeEventReconciler(store, session)
    subscriber.register(reconciler)
    ...
    subscriber.unregister(session)
    subscriber.stop()
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import redis

from core.exceptions import MalformedEventError
from models.cart import SessionContext
from models.events import EVENT_NAME, RealtimeEvent, parse_event
from .cart_store import CartStateStore
from logging_config import get_logger, get_session_logger, set_thread_name


# Module logger
logger = get_logger(__name__)


@dataclass
class ReconcilerStats:
    """Counters for one reconciler (or for the subscriber as a whole)."""

    received: int = 0
    applied: int = 0
    foreign: int = 0
    malformed: int = 0
    unmatched: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class RealtimeEventReconciler:
    """
    Merges one session's status events into the cart store.

    For every delivered event:
        1. malformed payload          -> dropped, counted, logged
        2. sessionId != this session  -> dropped, counted
        3. no item references fileId  -> dropped, counted
        4. otherwise                  -> store.merge_status()

    Nothing is ever raised back into the delivery callback.
    """

    def __init__(self, store: CartStateStore, session: SessionContext):
        self.store = store
        self.session = session
        self.stats = ReconcilerStats()
        self._logger = get_session_logger(session.session_id)

    def on_message(self, payload: Any) -> bool:
        """
        Delivery callback for a raw channel payload.

        Returns:
            True if the event changed the store
        """
        self.stats.received += 1
        try:
            event = parse_event(payload)
        except MalformedEventError as e:
            self.stats.malformed += 1
            self._logger.warning(f"Discarding malformed event: {e.reason}")
            return False
        return self._merge(event)

    def handle_event(self, event: RealtimeEvent) -> bool:
        """Delivery callback for an already-validated event."""
        self.stats.received += 1
        return self._merge(event)

    def _merge(self, event: RealtimeEvent) -> bool:
        if event.session_id != self.session.session_id:
            self.stats.foreign += 1
            return False

        updated = self.store.merge_status(self.session, event.file_id, event)
        if updated is None:
            self.stats.unmatched += 1
            self._logger.debug(f"No cart item references file {event.file_id}")
            return False

        self.stats.applied += 1
        self._logger.debug(f"Merged {event.status} for file {event.file_id}")
        return True


class EventSubscriber:
    """
    Background Redis pub/sub listener for file status events.

    This service:
    1. Subscribes to the shared status channel in its own thread
    2. Parses each payload once
    3. Hands the parsed event to the reconciler of its session
    4. Prunes reconcilers whose cart the store has evicted

    Attributes:
        channel: Redis channel name
        is_running: Whether the listener thread is active
        stats: Channel-level counters (received, applied, foreign, malformed, unmatched)
    """

    def __init__(
        self,
        redis_url: str = "",
        channel: str = EVENT_NAME,
        poll_timeout_seconds: float = 1.0,
        reconnect_delay_seconds: float = 5.0,
        sweep_interval_seconds: float = 60.0,
        redis_client: Optional[redis.Redis] = None,
    ):
        """
        Args:
            redis_url: Redis connection URL (ignored if redis_client given)
            channel: Channel the worker publishes on
            poll_timeout_seconds: How long each get_message() waits
            reconnect_delay_seconds: Back-off after a connection failure
            sweep_interval_seconds: How often reconcilers of expired sessions
                are pruned
            redis_client: Pre-built client (tests pass a fake)

        Raises:
            ValueError: If neither redis_url nor redis_client is provided
        """
        if redis_client is None and not redis_url:
            raise ValueError("redis_url is required - set REDIS_URL")

        self.channel = channel
        self.stats = ReconcilerStats()
        self._redis = redis_client or redis.Redis.from_url(redis_url, decode_responses=True)
        self._poll_timeout = poll_timeout_seconds
        self._reconnect_delay = reconnect_delay_seconds
        self._sweep_interval = sweep_interval_seconds

        self._reconcilers: Dict[str, RealtimeEventReconciler] = {}
        self._registry_lock = threading.Lock()

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

        logger.info(f"EventSubscriber initialized (channel: {channel})")

    @property
    def is_running(self) -> bool:
        return self._is_running

    # ------------------------------------------------------------------
    # Reconciler registry
    # ------------------------------------------------------------------

    def register(self, reconciler: RealtimeEventReconciler) -> RealtimeEventReconciler:
        """
        Attach a session's reconciler.

        If the session already has one, the existing reconciler is kept and
        returned so its counters survive page reloads.
        """
        with self._registry_lock:
            existing = self._reconcilers.get(reconciler.session.session_id)
            if existing is not None:
                return existing
            self._reconcilers[reconciler.session.session_id] = reconciler
        logger.debug(f"Registered reconciler for session {reconciler.session.short_id}")
        return reconciler

    def unregister(self, session: SessionContext) -> None:
        with self._registry_lock:
            self._reconcilers.pop(session.session_id, None)

    def reconciler_for(self, session: SessionContext) -> Optional[RealtimeEventReconciler]:
        with self._registry_lock:
            return self._reconcilers.get(session.session_id)

    def active_sessions(self) -> List[str]:
        with self._registry_lock:
            return list(self._reconcilers)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, payload: Any) -> int:
        """
        Route one raw payload to the reconciler of the session it names.

        Returns:
            1 if that session's store changed, else 0
        """
        self.stats.received += 1
        try:
            event = parse_event(payload)
        except MalformedEventError as e:
            self.stats.malformed += 1
            logger.warning(f"Discarding malformed event: {e.reason}")
            return 0

        with self._registry_lock:
            reconciler = self._reconcilers.get(event.session_id)

        if reconciler is None:
            self.stats.foreign += 1
            return 0

        if reconciler.handle_event(event):
            self.stats.applied += 1
            return 1

        self.stats.unmatched += 1
        return 0

    def prune(self) -> List[str]:
        """
        Unregister reconcilers whose session is no longer in their store.

        Returns:
            IDs of the sessions that were unregistered
        """
        with self._registry_lock:
            stale = [
                session_id for session_id, reconciler in self._reconcilers.items()
                if not reconciler.store.has_session(reconciler.session)
            ]
            for session_id in stale:
                del self._reconcilers[session_id]

        if stale:
            logger.info(f"Pruned {len(stale)} reconciler(s) for expired sessions")
        return stale

    # ------------------------------------------------------------------
    # Thread lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Start the listener thread.

        Safe to call multiple times - only starts if not already running.
        """
        if self._is_running:
            logger.warning("EventSubscriber already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._listen_loop,
            name="Events",
            daemon=True
        )
        self._is_running = True
        self._thread.start()

        logger.info(f"Event subscriber thread started on '{self.channel}'")

    def stop(self) -> None:
        """
        Stop the listener thread and wait for it to exit.

        Safe to call multiple times.
        """
        if not self._is_running:
            return

        logger.info("Stopping event subscriber thread...")
        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=self._poll_timeout + 5.0)
            if self._thread.is_alive():
                logger.warning("Event subscriber thread did not stop cleanly")

        self._is_running = False
        self._thread = None
        logger.info("Event subscriber thread stopped")

    def _listen_loop(self) -> None:
        """
        Listener thread main loop.

        Subscribes, drains messages until stop() is called, and re-subscribes
        after connection failures. Messages published while disconnected are
        lost (pub/sub is fire-and-forget). Reconcilers of expired sessions are
        pruned every sweep interval.
        """
        set_thread_name("Events")
        logger.info("Event listen loop starting")
        last_prune = time.monotonic()

        try:
            while not self._stop_event.is_set():
                pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
                try:
                    pubsub.subscribe(self.channel)
                    logger.info(f"Subscribed to {self.channel}")

                    while not self._stop_event.is_set():
                        message = pubsub.get_message(timeout=self._poll_timeout)
                        if message and message.get("type") == "message":
                            self._dispatch_safely(message.get("data"))

                        if time.monotonic() - last_prune >= self._sweep_interval:
                            last_prune = time.monotonic()
                            self.prune()

                except redis.RedisError as e:
                    logger.error(
                        f"Event channel connection lost: {e}; "
                        f"retrying in {self._reconnect_delay:.0f}s"
                    )
                    self._stop_event.wait(timeout=self._reconnect_delay)

                finally:
                    try:
                        pubsub.close()
                    except redis.RedisError as e:
                        logger.debug(f"Error closing pubsub: {e}")
        finally:
            self._is_running = False
            logger.info("Event listen loop exiting")

    def _dispatch_safely(self, payload: Any) -> None:
        # One bad event must not take the listener thread down
        try:
            self.dispatch(payload)
        except Exception:
            logger.exception("Unexpected error dispatching status event; skipped")
