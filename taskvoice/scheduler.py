"""
Task Scheduler

Drives the two periodic jobs for the lifetime of the process:

- sync:   fetch today's calendar events and reconcile the event store
- remind: evaluate every stored event and speak what is due

Each job runs on its own daemon thread with its own interval. Speech on a
Raspberry Pi is slow, so one reminder round always finishes (including all
speech) before the next starts; a round triggered while another is running
is skipped rather than queued.
"""

import threading
import time
from datetime import datetime
from typing import Callable, Optional

from taskvoice.calendar_source import CalendarSource, fetch_today_events
from taskvoice.errors import EventStoreError, RemoteFetchFailed
from taskvoice.event_store import EventStore
from taskvoice.logger import get_logger
from taskvoice.messages import MessageRenderer, message_fields
from taskvoice.reminder_policy import Decision, ReminderSettings, evaluate
from taskvoice.sync import SyncResult, reconcile
from taskvoice.timeutil import local_now
from taskvoice.tts import Speaker


DEFAULT_SYNC_INTERVAL = 15
DEFAULT_REMIND_INTERVAL = 30

# Granularity of interruptible sleeps, for responsive shutdown
_SLEEP_SLICE = 0.5


class TaskScheduler:
    """Runs calendar sync and reminder rounds on independent timers."""

    def __init__(self, config, store: EventStore, calendar: CalendarSource,
                 speaker: Speaker, renderer: Optional[MessageRenderer] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.store = store
        self.calendar = calendar
        self.speaker = speaker
        self.renderer = renderer or MessageRenderer(config)
        self.clock = clock or local_now
        self.logger = get_logger(__name__, config)

        self._reminding = threading.Lock()
        self._running = False
        self._sync_thread: Optional[threading.Thread] = None
        self._remind_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def _reload_config(self):
        reload = getattr(self.config, "reload_if_changed", None)
        if reload is not None:
            reload()

    def sync_once(self) -> Optional[SyncResult]:
        """Fetch today's events and reconcile the store. Never raises."""
        self._reload_config()
        now = self.clock()

        try:
            events = fetch_today_events(self.calendar, now)
        except RemoteFetchFailed as e:
            # Leave the store untouched until the next successful fetch
            self.logger.error(f"Calendar sync failed, will retry: {e}")
            return None

        try:
            result = reconcile(self.store, events)
        except (EventStoreError, ValueError) as e:
            self.logger.error(f"Failed to save events: {e}")
            return None

        self.logger.debug(f"Refreshed tasks from calendar, for today there are "
                          f"{len(result.saved)} task(s)")
        return result

    def remind_once(self) -> Optional[int]:
        """Run one reminder round.

        Returns the number of notifications dispatched, or None if a round
        was already in progress.
        """
        if not self._reminding.acquire(blocking=False):
            self.logger.debug("Reminder round still running, skipping")
            return None
        try:
            return self._remind_round()
        finally:
            self._reminding.release()

    def _remind_round(self) -> int:
        self._reload_config()
        settings = ReminderSettings.from_config(self.config)
        now = self.clock()

        try:
            events = self.store.load_all(now)
        except EventStoreError as e:
            self.logger.error(f"Failed to load events: {e}")
            return 0

        dispatched = 0
        for event in events:
            evaluation = evaluate(event, now, settings)
            if evaluation.decision is Decision.NONE:
                continue

            # Flags are written before anything is spoken
            try:
                self.store.update_flags(event.id, evaluation.update.apply)
            except EventStoreError as e:
                self.logger.error(f"Failed to update event {event.id!r}, "
                                  f"skipping {evaluation.decision.value}: {e}")
                continue

            text = self.renderer.render(evaluation.decision, event,
                                        message_fields(event, now))
            self.logger.info(f"{evaluation.decision.value} for '{event.event.description}': {text}")
            self._announce(text)
            dispatched += 1

        return dispatched

    def _announce(self, text: str):
        try:
            ok = self.speaker.speak(text)
        except Exception as e:
            self.logger.error(f"Failed to announce task: {e}")
            return
        if not ok:
            self.logger.error(f"Failed to announce task: {text!r}")

    # ------------------------------------------------------------------
    # Background threads
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    def _interval(self, key: str, default: float) -> float:
        try:
            value = float(self.config.get(key, default))
        except (TypeError, ValueError):
            return default
        return value if value > 0 else default

    def _sleep(self, seconds: float):
        """Sleep in small slices so stop() doesn't wait a full interval."""
        deadline = time.monotonic() + seconds
        while self._running:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            time.sleep(min(_SLEEP_SLICE, remaining))

    def _sync_loop(self):
        """Refresh events from the calendar every sync interval."""
        while self._running:
            try:
                self.sync_once()
            except Exception as e:
                self.logger.error(f"Sync tick error: {e}")
            self._sleep(self._interval("sync.interval_seconds", DEFAULT_SYNC_INTERVAL))

    def _remind_loop(self):
        """Evaluate reminders every reminder interval."""
        while self._running:
            try:
                self.remind_once()
            except Exception as e:
                self.logger.error(f"Reminder tick error: {e}")
            self._sleep(self._interval("reminders.interval_seconds", DEFAULT_REMIND_INTERVAL))

    def start(self):
        """Start the sync and reminder threads."""
        if not self.config.get("reminders.enabled", True):
            self.logger.info("Reminder system disabled in config")
            return
        if self._running:
            return

        self.logger.info("Starting task scheduler")
        self._running = True
        self._sync_thread = threading.Thread(target=self._sync_loop, daemon=True,
                                             name="taskvoice-sync")
        self._remind_thread = threading.Thread(target=self._remind_loop, daemon=True,
                                               name="taskvoice-remind")
        self._sync_thread.start()
        self._remind_thread.start()
        self.logger.info("Calendar sync and reminder polling started")

    def stop(self, timeout: float = 10):
        """Stop both threads (waits for a running speech to finish up to timeout)."""
        self._running = False
        for thread in (self._sync_thread, self._remind_thread):
            if thread is not None:
                thread.join(timeout=timeout)
        self._sync_thread = None
        self._remind_thread = None
        self.logger.info("Task scheduler stopped")
