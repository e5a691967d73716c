"""
Sync Reconciler

Merges a freshly fetched set of calendar events into the event store:
every remote event is saved (keeping flags of records that already exist),
then records for events that vanished from the calendar are deleted.
"""

from dataclasses import dataclass, field
from typing import Iterable, List

from taskvoice.event_store import EventStore
from taskvoice.events import CalendarEvent

@dataclass
class SyncResult:
    """Outcome of one reconciliation."""

    saved: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


def reconcile(store: EventStore, remote_events: Iterable[CalendarEvent]) -> SyncResult:
    """Bring the store in line with the calendar.

    A failed save aborts the run and propagates; whatever was already written
    stays, and the next sync repairs the rest.
    """
    result = SyncResult()

    for event in remote_events:
        if not event.id:
            store.logger.warning(f"Ignoring calendar event without id: {event.description!r}")
            continue
        store.save(event)
        result.saved.append(event.id)

    # Compare by id set, so nothing saved above can be pruned here
    result.removed = store.delete_missing(result.saved)

    store.logger.debug(f"Reconciled {len(result.saved)} event(s), removed {len(result.removed)}")
    return result
