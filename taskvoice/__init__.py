"""taskvoice: spoken start, progress and end announcements for today's calendar tasks.

Modules:
    event_store      per-event lifecycle records (one JSON file per event)
    sync             reconcile the store with a fresh calendar fetch
    reminder_policy  decide which notification is due for an event
    messages         render notification text from configurable templates
    scheduler        sync and reminder threads
"""

__version__ = "0.1.0"
