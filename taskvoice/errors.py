"""
Error types shared across taskvoice.

Only ConfigError is fatal, and only during startup. Everything else is
caught and logged by the scheduler so a bad record, a flaky calendar or a
broken template never stops the reminder loop.
"""


class TaskVoiceError(Exception):
    """Base class for all taskvoice errors."""


class ConfigError(TaskVoiceError):
    """Configuration file missing or unreadable at startup."""


class EventStoreError(TaskVoiceError):
    """Base class for event store failures."""


class EventNotFound(EventStoreError):
    """No record exists for the requested event id."""

    def __init__(self, event_id: str):
        super().__init__(f"no stored event with id {event_id!r}")
        self.event_id = event_id


class CorruptEvent(EventStoreError):
    """A record exists but its payload cannot be parsed."""

    def __init__(self, event_id: str, reason: str):
        super().__init__(f"stored event {event_id!r} is corrupt: {reason}")
        self.event_id = event_id
        self.reason = reason


class StorageWriteFailed(EventStoreError):
    """Persisting or deleting a record failed."""


class RemoteFetchFailed(TaskVoiceError):
    """The calendar collaborator could not deliver events."""


class TemplateInvalid(TaskVoiceError):
    """A configured message template cannot be rendered."""
