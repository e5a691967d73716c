"""
Message Renderer

Turns a reminder decision into the sentence that gets spoken. Users can
override each phrase in the config with a ``str.format`` template, e.g.::

    messages:
      remind: "{time_left} to go on {event}."

Available fields: event, time_left, start, end, duration.

A template that is unset, malformed, or references anything else falls
back to the built-in phrase. Rendering never fails the notification.
"""

import string
from datetime import datetime
from typing import Dict, Optional

from taskvoice.errors import TemplateInvalid
from taskvoice.events import LocalEvent
from taskvoice.logger import get_logger
from taskvoice.reminder_policy import Decision
from taskvoice.timeutil import format_clock, format_duration


TEMPLATE_KEYS = {
    Decision.ANNOUNCE_START: "messages.announce_start",
    Decision.CHECK_STARTED: "messages.check_start",
    Decision.REMIND: "messages.remind",
    Decision.ANNOUNCE_END: "messages.announce_end",
}

FALLBACK_TEMPLATES = {
    Decision.ANNOUNCE_START: 'Hey! Time to tackle "{event}"! You have "{event}" scheduled for now.',
    Decision.CHECK_STARTED: 'Have you started "{event}" yet? It was scheduled to begin at {start}.',
    Decision.REMIND: "You have {time_left} left for {event}",
    Decision.ANNOUNCE_END: 'Hey! The "{event}" is over now!',
}

FIELDS = ("event", "time_left", "start", "end", "duration")


def message_fields(event: LocalEvent, now: datetime) -> Dict[str, str]:
    """Values available to message templates for event at now."""
    e = event.event
    end = e.end_time
    return {
        "event": e.description,
        "time_left": format_duration(end - now) if end is not None else "",
        "start": format_clock(e.start_time),
        "end": format_clock(end) if end is not None else "",
        "duration": format_duration(e.duration) if e.duration is not None else "",
    }


def _render_template(template: str, fields: Dict[str, str]) -> str:
    """Render a user template, raising TemplateInvalid on any problem."""
    try:
        parsed = list(string.Formatter().parse(template))
    except ValueError as e:
        raise TemplateInvalid(f"malformed template: {e}") from e

    for _, name, _, _ in parsed:
        if name is None:
            continue
        if name not in FIELDS:
            raise TemplateInvalid(f"unknown field {{{name}}}")

    try:
        text = template.format(**fields)
    except (ValueError, KeyError, IndexError) as e:
        raise TemplateInvalid(f"cannot render template: {e}") from e

    if not text.strip():
        raise TemplateInvalid("template renders to empty text")
    return text


class MessageRenderer:
    """Render notification text from configured templates."""

    def __init__(self, config):
        self.config = config
        self.logger = get_logger(__name__, config)

    def template_for(self, kind: Decision) -> str:
        """Configured template for kind, or '' when unset."""
        key = TEMPLATE_KEYS.get(kind)
        if key is None:
            return ""
        return self.config.get(key, "") or ""

    def render(self, kind: Decision, event: LocalEvent,
               fields: Optional[Dict[str, str]] = None) -> str:
        if kind not in FALLBACK_TEMPLATES:
            raise ValueError(f"nothing to render for {kind}")

        if fields is None:
            fields = message_fields(event, datetime.now().astimezone())
        fallback = FALLBACK_TEMPLATES[kind].format(**fields)

        template = self.template_for(kind)
        if not template:
            return fallback

        try:
            return _render_template(template, fields)
        except TemplateInvalid as e:
            self.logger.warning(f"Invalid {kind.value} template {template!r}, using default: {e}")
            return fallback
