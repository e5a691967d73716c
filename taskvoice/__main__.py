#!/usr/bin/env python3
"""
taskvoice entry point.

Usage:
    python3 -m taskvoice                       # Run until interrupted
    python3 -m taskvoice --config my.yaml      # Use a specific config file
    python3 -m taskvoice --once                # One sync + one reminder round
"""

import argparse
import os
import sys
import time

from taskvoice.calendar_source import FileCalendarSource
from taskvoice.config import Config
from taskvoice.errors import ConfigError
from taskvoice.event_store import get_event_store
from taskvoice.logger import configure_logging, get_logger
from taskvoice.scheduler import TaskScheduler
from taskvoice.tts import build_speaker

DEFAULT_CONFIG = "config.yaml"
GREETING = "Hello, I'm ready to help you."


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Spoken reminders for today's calendar tasks")
    parser.add_argument("--config", default=os.environ.get("TASKVOICE_CONFIG", DEFAULT_CONFIG),
                        help="Path to the YAML config file")
    parser.add_argument("--once", action="store_true",
                        help="Run one sync and one reminder round, then exit")
    args = parser.parse_args(argv)

    try:
        config = Config(args.config)
    except ConfigError as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(config)
    logger = get_logger("taskvoice", config)

    calendar_file = config.get("calendar.file")
    if not calendar_file:
        logger.error("No calendar source configured (calendar.file)")
        return 1

    store = get_event_store(config)
    speaker = build_speaker(config)
    scheduler = TaskScheduler(config, store, FileCalendarSource(calendar_file, config), speaker)

    if args.once:
        scheduler.sync_once()
        count = scheduler.remind_once()
        logger.info(f"Dispatched {count} notification(s)")
        return 0

    speaker.speak(GREETING)
    scheduler.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
