#!/usr/bin/env python3
"""Quick event store query tool for testing/debugging.

Usage:
    python3 scripts/query_events.py                   # Show today's working set
    python3 scripts/query_events.py all               # Show ALL stored records
    python3 scripts/query_events.py id <event-id>     # Show one record
    python3 scripts/query_events.py search "standup"  # Search by description
    python3 scripts/query_events.py --config my.yaml all
"""
import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from taskvoice.config import Config
from taskvoice.errors import EventStoreError
from taskvoice.event_store import EventStore


def fmt(records, now):
    if not records:
        print("  (none)")
        return
    for r in records:
        flags = "".join([
            "S" if r.start_announced else "-",
            "C" if r.check_start_announced else "-",
            "E" if r.end_announced else "-",
        ])
        reminded = r.last_time_reminded.strftime("%H:%M:%S") if r.last_time_reminded else "never"
        print(f"  [{flags}] reminded={reminded:8s} | {r.event.describe(now)}")
        print(f"        id: {r.id}  tz: {r.event.time_zone or 'local'}")


def load_everything(store):
    records = []
    for event_id in store.list_ids():
        try:
            records.append(store.load(event_id))
        except EventStoreError as e:
            print(f"  !! {e}")
    return records


def main():
    args = sys.argv[1:]
    config_path = os.environ.get("TASKVOICE_CONFIG", "config.yaml")
    if len(args) >= 2 and args[0] == "--config":
        config_path = args[1]
        args = args[2:]

    config = Config(config_path) if os.path.exists(config_path) else Config.from_dict({})
    store = EventStore(config.get("events.path"), config)
    now = datetime.now().astimezone()

    arg = args[0] if args else "today"

    if arg == "today":
        print(f"=== Events for {now:%Y-%m-%d} ===")
        fmt(store.load_all(now), now)
    elif arg == "all":
        print("=== All stored events ===")
        fmt(load_everything(store), now)
    elif arg == "id" and len(args) > 1:
        try:
            fmt([store.load(args[1])], now)
        except EventStoreError as e:
            print(f"  {e}")
    elif arg == "search" and len(args) > 1:
        term = args[1].lower()
        print(f"=== Search: '{args[1]}' ===")
        fmt([r for r in load_everything(store) if term in r.event.description.lower()], now)
    else:
        print(__doc__)


if __name__ == "__main__":
    main()
