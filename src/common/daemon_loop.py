"""
Daemon Loop Utilities
=====================

The classifier is a long-running watch loop:

- Poll for work on an interval.
- If work is found, process it one item at a time.
- Keep running until a stop signal arrives (SIGTERM / SIGINT / Ctrl-C).

Items are processed strictly sequentially. The vision model is the
bottleneck and is rate limited, so there is never more than one call in
flight.
"""

from __future__ import annotations

import threading
from typing import Callable, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


def run_polling_loop(
    *,
    daemon_name: str,
    fetch_work: Callable[[], list[T]],
    process_item: Callable[[T], None],
    poll_interval_seconds: float,
    stop_event: threading.Event | None = None,
    sleep: Callable[[float], None] | None = None,
) -> None:
    """
    Run a polling loop until *stop_event* is set.

    - Items are fetched fresh once per loop iteration.
    - Each item is processed to completion before the next one starts.
    - Exceptions raised while processing one item are logged and do not stop
      the daemon; the item is picked up again on a later pass.
    - *stop_event* is checked between passes and between items.

    Args:
        daemon_name:
            Name used in log messages.
        fetch_work:
            A function returning the next batch of work items.
        process_item:
            Processes a single work item. Exceptions are caught and logged.
        poll_interval_seconds:
            How long to wait between polling iterations.
        stop_event:
            Cancellation signal. Waiting uses ``stop_event.wait`` so a stop
            request ends the wait immediately.
        sleep:
            Injectable sleep function (primarily for tests). Defaults to
            waiting on *stop_event*.
    """
    poll_interval_seconds = max(0.0, float(poll_interval_seconds))
    if stop_event is None:
        stop_event = threading.Event()
    if sleep is None:
        sleep = stop_event.wait

    was_idle = False
    while not stop_event.is_set():
        try:
            items = fetch_work()
            if not items:
                if not was_idle:
                    log.info("No work found; waiting", daemon=daemon_name)
                was_idle = True
                sleep(poll_interval_seconds)
                continue

            was_idle = False
            log.info("Processing batch", daemon=daemon_name, item_count=len(items))

            for item in items:
                if stop_event.is_set():
                    break
                try:
                    process_item(item)
                except Exception:
                    log.exception(
                        "Work item failed",
                        daemon=daemon_name,
                        item=_safe_item_summary(item),
                    )

            sleep(poll_interval_seconds)
        except KeyboardInterrupt:
            log.info("Ctrl-C received; exiting", daemon=daemon_name)
            break
        except Exception:
            log.exception(
                "Unexpected error in daemon loop; sleeping",
                daemon=daemon_name,
                poll_interval_seconds=poll_interval_seconds,
            )
            sleep(poll_interval_seconds)

    log.info("Daemon loop stopped", daemon=daemon_name)


def _safe_item_summary(item: object) -> str:
    """
    Best-effort string for logging a work item.

    The daemon passes document records, but tests may pass arbitrary objects.
    """
    try:
        doc_id = getattr(item, "id", None)
        if doc_id is not None:
            return f"doc_id={doc_id}"
        if isinstance(item, dict):
            if "id" in item:
                return f"doc_id={item.get('id')}"
            return f"dict_keys={sorted(item.keys())}"
        return str(item)
    except Exception:
        return "<unprintable>"
