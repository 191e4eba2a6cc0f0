"""Change gate: decide whether a scheduled rebuild cycle is worthwhile.

The gate counts entries in the append-only ``hasura_events`` log for the
watched source tables within a look-back window slightly longer than the
hourly schedule, so no change falls between two runs.

The gate fails open: if the log cannot be reached or queried the cycle
runs anyway.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from snapshot_export.core.constants import DEFAULT_CHANGE_WINDOW_HOURS, WATCHED_TABLES

if TYPE_CHECKING:
    from snapshot_export.clients.relational import EventLogSource

logger = logging.getLogger("snapshot_export.activities.change_gate")


def should_rebuild(
    force: bool,
    *,
    events_source: EventLogSource | None,
    window_hours: float = DEFAULT_CHANGE_WINDOW_HOURS,
) -> bool:
    """Return ``True`` when a rebuild should run.

    Args:
        force: Skip the log check and always rebuild.
        events_source: Event-log reader; ``None`` when the log is not configured.
        window_hours: Look-back window in hours.
    """
    if force:
        logger.info("Change gate bypassed | force=True")
        return True

    if events_source is None:
        logger.warning("Change gate has no event log, rebuilding anyway")
        return True

    try:
        changes = events_source.count_recent_events(window_hours, WATCHED_TABLES)
    except Exception:
        logger.exception("Change gate check failed, rebuilding anyway | window_hours=%s", window_hours)
        return True

    logger.info("Change gate evaluated | changes=%d | window_hours=%s", changes, window_hours)
    return changes > 0
