"""Broadcast topic names. Clients subscribe to these exact strings."""

DATAPOINTS = "datapoints"
DATAPOINTS_BATCH = "datapoints/batch"
DATAPOINTS_UPDATED = "datapoints/updated"
DATAPOINTS_DELETED = "datapoints/deleted"
SYSTEM_STATUS = "system/status"
SYSTEM_ERRORS = "system/errors"
NOTIFICATIONS = "notifications"
PONG = "pong"


def category_topic(category: str) -> str:
    """Per-category feed, e.g. `datapoints/Sales`."""
    return f"{DATAPOINTS}/{category}"
