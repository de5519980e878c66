from datetime import datetime, timezone


def utcnow():
    # Naive UTC, matching what the DateTime columns store
    return datetime.now(timezone.utc).replace(tzinfo=None)
