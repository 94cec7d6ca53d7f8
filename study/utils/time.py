from datetime import datetime, timezone

def utc_now():
    return datetime.now(timezone.utc)

def to_utc_iso(dt):
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat()
