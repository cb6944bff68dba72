from datetime import datetime, timezone


def ms_to_datetime(ms: float) -> datetime:
    """
    Convert timestamp milliseconds → UTC datetime
    """
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def ms_to_date_string(ms: float) -> str:
    """
    Convert timestamp milliseconds → ISO calendar day (YYYY-MM-DD, UTC)
    """
    return ms_to_datetime(ms).date().isoformat()
