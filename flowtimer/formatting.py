"""Time display helpers."""


def format_clock(seconds: int) -> str:
    """``MM:SS`` countdown text.  Minutes are not wrapped at 60."""
    m, s = divmod(max(0, seconds), 60)
    return f"{m:02d}:{s:02d}"


def format_tracked(seconds: int) -> str:
    """``HH:MM:SS`` for time tracked on a task."""
    h, rest = divmod(max(0, seconds), 3600)
    m, s = divmod(rest, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_duration(seconds: int) -> str:
    """Compact human duration, e.g. ``1h 05m`` or ``25m``."""
    h, rest = divmod(max(0, seconds), 3600)
    m, s = divmod(rest, 60)
    if h:
        return f"{h}h {m:02d}m"
    if s:
        return f"{m}m {s:02d}s"
    return f"{m}m"
