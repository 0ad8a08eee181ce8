"""
Formatting helpers for the durations and file sizes shown in log lines and in
the run history.

Stabilizing a folder of long clips can take many hours, so durations carry a
day count once they pass 24 hours instead of growing the hour field.
"""

from datetime import timedelta

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats an elapsed time as "HH:MM:SS", or "Nd HH:MM:SS" from one day on.

    Fractions of a second are dropped. Anything that is not a non-negative
    timedelta renders as "00:00:00".

    Args:
        td_object: The elapsed time of a stage or of a whole run.

    Returns:
        For example "02:01:01" for 7261 seconds, "1d 00:00:05" for 86405 seconds.
    """
    if not isinstance(td_object, timedelta) or td_object < timedelta(0):
        return "00:00:00"

    hours, remainder = divmod(int(td_object.total_seconds()) - td_object.days * 86400, 3600)
    minutes, seconds = divmod(remainder, 60)
    clock = f"{hours:02}:{minutes:02}:{seconds:02}"
    return f"{td_object.days}d {clock}" if td_object.days else clock


def formatted_size(size_bytes: int) -> str:
    """
    Renders a file size with a binary unit and at most two decimals.

    Args:
        size_bytes: Size in bytes. Negative values count as zero.

    Returns:
        For example "512 B", "1.5 KB", "2 MB". Sizes past the largest unit
        stay in TB.
    """
    value = float(max(size_bytes, 0))
    unit = SIZE_UNITS[0]
    for unit in SIZE_UNITS:
        if value < 1024 or unit == SIZE_UNITS[-1]:
            break
        value /= 1024
    if unit == "B":
        return f"{int(value)} B"
    return f"{value:.2f}".rstrip("0").rstrip(".") + f" {unit}"
