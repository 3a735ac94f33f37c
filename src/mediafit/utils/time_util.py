import math
import re
from datetime import datetime, timedelta, timezone

TIMESTAMP_REGEX = re.compile(r"(\d+):(\d+):(\d+)\.(\d+)")


def parse_time_to_seconds(time_str: str) -> float:
    """Parse an FFmpeg HH:MM:SS.cc timestamp into seconds (0.0 when absent)."""
    match = TIMESTAMP_REGEX.search(time_str)
    if not match:
        return 0.0
    hours, minutes, seconds, centis = (int(g) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds + centis / 100


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_runtime(time_in_seconds: float) -> str:
    total = int(time_in_seconds)
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"


def get_eta_total(done_count, total_count, elapsed_seconds):
    avg_time_per_file = elapsed_seconds / done_count
    remaining_seconds = avg_time_per_file * (total_count - done_count)
    return _get_eta_string(remaining_seconds)


def _get_eta_string(time_in_seconds):
    completion_time = (datetime.now(timezone.utc) + timedelta(
        seconds=time_in_seconds)).strftime("%Y-%m-%d %H:%M:%S")

    eta_hours = int(time_in_seconds // 3600)
    eta_mins = int((time_in_seconds % 3600) // 60)
    eta_secs = int(time_in_seconds % 60)
    if eta_hours > 0:
        formatted_time = f"{eta_hours}h{eta_mins}m{eta_secs}s"
    elif eta_mins > 0:
        formatted_time = f"{eta_mins}m{eta_secs}s"
    else:
        formatted_time = f"{eta_secs}s"

    return f"{completion_time} ({formatted_time})"
