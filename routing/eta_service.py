#Purpose: ETA presentation policy.
#Converts routing durations (seconds) into the minutes shown to clients
#("llega en X min") and drivers.

import math


def eta_minutes(duration_s: float) -> int:
    if duration_s <= 0:
        return 0
    return max(1, math.ceil(duration_s / 60))


def format_eta(minutes: int) -> str:
    if minutes < 1:
        return "< 1 min"
    if minutes < 60:
        return f"{minutes} min"
    hours, rest = divmod(minutes, 60)
    return f"{hours} h {rest} min"
