"""
Module: notibot/scheduler/plan.py

Compiles reminder patterns into send plans and fast-forwards repeating
triggers past missed occurrences.
"""

# Pattern token meaning "at the trigger itself"
ON_TIME = 'time'


def parse_offset(token):
    """
    Minutes before the trigger for a reminder token such as "15" or "15m".

    Returns None for anything that is not a positive number of minutes.
    """
    token = token.strip().lower()
    if token.endswith('m'):
        token = token[:-1]
    if not token.isdecimal():
        return None
    minutes = int(token)
    return minutes if minutes > 0 else None


def compile_send_plan(trigger, pattern):
    """
    Turn a trigger and a reminder pattern into absolute send timestamps.

    The pattern is a comma-separated list whose tokens are either ON_TIME or a
    positive number of minutes before the trigger, optionally suffixed with
    "m". Invalid or non-positive tokens are dropped. An empty or fully invalid
    pattern degrades to the trigger alone.

    Args:
        trigger (int): Canonical fire moment in epoch seconds.
        pattern (str or None): e.g. "15,5,time".

    Returns:
        list[int]: Ascending, deduplicated send timestamps.
    """
    trigger = int(trigger)
    if not pattern or pattern.strip() == ON_TIME:
        return [trigger]

    send_times = set()
    for token in pattern.split(','):
        if token.strip().lower() == ON_TIME:
            send_times.add(trigger)
            continue
        minutes = parse_offset(token)
        if minutes is not None:
            send_times.add(trigger - minutes * 60)

    return sorted(send_times) or [trigger]


def normalize_pattern(value):
    """
    Canonical form of a user-supplied reminder pattern.

    Keeps the valid reminder offsets, largest first, and always ends with
    ON_TIME: the on-time send is what completes a cycle. Returns None when
    tokens were given but none of them is valid.
    """
    if not value or not value.strip():
        return ON_TIME
    offsets = set()
    valid = False
    for token in value.split(','):
        if token.strip().lower() == ON_TIME:
            valid = True
            continue
        minutes = parse_offset(token)
        if minutes is not None:
            offsets.add(minutes)
            valid = True
    if not valid:
        return None
    return ','.join([str(m) for m in sorted(offsets, reverse=True)] + [ON_TIME])


def fast_forward(trigger, frequency, now):
    """
    Return the first occurrence of a repeating trigger strictly after `now`.

    Uses floor division so the cost is constant no matter how many cycles
    were missed.
    """
    trigger = int(trigger)
    frequency = int(frequency)
    missed = max(0, (int(now) - trigger) // frequency)
    return trigger + frequency * (missed + 1)
