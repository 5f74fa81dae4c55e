"""
Display-safe rendering of secret values.

The scheme is a stable contract the UI sizes its badges against:

    "sk-abc123"        -> "sk-a***23"
    "ghp_0123456789ab" -> "ghp_********ab"
    "hunter2"          -> "*******"

At most PREFIX_CHARS leading and SUFFIX_CHARS trailing characters are shown, and
only when at least MIN_HIDDEN characters stay hidden. The mask run never exceeds
MASK_CAP, so long secrets do not reveal their length.
"""

PREFIX_CHARS = 4
SUFFIX_CHARS = 2
MIN_HIDDEN = 3
MASK_CHAR = "*"
MASK_CAP = 8

REVEAL_THRESHOLD = PREFIX_CHARS + SUFFIX_CHARS + MIN_HIDDEN


def mask(value: str) -> str:
    if not value:
        return ""
    if len(value) < REVEAL_THRESHOLD:
        return MASK_CHAR * min(len(value), MASK_CAP)
    hidden = len(value) - PREFIX_CHARS - SUFFIX_CHARS
    return value[:PREFIX_CHARS] + MASK_CHAR * min(hidden, MASK_CAP) + value[-SUFFIX_CHARS:]
