"""
Shared helpers for progress output.

Progress goes to stderr so stdout stays machine-readable. ``--quiet`` hides
progress, INFO and OK lines; WARN, SKIP and FAIL lines are always shown.
"""

import sys

from gamecenter_cli import config

_QUIET_TAGS = frozenset({"INFO", "OK"})


def emit(message, tag=None, indent=0, always=False):
    """Print one progress line to stderr, e.g. ``  [SKIP] Localization ...``."""
    if not always and config.RUNTIME_QUIET and (tag is None or tag in _QUIET_TAGS):
        return
    prefix = f"[{tag}] " if tag else ""
    print(" " * indent + prefix + message, file=sys.stderr)


def strip_tag(message):
    """Drop a leading ``[ERROR] `` tag so messages nest inside other tags."""
    message = str(message)
    if message.startswith("[ERROR] "):
        return message[len("[ERROR] ") :]
    return message
