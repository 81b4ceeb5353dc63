"""Single-slot cache for the app's Game Center detail (achievement group) id."""

import threading


class GroupIdCache:
    """Remembers the group id for the life of the process.

    The first successful fetch wins and is never replaced. A failed fetch
    leaves the cache empty, so the next caller tries again.
    """

    def __init__(self, value=None):
        self._value = value
        self._lock = threading.Lock()

    @property
    def value(self):
        return self._value

    def get_or_fetch(self, fetch):
        if self._value is not None:
            return self._value
        with self._lock:
            if self._value is None:
                self._value = fetch()
        return self._value
