from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class AccountLockRegistry:
    """One mutation lock per account id, shared by every request thread.

    Entries are reference counted and evicted once the last holder leaves,
    so the registry only ever tracks ids with a request in flight.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _checkout(self, account_id: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(account_id)
            if entry is None:
                entry = self._entries[account_id] = _Entry()
            entry.holders += 1
            return entry

    def _checkin(self, account_id: str, entry: _Entry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._entries[account_id]

    @contextmanager
    def hold(self, *account_ids: str) -> Iterator[None]:
        # Sorted acquisition keeps two-account transfers deadlock free.
        ids = sorted(set(account_ids))
        entries = [(account_id, self._checkout(account_id)) for account_id in ids]
        acquired: list[_Entry] = []
        try:
            for _, entry in entries:
                entry.lock.acquire()
                acquired.append(entry)
            yield
        finally:
            for entry in reversed(acquired):
                entry.lock.release()
            for account_id, entry in entries:
                self._checkin(account_id, entry)


account_locks = AccountLockRegistry()
