"""
Undo journal for the pool's keyed stores.

Between begin() and commit() a store remembers the value each key held before
its first write in the operation. rollback() puts exactly those values back, so
undoing an operation costs as much as the keys it touched.
"""

import copy
from typing import Any, Dict, Hashable, Optional

_ABSENT = object()


class Journaled:
    """Mixin for a store backed by one dict; writers call ``_touch(key)`` first."""

    _undo: Optional[Dict[Hashable, Any]] = None

    def _store(self) -> Dict:
        raise NotImplementedError

    def begin(self) -> None:
        self._undo = {}

    def _touch(self, key: Hashable) -> None:
        if self._undo is None or key in self._undo:
            return
        value = self._store().get(key, _ABSENT)
        self._undo[key] = value if value is _ABSENT else copy.copy(value)

    def rollback(self) -> None:
        store = self._store()
        for key, value in (self._undo or {}).items():
            if value is _ABSENT:
                store.pop(key, None)
            else:
                store[key] = value
        self._undo = None

    def commit(self) -> None:
        self._undo = None

    @property
    def touched(self) -> int:
        """Keys recorded by the open journal (0 when none is open)."""
        return len(self._undo) if self._undo is not None else 0
