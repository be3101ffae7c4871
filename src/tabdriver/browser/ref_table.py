"""Ref table: ref id -> Ref for the latest snapshot of one target."""

import threading
from typing import Dict, Optional, List, Iterable

from ..errors import RefNotFoundError
from .types import Ref


class RefTable:
    """Replaced wholesale on every snapshot, never merged."""

    def __init__(self):
        self._refs: Dict[str, Ref] = {}
        self._lock = threading.Lock()

    def update(self, refs: Iterable[Ref]):
        table = {ref.id: ref for ref in refs}
        with self._lock:
            self._refs = table

    def get(self, ref_id: str) -> Optional[Ref]:
        with self._lock:
            return self._refs.get(ref_id)

    def require(self, ref_id: str) -> Ref:
        ref = self.get(ref_id)
        if ref is None:
            raise RefNotFoundError(ref_id)
        return ref

    def get_all(self) -> List[Ref]:
        with self._lock:
            return list(self._refs.values())

    def clear(self):
        with self._lock:
            self._refs = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._refs)

    def __contains__(self, ref_id: object) -> bool:
        with self._lock:
            return ref_id in self._refs
