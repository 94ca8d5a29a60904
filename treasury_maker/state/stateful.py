"""
Snapshot/restore support for mutable components.

Components that own mutable state list the attribute names holding it in
`_state_fields`. The runtime snapshots exactly those attributes (deep copies)
when a transaction or savepoint opens and writes them back if it unwinds.
References to collaborators must never be listed there.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Tuple


class Stateful:
    _state_fields: Tuple[str, ...] = ()

    def snapshot_state(self) -> Dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._state_fields}

    def restore_state(self, snapshot: Dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)
