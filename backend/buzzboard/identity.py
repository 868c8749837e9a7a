"""Connection and identity bookkeeping.

A live connection (Socket.IO sid) holds at most one role. Contestants have two
records: the live entry in ``GameState.contestants`` keyed by sid, and the
durable entry in ``GameState.contestants_by_name`` keyed by lowercased name.
Both point at the same ``Contestant`` object, so the score survives a
reconnect.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .errors import AuthError
from .models import Contestant, GameState, name_key

HOST_ROLE = 'host'
CONTESTANT_ROLE = 'contestant'


@dataclass
class Binding:
    role: str
    session_id: Optional[str]
    name_key: Optional[str] = None


def _is_live(state: GameState, contestant: Contestant) -> bool:
    return contestant.id is not None and state.contestants.get(contestant.id) is contestant


class IdentityTable:
    def __init__(self):
        self._bindings: Dict[str, Binding] = {}

    def __len__(self):
        return len(self._bindings)

    def get(self, sid) -> Optional[Binding]:
        return self._bindings.get(sid)

    def role_of(self, sid) -> Optional[str]:
        binding = self._bindings.get(sid)
        return binding.role if binding else None

    def clear(self):
        self._bindings.clear()

    def _unbind(self, state: GameState, sid):
        binding = self._bindings.pop(sid, None)
        if not binding:
            return None
        if binding.role == HOST_ROLE and state.host_id == sid:
            state.host_id = None
        elif binding.role == CONTESTANT_ROLE:
            state.contestants.pop(sid, None)
        return binding

    def bind_host(self, state: GameState, sid) -> Optional[str]:
        """Make ``sid`` the host. Returns the supplanted host sid, if any.

        The previous host connection is not closed; it just stops matching
        ``state.host_id``.
        """
        self._unbind(state, sid)
        previous = state.host_id if state.host_id != sid else None
        if previous:
            self._bindings.pop(previous, None)
        state.host_id = sid
        self._bindings[sid] = Binding(HOST_ROLE, state.session_id)
        return previous

    def bind_contestant(self, state: GameState, sid, name, address=None) -> Tuple[Contestant, bool]:
        """Bind ``sid`` to the contestant called ``name``.

        Returns ``(contestant, is_reconnecting)``. A known name reclaims its
        durable record and drops whatever live connection held it before. A
        name that only matches a live contestant's under different casing is a
        duplicate and raises ``AuthError``.
        """
        key = name_key(name)
        existing = state.contestants_by_name.get(key)
        if existing and existing.id != sid and _is_live(state, existing) and existing.name != name.strip():
            raise AuthError('Name already taken. Please choose a different name.')

        self._unbind(state, sid)
        if existing:
            if existing.id != sid and _is_live(state, existing):
                state.contestants.pop(existing.id, None)
                self._bindings.pop(existing.id, None)
            existing.id = sid
            existing.ip_address = address
            contestant, reconnecting = existing, True
        else:
            contestant = Contestant(id=sid, name=name.strip(), ip_address=address)
            state.contestants_by_name[key] = contestant
            reconnecting = False

        state.contestants[sid] = contestant
        self._bindings[sid] = Binding(CONTESTANT_ROLE, state.session_id, key)
        return contestant, reconnecting

    def release(self, state: GameState, sid) -> Optional[Binding]:
        """Forget ``sid``. The durable contestant record is kept."""
        return self._unbind(state, sid)
