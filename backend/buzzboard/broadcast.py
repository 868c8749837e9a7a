from typing import Iterable

from .commands import CLOSE, EVERYONE, HOST, JOIN, LEAVE, REPLY, Event, RoomChange

NAMESPACE = '/ws'


def session_room(session_id) -> str:
    return f"session:{session_id}"


class Broadcaster:
    """Delivers machine events to their audience over Socket.IO."""

    def __init__(self, socketio, namespace=NAMESPACE, logger=None):
        self.socketio = socketio
        self.namespace = namespace
        self.logger = logger

    def resolve(self, event: Event):
        """Return the room or sid an event goes to, or None if nobody should get it."""
        if event.target is None:
            return None
        if event.audience == EVERYONE:
            return session_room(event.target)
        if event.audience in (HOST, REPLY):
            return event.target
        raise ValueError(f'Unknown audience {event.audience!r}')

    def apply(self, changes: Iterable[RoomChange]) -> None:
        """Update session room membership so EVERYONE events reach bound connections only."""
        for change in changes:
            room = session_room(change.session_id)
            if change.action == CLOSE:
                self.socketio.close_room(room, namespace=self.namespace)
            elif change.action == JOIN:
                self.socketio.server.enter_room(change.sid, room, namespace=self.namespace)
            elif change.action == LEAVE:
                self.socketio.server.leave_room(change.sid, room, namespace=self.namespace)
            else:
                raise ValueError(f'Unknown room change {change.action!r}')
            if self.logger:
                self.logger.debug(f"[room] action={change.action} room={room} sid={change.sid}")

    def deliver(self, events: Iterable[Event]) -> int:
        sent = 0
        for event in events:
            to = self.resolve(event)
            if to is None:
                if self.logger:
                    self.logger.debug(f"[fanout-skip] event={event.name} audience={event.audience} no target")
                continue
            self.socketio.emit(event.name, event.payload, to=to, namespace=self.namespace)
            sent += 1
        return sent
