import logging
from typing import Optional

from buzzin.models import Room


def channel_name(code: str) -> str:
    return f"room:{code}"


class BroadcastChannel:
    """Pushes full room snapshots to every connection subscribed to a room.

    Snapshots, not diffs: a client that just joined needs nothing but the
    latest ``room_state`` to render. Callers publish while holding the
    room's lock so each client sees transitions in the order they happened.
    """

    def __init__(self, socketio, namespace: str = '/', logger=None):
        self.socketio = socketio
        self.namespace = namespace
        self.logger = logger or logging.getLogger(__name__)

    def subscribe(self, sid: str, code: str) -> None:
        self.socketio.server.enter_room(sid, channel_name(code), namespace=self.namespace)

    def unsubscribe(self, sid: str, code: str) -> None:
        self.socketio.server.leave_room(sid, channel_name(code), namespace=self.namespace)

    def publish(self, room: Room) -> None:
        self.socketio.emit('room_state', room.to_dict(), to=channel_name(room.code), namespace=self.namespace)

    def close(self, code: str, reason: str, skip_sid: Optional[str] = None) -> None:
        """Tell everyone left in the room it is gone, then drop the channel."""
        self.socketio.emit(
            'room_closed',
            {'roomCode': code, 'reason': reason},
            to=channel_name(code),
            namespace=self.namespace,
            skip_sid=skip_sid,
        )
        self.socketio.close_room(channel_name(code), namespace=self.namespace)
        self.logger.info(f"[closed] room={code} reason={reason}")
