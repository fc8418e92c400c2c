import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from buzzin.errors import Forbidden, RoomNotFound
from .broadcast import BroadcastChannel
from .store import RoomStore


@dataclass(frozen=True)
class Membership:
    sid: str
    room_code: str
    player_id: str


class PresenceTracker:
    """Which connection belongs to which room, and what happens when it goes away."""

    def __init__(self, store: RoomStore, broadcast: BroadcastChannel, logger: Optional[logging.Logger] = None):
        self.store = store
        self.broadcast = broadcast
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._by_sid: Dict[str, Membership] = {}

    def bind(self, sid: str, room_code: str, player_id: str) -> Membership:
        membership = Membership(sid=sid, room_code=room_code, player_id=player_id)
        with self._lock:
            self._by_sid[sid] = membership
        self.broadcast.subscribe(sid, room_code)
        return membership

    def lookup(self, sid: str) -> Optional[Membership]:
        with self._lock:
            return self._by_sid.get(sid)

    def require(self, sid: str, room_code: str) -> Membership:
        membership = self.lookup(sid)
        if membership is None or membership.room_code != room_code:
            raise Forbidden(f'Connection is not part of room {room_code}')
        return membership

    def connections(self, room_code: str) -> List[str]:
        with self._lock:
            return [m.sid for m in self._by_sid.values() if m.room_code == room_code]

    def is_live(self, room_code: str) -> bool:
        return bool(self.connections(room_code))

    def depart(self, sid: str, disconnected: bool = True) -> None:
        """Run the cleanup for a connection leaving its room.

        The host leaving tears the room down for everyone; anyone else is
        simply removed and the rest of the room gets a fresh snapshot.
        Never fails: a room that is already gone needs no cleanup.
        """
        with self._lock:
            membership = self._by_sid.pop(sid, None)
        if membership is not None:
            self.leave(membership, disconnected=disconnected)

    def leave(self, membership: Membership, disconnected: bool = False) -> None:
        """Remove ``membership`` from its room, whatever the sid is bound to now."""
        sid = membership.sid
        code = membership.room_code
        try:
            with self.store.guard(code) as room:
                if membership.player_id == room.host_id:
                    self.teardown(code, reason='host_left', skip_sid=sid)
                    return
                updated = self.store.remove_player(code, membership.player_id)
                if not disconnected:
                    self.broadcast.unsubscribe(sid, code)
                self.logger.info(f"[depart] room={code} player={membership.player_id} players={len(updated.players)}")
                self.broadcast.publish(updated)
        except RoomNotFound:
            self.logger.info(f"[depart] room={code} player={membership.player_id} room already closed")

    def teardown(self, code: str, reason: str, skip_sid: Optional[str] = None) -> None:
        with self.store.guard(code):
            self.store.destroy_room(code)
            with self._lock:
                for other in [s for s, m in self._by_sid.items() if m.room_code == code]:
                    del self._by_sid[other]
            self.broadcast.close(code, reason, skip_sid=skip_sid)

    def reap_idle(self, timeout: float, now: Optional[float] = None) -> List[str]:
        reaped = []
        for code in self.store.idle_codes(timeout, self.is_live, now=now):
            try:
                self.teardown(code, reason='idle')
            except RoomNotFound:
                continue
            self.logger.info(f"[reap] room={code} idle>={timeout}s")
            reaped.append(code)
        return reaped
