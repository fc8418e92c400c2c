import logging
from typing import Any, Callable, Dict, Optional

from buzzin.errors import CommandError, Forbidden, InvalidInput
from buzzin.models import Room
from buzzin.services.rooms import BroadcastChannel, Membership, PresenceTracker, RoomStore

Ack = Dict[str, Any]


class CommandRouter:
    """Validates participant intents and applies them to the room store.

    ``dispatch`` is the whole contract: a command name and payload go in, an
    acknowledgement dict comes out (``{"ok": True, ...}`` or
    ``{"ok": False, "error": kind, "message": ...}``). Failures never change
    room state and are only ever returned to the caller.
    """

    HOST_ONLY = frozenset({
        'clear_buzzers', 'lock_buzzers', 'award', 'penalty', 'next_question', 'assign_team',
    })

    def __init__(
        self,
        store: RoomStore,
        presence: PresenceTracker,
        broadcast: BroadcastChannel,
        score_delta: int = 50,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.presence = presence
        self.broadcast = broadcast
        self.score_delta = score_delta
        self.logger = logger or logging.getLogger(__name__)
        self._handlers: Dict[str, Callable[[str, Dict[str, Any]], Optional[Ack]]] = {
            'create_room': self.create_room,
            'join_room': self.join_room,
            'buzz': self.buzz,
            'clear_buzzers': self.clear_buzzers,
            'lock_buzzers': self.lock_buzzers,
            'award': self.award,
            'penalty': self.penalty,
            'next_question': self.next_question,
            'assign_team': self.assign_team,
        }

    @property
    def commands(self):
        return tuple(self._handlers)

    def dispatch(self, sid: str, command: str, payload: Any = None) -> Ack:
        handler = self._handlers.get(command)
        try:
            if handler is None:
                raise InvalidInput(f'Unknown command {command!r}')
            if payload is None:
                payload = {}
            if not isinstance(payload, dict):
                raise InvalidInput('Payload must be an object')
            result = handler(sid, payload)
        except CommandError as exc:
            if not exc.soft:
                self.logger.info(f"[reject] command={command} sid={sid} error={exc.kind} message={exc.message!r}")
            return exc.to_ack()
        ack: Ack = {'ok': True}
        ack.update(result or {})
        return ack

    def disconnect(self, sid: str) -> None:
        self.presence.depart(sid)

    # ---- commands ----

    def create_room(self, sid: str, payload: Dict[str, Any]) -> Ack:
        previous = self.presence.lookup(sid)
        room = self.store.create_room(sid, payload.get('hostName'))
        with self.store.guard(room.code) as current:
            self.presence.bind(sid, room.code, sid)
            self.broadcast.publish(current)
        self._leave(previous)
        return {'roomCode': room.code, 'hostId': room.host_id}

    def join_room(self, sid: str, payload: Dict[str, Any]) -> Ack:
        code = _room_code(payload)
        previous = self.presence.lookup(sid)
        if previous and previous.room_code == code and self.store.exists(code):
            return {'roomCode': code, 'playerId': previous.player_id}
        # The old room is only left once the new one has taken the connection
        with self.store.guard(code):
            current = self.store.join_room(code, sid, payload.get('name'))
            self.presence.bind(sid, code, sid)
            self.broadcast.publish(current)
        self._leave(previous)
        return {'roomCode': code, 'playerId': sid}

    def buzz(self, sid: str, payload: Dict[str, Any]) -> None:
        code = _room_code(payload)
        membership = self._member(sid, code)
        self._mutate(code, self.store.buzz, membership.player_id)

    def clear_buzzers(self, sid: str, payload: Dict[str, Any]) -> None:
        code = _room_code(payload)
        self._host(sid, code)
        self._mutate(code, self.store.clear_buzzers)

    def lock_buzzers(self, sid: str, payload: Dict[str, Any]) -> None:
        code = _room_code(payload)
        self._host(sid, code)
        locked = payload.get('locked')
        if not isinstance(locked, bool):
            raise InvalidInput('locked must be true or false')
        self._mutate(code, self.store.lock_buzzers, locked)

    def award(self, sid: str, payload: Dict[str, Any]) -> None:
        code = _room_code(payload)
        self._host(sid, code)
        self._mutate(code, self.store.award, _player_id(payload), payload.get('delta', self.score_delta))

    def penalty(self, sid: str, payload: Dict[str, Any]) -> None:
        code = _room_code(payload)
        self._host(sid, code)
        self._mutate(code, self.store.penalty, _player_id(payload), payload.get('delta', self.score_delta))

    def next_question(self, sid: str, payload: Dict[str, Any]) -> None:
        code = _room_code(payload)
        self._host(sid, code)
        self._mutate(code, self.store.next_question)

    def assign_team(self, sid: str, payload: Dict[str, Any]) -> None:
        code = _room_code(payload)
        self._host(sid, code)
        team = payload.get('team')
        if team is not None and not isinstance(team, str):
            raise InvalidInput('team must be a string or null')
        self._mutate(code, self.store.assign_team, _player_id(payload), team)

    # ---- helpers ----

    def _mutate(self, code: str, operation, *args) -> Room:
        # Publishing inside the guard keeps per-room delivery in transition order
        with self.store.guard(code):
            room = operation(code, *args)
            self.broadcast.publish(room)
        return room

    def _member(self, sid: str, code: str) -> Membership:
        self.store.get(code)
        return self.presence.require(sid, code)

    def _host(self, sid: str, code: str) -> Membership:
        room = self.store.get(code)
        membership = self.presence.require(sid, code)
        if membership.player_id != room.host_id:
            raise Forbidden('Only the host can do that')
        return membership

    def _leave(self, previous: Optional[Membership]) -> None:
        if previous is not None:
            self.presence.leave(previous, disconnected=False)


def _room_code(payload: Dict[str, Any]) -> str:
    raw = payload.get('roomCode')
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInput('roomCode is required')
    return raw.strip().upper()


def _player_id(payload: Dict[str, Any]) -> str:
    raw = payload.get('playerId')
    if not isinstance(raw, str) or not raw:
        raise InvalidInput('playerId is required')
    return raw
