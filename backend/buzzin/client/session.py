import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import socketio
from socketio.exceptions import TimeoutError as SocketIOTimeoutError

from buzzin.errors import error_for_kind
from .cues import Cue, CueMachine, CueTimer

logger = logging.getLogger(__name__)

# Read from the client's own environment, independent of the server Config
SERVER_URL = (os.environ.get('BUZZIN_SERVER_URL') or 'http://localhost:5175').rstrip('/')
SCORE_DELTA = int(os.environ.get('SCORE_DELTA', '50'))
ESCALATION_DELAY_SEC = float(os.environ.get('ESCALATION_DELAY_SEC', '15'))


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_ack(cls, ack: Any) -> 'CommandResult':
        if not isinstance(ack, dict):
            return cls(ok=False, error='InvalidAck', message=f'Unexpected acknowledgement {ack!r}')
        data = {k: v for k, v in ack.items() if k not in ('ok', 'error', 'message')}
        return cls(ok=bool(ack.get('ok')), data=data, error=ack.get('error'), message=ack.get('message'))

    def raise_for_error(self) -> 'CommandResult':
        if not self.ok:
            raise error_for_kind(self.error, self.message)
        return self


class BuzzClient:
    """One participant's connection to a Buzz-In server.

    The Socket.IO client is handed in rather than created here, so several
    sessions (or a fake in tests) can coexist in one process. Every command
    blocks until the server acknowledges it and returns a CommandResult.
    """

    def __init__(self, sio, server_url: Optional[str] = None, cues: Optional[CueTimer] = None,
                 timeout: float = 5.0):
        self.sio = sio
        self.server_url = (server_url or SERVER_URL).rstrip('/')
        self.cues = cues
        self.timeout = timeout
        self.room: Optional[Dict[str, Any]] = None
        self.connected = False
        self.closed_reason: Optional[str] = None
        self._listeners: list = []

        sio.on('connect', self._on_connect)
        sio.on('disconnect', self._on_disconnect)
        sio.on('room_state', self._on_room_state)
        sio.on('room_closed', self._on_room_closed)

    @classmethod
    def create(cls, server_url: Optional[str] = None, play: Optional[Callable[[Cue], None]] = None,
               escalation_delay: float = ESCALATION_DELAY_SEC, **kwargs) -> 'BuzzClient':
        sio = socketio.Client(reconnection=True)
        cues = CueTimer(CueMachine(delay=escalation_delay), play) if play else None
        return cls(sio, server_url=server_url, cues=cues, **kwargs)

    def connect(self) -> None:
        self.sio.connect(self.server_url, socketio_path='socket.io', transports=['websocket', 'polling'])

    def disconnect(self) -> None:
        self.sio.disconnect()

    @property
    def sid(self) -> Optional[str]:
        return self.sio.get_sid()

    @property
    def is_host(self) -> bool:
        return bool(self.room) and self.room.get('hostId') == self.sid

    def on_room_state(self, listener: Callable[[Optional[Dict[str, Any]]], None]) -> None:
        self._listeners.append(listener)

    # ---- commands ----

    def create_room(self, host_name: str = '') -> CommandResult:
        return self._call('create_room', {'hostName': host_name})

    def join_room(self, room_code: str, name: str = '') -> CommandResult:
        return self._call('join_room', {'roomCode': room_code.strip().upper(), 'name': name})

    def buzz(self) -> CommandResult:
        return self._room_call('buzz')

    def clear_buzzers(self) -> CommandResult:
        return self._room_call('clear_buzzers')

    def lock_buzzers(self, locked: bool) -> CommandResult:
        return self._room_call('lock_buzzers', locked=locked)

    def award(self, player_id: str, delta: int = SCORE_DELTA) -> CommandResult:
        return self._room_call('award', playerId=player_id, delta=delta)

    def penalty(self, player_id: str, delta: int = -SCORE_DELTA) -> CommandResult:
        return self._room_call('penalty', playerId=player_id, delta=delta)

    def next_question(self) -> CommandResult:
        return self._room_call('next_question')

    def assign_team(self, player_id: str, team: Optional[str]) -> CommandResult:
        return self._room_call('assign_team', playerId=player_id, team=team)

    def _room_call(self, event: str, **payload) -> CommandResult:
        if not self.room:
            return CommandResult(ok=False, error='RoomNotFound', message='Not in a room')
        payload['roomCode'] = self.room['roomCode']
        return self._call(event, payload)

    def _call(self, event: str, payload: Dict[str, Any]) -> CommandResult:
        try:
            ack = self.sio.call(event, payload, timeout=self.timeout)
        except SocketIOTimeoutError:
            logger.warning(f"[timeout] command={event} after {self.timeout}s")
            return CommandResult(ok=False, error='Timeout', message=f'No reply to {event}')
        result = CommandResult.from_ack(ack)
        if not result.ok:
            logger.info(f"[reject] command={event} error={result.error}")
        return result

    # ---- server pushes ----

    def _on_connect(self):
        self.connected = True
        if self.cues:
            self.cues.machine.viewer_id = self.sid

    def _on_disconnect(self, reason=None):
        # No identity recovery: a reconnect is a new participant
        self.connected = False
        self._set_room(None)

    def _on_room_state(self, snapshot):
        self.closed_reason = None
        self._set_room(snapshot)

    def _on_room_closed(self, payload):
        if self.room and payload and payload.get('roomCode') != self.room.get('roomCode'):
            return
        self.closed_reason = (payload or {}).get('reason')
        self._set_room(None)

    def _set_room(self, snapshot) -> None:
        self.room = snapshot
        if self.cues:
            self.cues.observe(snapshot)
        for listener in self._listeners:
            listener(snapshot)


__all__ = ['BuzzClient', 'CommandResult']
