import logging
import random
import string
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from buzzin.errors import InvalidInput, RoomNotFound
from buzzin.models import Room
from . import transitions

CODE_ALPHABET = string.ascii_uppercase + string.digits


class RoomStore:
    """Authoritative in-memory registry of live rooms.

    Every room has its own re-entrant lock; all transitions on a room run
    while holding it, so they are applied strictly one at a time in the
    order the lock is granted. Callers that need to do more work in the same
    critical section (broadcasting the result) wrap it in :meth:`guard`.
    """

    def __init__(
        self,
        code_length: int = 4,
        code_attempts: int = 50,
        max_name_length: int = 40,
        teams: Iterable[str] = ('tipsy', 'wobbly'),
        logger: Optional[logging.Logger] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.code_length = code_length
        self.code_attempts = code_attempts
        self.max_name_length = max_name_length
        self.teams = tuple(teams)
        self.logger = logger or logging.getLogger(__name__)
        self._rng = rng or random.SystemRandom()
        self._clock = clock
        self._registry_lock = threading.Lock()
        self._rooms: Dict[str, Room] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._touched: Dict[str, float] = {}

    # ---- registry ----

    def codes(self) -> List[str]:
        with self._registry_lock:
            return list(self._rooms)

    def get(self, code: str) -> Room:
        with self._registry_lock:
            room = self._rooms.get(code)
        if room is None:
            raise RoomNotFound(f'Room {code} not found')
        return room

    def exists(self, code: str) -> bool:
        with self._registry_lock:
            return code in self._rooms

    @contextmanager
    def guard(self, code: str) -> Iterator[Room]:
        """Hold the room's lock; yields the room as of acquiring it."""
        with self._registry_lock:
            lock = self._locks.get(code)
        if lock is None:
            raise RoomNotFound(f'Room {code} not found')
        with lock:
            with self._registry_lock:
                # The room may have been torn down (and its code reused) while we waited
                current = self._rooms.get(code) if self._locks.get(code) is lock else None
            if current is None:
                raise RoomNotFound(f'Room {code} not found')
            yield current

    def _generate_code(self) -> str:
        return ''.join(self._rng.choice(CODE_ALPHABET) for _ in range(self.code_length))

    # ---- transitions ----

    def create_room(self, host_id: str, host_name) -> Room:
        name = transitions.clean_name(host_name, 'Host', self.max_name_length)
        with self._registry_lock:
            for _ in range(self.code_attempts):
                code = self._generate_code()
                if code not in self._rooms:
                    break
            else:
                self.logger.warning(f"[create] no free room code after {self.code_attempts} attempts")
                raise InvalidInput('Could not allocate a room code, try again')
            room = transitions.new_room(code, host_id, name, self.teams)
            self._rooms[code] = room
            self._locks[code] = threading.RLock()
            self._touched[code] = self._clock()
        self.logger.info(f"[create] room={code} host={host_id} name={name!r}")
        return room

    def join_room(self, code: str, player_id: str, name) -> Room:
        name = transitions.clean_name(name, 'Player', self.max_name_length)
        room = self._apply(code, transitions.add_player, player_id, name)
        self.logger.info(f"[join] room={code} player={player_id} name={name!r} players={len(room.players)}")
        return room

    def buzz(self, code: str, player_id: str) -> Room:
        room = self._apply(code, transitions.buzz, player_id)
        self.logger.info(f"[buzz] room={code} player={player_id} position={len(room.buzz_queue)}")
        return room

    def clear_buzzers(self, code: str) -> Room:
        return self._apply(code, transitions.clear_buzzers)

    def lock_buzzers(self, code: str, locked: bool) -> Room:
        return self._apply(code, transitions.lock_buzzers, locked)

    def award(self, code: str, player_id: str, delta: int) -> Room:
        return self._score(code, player_id, abs(_check_delta(delta)))

    def penalty(self, code: str, player_id: str, delta: int) -> Room:
        return self._score(code, player_id, -abs(_check_delta(delta)))

    def _score(self, code: str, player_id: str, delta: int) -> Room:
        room = self._apply(code, transitions.apply_score, player_id, delta)
        player = room.players[player_id]
        self.logger.info(f"[score] room={code} player={player_id} delta={delta} score={player.score} team={player.team}")
        return room

    def next_question(self, code: str) -> Room:
        room = self._apply(code, transitions.next_question)
        self.logger.info(f"[next] room={code} show_scores={room.show_scores} queue={len(room.buzz_queue)}")
        return room

    def assign_team(self, code: str, player_id: str, team: Optional[str]) -> Room:
        return self._apply(code, transitions.assign_team, player_id, team)

    def remove_player(self, code: str, player_id: str) -> Optional[Room]:
        """Remove a player; removing the host destroys the room and returns None."""
        with self.guard(code) as room:
            if player_id == room.host_id:
                self.destroy_room(code)
                return None
            return self._apply(code, transitions.remove_player, player_id)

    def destroy_room(self, code: str) -> Room:
        with self.guard(code) as room:
            with self._registry_lock:
                self._rooms.pop(code, None)
                self._locks.pop(code, None)
                self._touched.pop(code, None)
        self.logger.info(f"[teardown] room={code} players={len(room.players)}")
        return room

    def idle_codes(self, timeout: float, is_live: Callable[[str], bool], now: Optional[float] = None) -> List[str]:
        """Codes untouched for ``timeout`` seconds that have no live connection."""
        now = self._clock() if now is None else now
        with self._registry_lock:
            stale = [code for code, touched in self._touched.items() if now - touched >= timeout]
        return [code for code in stale if not is_live(code)]

    def _apply(self, code: str, transition, *args) -> Room:
        with self.guard(code) as room:
            updated = transition(room, *args)
            with self._registry_lock:
                self._rooms[code] = updated
                self._touched[code] = self._clock()
            return updated


def _check_delta(delta) -> int:
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidInput('delta must be an integer')
    return delta
