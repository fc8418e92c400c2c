"""Host attention cues, driven purely by successive ``room_state`` snapshots.

Two cues exist:

* ``buzz`` -- played as soon as the queue grows.
* ``ding`` -- played when a new player reaches the head of the queue and is
  still waiting after the escalation delay (15s by default) with the
  scoreboard not revealed.

The machine is local to one client. Nothing here talks to the server: a
cancelled timer is just forgotten.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional

from buzzin.models import queue_head

IDLE = 'idle'
ARMED = 'armed'
FIRED = 'fired'

Snapshot = Optional[Mapping[str, Any]]


@dataclass(frozen=True)
class Cue:
    kind: str
    player_id: Optional[str] = None


class CueMachine:
    """States: idle -> armed(expiry, head) -> fired, back to idle/armed on new snapshots."""

    def __init__(self, viewer_id: Optional[str] = None, delay: float = 15.0,
                 clock: Callable[[], float] = time.monotonic):
        self.viewer_id = viewer_id
        self.delay = delay
        self.clock = clock
        self.state = IDLE
        self.expiry: Optional[float] = None
        self.armed_head: Optional[str] = None
        self.latest: Snapshot = None

    def is_host(self, snapshot: Snapshot) -> bool:
        return bool(snapshot) and self.viewer_id is not None and snapshot.get('hostId') == self.viewer_id

    def observe(self, snapshot: Snapshot, now: Optional[float] = None) -> List[Cue]:
        now = self.clock() if now is None else now
        previous, self.latest = self.latest, snapshot
        cues: List[Cue] = []
        host = self.is_host(snapshot)

        if host and previous is not None:
            before = len(previous.get('buzzQueue') or [])
            queue = snapshot.get('buzzQueue') or []
            if len(queue) > before:
                cues.append(Cue('buzz', queue[-1]))

        head = queue_head(snapshot)
        if snapshot is None or snapshot.get('showScores') or not head:
            self.cancel()
        if host and head and head != queue_head(previous):
            self.arm(head, now)
        return cues

    def arm(self, head: str, now: float) -> None:
        self.state = ARMED
        self.armed_head = head
        self.expiry = now + self.delay

    def cancel(self) -> None:
        self.state = IDLE
        self.armed_head = None
        self.expiry = None

    def poll(self, now: Optional[float] = None) -> Optional[Cue]:
        """Fire the escalation if its deadline has passed."""
        now = self.clock() if now is None else now
        if self.state != ARMED or self.expiry is None or now < self.expiry:
            return None
        self.state = FIRED
        self.expiry = None
        latest = self.latest
        head = queue_head(latest)
        if self.is_host(latest) and head and not latest.get('showScores'):
            return Cue('ding', head)
        return None


class CueTimer:
    """Runs a CueMachine against the wall clock with ``threading.Timer``."""

    def __init__(self, machine: CueMachine, play: Callable[[Cue], None], timer_factory=threading.Timer):
        self.machine = machine
        self.play = play
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._scheduled_for: Optional[float] = None

    def observe(self, snapshot: Snapshot) -> None:
        with self._lock:
            cues = self.machine.observe(snapshot)
            self._reschedule()
        for cue in cues:
            self.play(cue)

    def cancel(self) -> None:
        with self._lock:
            self.machine.cancel()
            self._reschedule()

    def _reschedule(self) -> None:
        expiry = self.machine.expiry if self.machine.state == ARMED else None
        if expiry == self._scheduled_for:
            return
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._scheduled_for = expiry
        if expiry is None:
            return
        self._timer = self._timer_factory(max(0.0, expiry - self.machine.clock()), self._fire, args=(expiry,))
        self._timer.daemon = True
        self._timer.start()

    def _fire(self, expiry: float) -> None:
        with self._lock:
            if expiry != self._scheduled_for:
                # Superseded by a re-arm or cancel after this timer started
                return
            cue = self.machine.poll(now=max(expiry, self.machine.clock()))
            self._timer = None
            self._scheduled_for = None
        if cue is not None:
            self.play(cue)
