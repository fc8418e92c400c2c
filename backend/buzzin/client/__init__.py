"""Client-side core: a session against the server plus local host cues."""

from .cues import ARMED, FIRED, IDLE, Cue, CueMachine, CueTimer
from .session import BuzzClient, CommandResult

__all__ = ['ARMED', 'FIRED', 'IDLE', 'BuzzClient', 'CommandResult', 'Cue', 'CueMachine', 'CueTimer']
