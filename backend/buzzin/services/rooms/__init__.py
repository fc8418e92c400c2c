"""Room services: the authoritative store, its transitions, presence and fan-out.

Nothing in here knows about Socket.IO events or HTTP; transport code goes
through :class:`buzzin.commands.CommandRouter`.
"""

from .broadcast import BroadcastChannel
from .presence import Membership, PresenceTracker
from .store import RoomStore

__all__ = ['BroadcastChannel', 'Membership', 'PresenceTracker', 'RoomStore']
