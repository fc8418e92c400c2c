from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    score: int = 0
    team: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'team': self.team,
        }


@dataclass(frozen=True)
class Room:
    """One game session. Never mutated in place; transitions build a new Room."""
    code: str
    host_id: str
    players: Dict[str, Player] = field(default_factory=dict)
    buzz_queue: Tuple[str, ...] = ()
    locked: bool = False
    show_scores: bool = False
    team_scores: Dict[str, int] = field(default_factory=dict)

    @property
    def host(self) -> Optional[Player]:
        return self.players.get(self.host_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'roomCode': self.code,
            'hostId': self.host_id,
            'locked': self.locked,
            'showScores': self.show_scores,
            'buzzQueue': list(self.buzz_queue),
            'teamScores': dict(self.team_scores),
            # Join order; clients sort and look players up by id themselves
            'players': [p.to_dict() for p in self.players.values()],
        }


def queue_head(snapshot: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Id of the player on the clock in a ``room_state`` snapshot, if any."""
    if not snapshot:
        return None
    queue = snapshot.get('buzzQueue') or []
    return queue[0] if queue else None


def leaderboard(snapshot: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Players of a snapshot sorted by score, highest first.

    Ties keep join order (``sorted`` is stable and snapshots keep insertion order).
    """
    return sorted(snapshot.get('players') or [], key=lambda p: -(p.get('score') or 0))
