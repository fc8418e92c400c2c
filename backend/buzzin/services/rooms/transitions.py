"""Pure room transitions.

Each function takes a Room and returns a new Room, or raises a
CommandError without touching its input.
"""

from dataclasses import replace
from typing import Iterable, Optional

from buzzin.errors import (
    AlreadyQueued,
    BuzzersLocked,
    InvalidInput,
    InvalidTeam,
    PlayerNotFound,
    ShowingScores,
)
from buzzin.models import Player, Room


def clean_name(raw, default: str, max_length: int) -> str:
    if raw is None:
        return default
    if not isinstance(raw, str):
        raise InvalidInput('Name must be a string')
    name = raw.strip()
    if not name:
        return default
    if len(name) > max_length:
        raise InvalidInput(f'Name must be at most {max_length} characters')
    return name


def new_room(code: str, host_id: str, host_name: str, teams: Iterable[str]) -> Room:
    host = Player(id=host_id, name=host_name)
    return Room(
        code=code,
        host_id=host_id,
        players={host_id: host},
        team_scores={team: 0 for team in teams},
    )


def add_player(room: Room, player_id: str, name: str) -> Room:
    # Locked buzzers don't gate joining
    if player_id in room.players:
        return room
    return replace(room, players={**room.players, player_id: Player(id=player_id, name=name)})


def buzz(room: Room, player_id: str) -> Room:
    if player_id not in room.players:
        raise PlayerNotFound(f'Player {player_id} is not in room {room.code}')
    if player_id in room.buzz_queue:
        raise AlreadyQueued()
    if room.locked:
        raise BuzzersLocked('Buzzers are locked')
    if room.show_scores:
        raise ShowingScores('Scores are being shown')
    return replace(room, buzz_queue=room.buzz_queue + (player_id,))


def clear_buzzers(room: Room) -> Room:
    return replace(room, buzz_queue=())


def lock_buzzers(room: Room, locked: bool) -> Room:
    return replace(room, locked=bool(locked))


def apply_score(room: Room, player_id: str, delta: int) -> Room:
    player = _require_player(room, player_id)
    players = {**room.players, player_id: replace(player, score=player.score + delta)}
    team_scores = room.team_scores
    if player.team is not None:
        team_scores = {**team_scores, player.team: team_scores.get(player.team, 0) + delta}
    return replace(room, players=players, team_scores=team_scores)


def next_question(room: Room) -> Room:
    """Reveal the scoreboard, or if it's already up, hide it and clear the queue."""
    if not room.show_scores:
        return replace(room, show_scores=True)
    return replace(room, show_scores=False, buzz_queue=())


def assign_team(room: Room, player_id: str, team: Optional[str]) -> Room:
    player = _require_player(room, player_id)
    if team is not None and team not in room.team_scores:
        raise InvalidTeam(f'Unknown team {team!r}')
    return replace(room, players={**room.players, player_id: replace(player, team=team)})


def remove_player(room: Room, player_id: str) -> Room:
    _require_player(room, player_id)
    players = {pid: p for pid, p in room.players.items() if pid != player_id}
    queue = tuple(pid for pid in room.buzz_queue if pid != player_id)
    return replace(room, players=players, buzz_queue=queue)


def _require_player(room: Room, player_id: str) -> Player:
    player = room.players.get(player_id)
    if player is None:
        raise PlayerNotFound(f'Player {player_id} is not in room {room.code}')
    return player
