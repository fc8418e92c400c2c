from flask import Blueprint, current_app, jsonify

from buzzin.errors import RoomNotFound
from buzzin.models import leaderboard

rooms = Blueprint('rooms', __name__)


def _snapshot(room_code: str) -> dict:
    store = current_app.extensions['buzzin'].store
    return store.get(room_code.strip().upper()).to_dict()


@rooms.errorhandler(RoomNotFound)
def _room_not_found(exc):
    return jsonify(exc.to_ack()), 404


@rooms.route('/<string:room_code>/state', methods=['GET'])
def get_room_state(room_code):
    return jsonify(_snapshot(room_code))


@rooms.route('/<string:room_code>/leaderboard', methods=['GET'])
def get_leaderboard(room_code):
    snapshot = _snapshot(room_code)
    return jsonify({
        'roomCode': snapshot['roomCode'],
        'players': leaderboard(snapshot),
        'teamScores': snapshot['teamScores'],
    })
