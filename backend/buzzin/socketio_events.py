from flask import current_app, request
from flask_socketio import emit

from buzzin import socketio

NAMESPACE = '/'


def _router():
    return current_app.extensions['buzzin']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    emit('connected', {'sid': _get_sid()})


def handle_disconnect(reason=None):
    # Host leaving ends the room; anyone else just drops out of it
    current_app.logger.info(f"[disconnect] sid={_get_sid()} reason={reason}")
    _router().disconnect(_get_sid())


def _command_handler(command: str):
    def handler(data=None):
        # The return value becomes the client's ack callback payload
        return _router().dispatch(_get_sid(), command, data)
    handler.__name__ = f"handle_{command}"
    return handler


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(commands) -> None:
    """Register Socket.IO event handlers on the default namespace.

    Every command the router knows is exposed as an event of the same name.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
    for command in commands:
        socketio.on_event(command, _command_handler(command), namespace=NAMESPACE)
