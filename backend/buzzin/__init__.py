from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from buzzin.config import Config

socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or Config.CORS_ORIGINS

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room services live on the app, not in module globals
    from buzzin.commands import CommandRouter
    from buzzin.services.rooms import BroadcastChannel, PresenceTracker, RoomStore
    from buzzin.socketio_events import NAMESPACE, register_socketio_handlers

    cfg = flask_app.config
    store = RoomStore(
        code_length=int(cfg.get('ROOM_CODE_LENGTH', 4)),
        code_attempts=int(cfg.get('ROOM_CODE_ATTEMPTS', 50)),
        max_name_length=int(cfg.get('MAX_NAME_LENGTH', 40)),
        teams=cfg.get('TEAMS') or ('tipsy', 'wobbly'),
        logger=flask_app.logger,
    )
    broadcast = BroadcastChannel(socketio, namespace=NAMESPACE, logger=flask_app.logger)
    presence = PresenceTracker(store, broadcast, logger=flask_app.logger)
    router = CommandRouter(
        store, presence, broadcast,
        score_delta=int(cfg.get('SCORE_DELTA', 50)),
        logger=flask_app.logger,
    )
    flask_app.extensions['buzzin'] = router

    # Import and register blueprints here
    from buzzin.main import main
    flask_app.register_blueprint(main)

    from buzzin.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    register_socketio_handlers(router.commands)

    from buzzin.services.rooms.reaper import schedule_idle_reaper
    schedule_idle_reaper(flask_app, socketio, presence)

    return flask_app
