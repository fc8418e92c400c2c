def schedule_idle_reaper(app, socketio, presence) -> bool:
    """Start the background task that reclaims abandoned rooms.

    - No-ops in TESTING mode or when IDLE_ROOM_TIMEOUT_SEC is 0
    - Ensures a single reaper per app
    Returns True when a task was started.
    """
    if app.config.get('TESTING'):
        return False
    timeout = int(app.config.get('IDLE_ROOM_TIMEOUT_SEC', 0))
    if timeout <= 0:
        return False
    if app.extensions.get('buzzin_reaper'):
        app.logger.info("[reap-skip] reaper already running")
        return False
    app.extensions['buzzin_reaper'] = True

    interval = max(1, int(app.config.get('REAPER_INTERVAL_SEC', 60)))
    app.logger.info(f"[reap-set] timeout={timeout}s interval={interval}s")

    def _worker():
        while True:
            socketio.sleep(interval)
            with app.app_context():
                reaped = presence.reap_idle(timeout)
                if reaped:
                    app.logger.info(f"[reap] reclaimed rooms={','.join(reaped)}")

    socketio.start_background_task(_worker)
    return True
