from werewolf import socketio


def start_session_sweeper(app) -> bool:
    """Start the background task that closes abandoned rooms.

    - No-ops in TESTING mode
    - No-ops when the idle timeout or the sweep interval is 0
    - Runs forever on a Socket.IO background task otherwise
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SWEEPER_IN_TESTS'):
        return False

    timeout = int(app.config.get('SESSION_IDLE_TIMEOUT_SEC', 0))
    interval = int(app.config.get('SESSION_SWEEP_INTERVAL_SEC', 0))
    if timeout <= 0 or interval <= 0:
        app.logger.info(f"[sweep-off] timeout={timeout}s interval={interval}s")
        return False

    controller = app.extensions['werewolf']

    def _worker():
        while True:
            socketio.sleep(interval)
            try:
                controller.expire_idle_sessions(timeout)
            except Exception:
                app.logger.exception('[sweep-fail] idle session sweep failed')

    app.logger.info(f"[sweep-set] timeout={timeout}s interval={interval}s")
    socketio.start_background_task(_worker)
    return True
