import time

from buzzboard import socketio
from buzzboard.errors import ResourceError


def _runtime(app):
    runtime = app.extensions['buzzboard']
    return runtime['machine'], runtime['broadcaster']


def _background_enabled(app) -> bool:
    return not app.config.get('TESTING') or app.config.get('ENABLE_SCHEDULER_IN_TESTS')


def schedule_answer_timeout(app, buzz_seq: int) -> None:
    """Release the floor if buzz ``buzz_seq`` is not judged in time.

    - No-ops when ANSWER_TIMEOUT_SEC is 0 or in TESTING mode
    - A later buzz or a judgment makes the pending timer a no-op
    """
    try:
        delay = int(app.config.get('ANSWER_TIMEOUT_SEC', 0))
    except (TypeError, ValueError):
        delay = 0
    if delay <= 0 or not _background_enabled(app):
        return

    machine, broadcaster = _runtime(app)
    app.logger.info(f"[timer-set] buzz={buzz_seq} duration={delay}s deadline={time.time() + delay}")

    def _worker(seq: int, wait: int):
        socketio.sleep(wait)
        with app.app_context():
            events = machine.expire_floor(seq, broadcaster=broadcaster)
            app.logger.info(f"[timer-fire] buzz={seq} released={bool(events)}")

    socketio.start_background_task(_worker, buzz_seq, delay)


def start_session_sweeper(app) -> None:
    """Periodically drop expired sessions. No-ops in TESTING mode."""
    if not _background_enabled(app):
        return
    machine, _ = _runtime(app)
    interval = int(app.config.get('SESSION_SWEEP_INTERVAL_SEC', 3600))

    def _worker():
        while True:
            socketio.sleep(interval)
            with app.app_context():
                machine.sweep_sessions(time.time())

    socketio.start_background_task(_worker)


def run_generation(app, sid) -> None:
    """Generate a replacement board for the host ``sid`` and apply it.

    The generator is called outside the machine lock so other connections keep
    being served. In TESTING mode the work runs inline.
    """
    machine, broadcaster = _runtime(app)

    def _worker(requested_by):
        with app.app_context():
            try:
                board = machine.generator.generate()
            except ResourceError as exc:
                machine.complete_generation(requested_by, error=exc.message, broadcaster=broadcaster)
            except Exception:
                app.logger.exception(f"[generate-crash] sid={requested_by}")
                machine.complete_generation(requested_by, error='Question generation failed', broadcaster=broadcaster)
            else:
                machine.complete_generation(requested_by, board=board, broadcaster=broadcaster)

    if app.config.get('TESTING'):
        _worker(sid)
    else:
        socketio.start_background_task(_worker, sid)
