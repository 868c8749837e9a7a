from dataclasses import replace

from flask import current_app, request
from flask_socketio import emit

from buzzboard import socketio
from buzzboard.broadcast import NAMESPACE
from buzzboard.commands import (
    COMMANDS, BuzzIn, Disconnect, JoinAsContestant, RegenerateQuestionSet,
    parse_command,
)
from buzzboard.errors import ValidationError
from buzzboard.services.game.scheduler import run_generation, schedule_answer_timeout


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _runtime():
    runtime = current_app.extensions['buzzboard']
    return runtime['machine'], runtime['broadcaster']


def handle_connect(auth=None):
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(reason=None):
    _process('disconnect', Disconnect())


def _process(name, command):
    app = current_app._get_current_object()
    machine, broadcaster = _runtime()
    sid = _get_sid()
    try:
        events, buzz_seq = machine.dispatch_and_deliver(sid, command, broadcaster)
    except Exception:
        # A crashed transition is logged and treated as a no-op
        app.logger.exception(f"[handler-error] event={name} sid={sid}")
        return

    if isinstance(command, BuzzIn) and events:
        schedule_answer_timeout(app, buzz_seq)
    elif isinstance(command, RegenerateQuestionSet) and any(e.name == 'questions-generating' for e in events):
        run_generation(app, sid)


def _make_handler(name):
    def handler(data=None):
        try:
            command = parse_command(name, data)
        except ValidationError as exc:
            required = getattr(COMMANDS.get(name), 'required_role', None)
            machine, _ = _runtime()
            sid = _get_sid()
            if required and not machine.holds_role(sid, required):
                # gated actions from the wrong role get no reply, malformed or not
                current_app.logger.debug(f"[drop] sid={sid} action={name} reason=not {required}")
                return
            emit(exc.event, exc.payload())
            return
        if isinstance(command, JoinAsContestant):
            command = replace(command, address=request.remote_addr)
        _process(name, command)

    handler.__name__ = f"handle_{name.replace('-', '_')}"
    return handler


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'.

    Every inbound action in ``COMMANDS`` gets a handler that parses the
    payload and funnels it into the game machine.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    for name in COMMANDS:
        if name == 'disconnect':
            continue
        socketio.on_event(name, _make_handler(name), namespace=NAMESPACE)
