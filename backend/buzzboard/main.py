from flask import Blueprint, current_app, jsonify, request

from buzzboard.errors import AuthError

main = Blueprint('main', __name__)


def _machine():
    return current_app.extensions['buzzboard']['machine']


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Buzzboard game server!'})


@main.route('/health')
def health():
    machine = _machine()
    return jsonify({
        'status': 'ok',
        'sessions': len(machine.sessions),
        'activeSession': machine.state.session_id,
        'aiEnabled': machine.ai_enabled,
    })


@main.route('/api/sessions', methods=['POST'])
def create_session():
    data = request.get_json(silent=True) or {}
    try:
        session_id = _machine().create_session(data.get('hostPassword'))
    except AuthError as exc:
        return jsonify({'error': exc.message}), 401
    return jsonify({'sessionId': session_id}), 201


@main.route('/api/sessions/<string:session_id>', methods=['GET'])
def get_session(session_id):
    machine = _machine()
    session = machine.sessions.lookup(session_id.upper())
    if not session:
        return jsonify({'error': 'Session not found'}), 404
    payload = session.to_dict()
    payload['active'] = machine.state.session_id == session.id
    return jsonify(payload)
