from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the quizroom server!'})


@main.route('/health')
def health():
    registry = current_app.extensions['room_registry']
    return jsonify({'status': 'ok', 'rooms': len(registry)})


@main.route('/api/rooms/<string:room_code>', methods=['GET'])
def get_room(room_code):
    """Public summary of a live room, so clients can check a code before joining."""
    room = current_app.extensions['room_registry'].get(room_code.strip())
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    with room.lock:
        return jsonify(room.summary())
