from quizroom import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    try:
        socketio.run(app, debug=True)
    finally:
        # Tell connected players their rooms are gone and stop pending timers
        app.extensions['room_dispatcher'].shutdown()
