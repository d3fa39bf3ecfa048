import os

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'migrations')
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    log_level = flask_app.config.get('LOG_LEVEL')
    if log_level:
        flask_app.logger.setLevel(log_level)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db, directory=MIGRATIONS_DIR)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Models must be imported for migrations to see them
    import quizroom.models  # noqa: F401

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room engine: one registry per app, timers run as Socket.IO background tasks
    from quizroom.services.rooms import CommandDispatcher, RoomRegistry, Scheduler
    from quizroom.services.rooms.scoring import ScoringRules
    from quizroom.services.identity import TokenVerifier
    from quizroom.socketio_events import NAMESPACE, SocketIOEmitter, register_socketio_handlers

    testing = flask_app.config.get('TESTING', False)
    scheduler = Scheduler(
        start_task=socketio.start_background_task,
        sleep=socketio.sleep,
        autostart=(not testing) or flask_app.config.get('ENABLE_SCHEDULER_IN_TESTS', False),
        heartbeat=int(flask_app.config.get('TIMER_HEARTBEAT_SEC', 0)),
    )
    registry = RoomRegistry(
        scheduler,
        rules=ScoringRules.from_config(flask_app.config),
        max_code_attempts=int(flask_app.config.get('ROOM_CODE_ATTEMPTS', 1000)),
    )
    flask_app.extensions['room_registry'] = registry
    flask_app.extensions['room_dispatcher'] = CommandDispatcher(registry, SocketIOEmitter(socketio, NAMESPACE))
    flask_app.extensions['identity_verifier'] = TokenVerifier(
        flask_app.config['SECRET_KEY'],
        max_age=int(flask_app.config.get('AUTH_TOKEN_MAX_AGE_SEC', 86400)),
    )

    # Import and register blueprints here
    from quizroom.main import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers on the shared socketio instance
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the chat history tables."""
        import quizroom.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('issue-token')
    @click.argument('uid')
    @click.argument('name', required=False)
    def issue_token_command(uid, name):
        """Prints a signed identity token for UID (local testing)."""
        print(flask_app.extensions['identity_verifier'].issue(uid, name))

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(issue_token_command)

    return flask_app
