from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:8081",
    "http://127.0.0.1:8081",
    "http://localhost:19006",
    "http://127.0.0.1:19006",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

DEMO_USERS = ['demo-alice', 'demo-bob', 'demo-cara']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from palindrome.main import main
    flask_app.register_blueprint(main)

    from palindrome.api.matches import matches
    flask_app.register_blueprint(matches, url_prefix='/api')

    from palindrome.api.social import social
    flask_app.register_blueprint(social, url_prefix='/api')

    from palindrome.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from palindrome.models import Friendship
        from palindrome.schemas import FriendStatus
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Demo users are mutual friends so challenges work out of the box
            for i, user_id in enumerate(DEMO_USERS):
                for friend_id in DEMO_USERS[i + 1:]:
                    db.session.add(Friendship(user_id=user_id, friend_id=friend_id,
                                              status=FriendStatus.ACCEPTED.value))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
