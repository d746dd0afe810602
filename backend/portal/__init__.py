from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from portal.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Import and register blueprints here
    from portal.main import main
    flask_app.register_blueprint(main)

    from portal.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    from portal.api.profile import profile
    flask_app.register_blueprint(profile, url_prefix='/api/profile')

    from portal.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    from portal.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # Flask-Login user loader; session ids are account uids
    from portal.models import Credential

    @login_manager.user_loader
    def load_user(user_id):
        return Credential.query.filter_by(uid=user_id).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from portal.services.accounts import service
        from portal.services.accounts.ban import now_iso
        from portal.store import RecordStore
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            store = RecordStore()
            seed = [
                ('admin@redfred.test', 'admin', True, {'score': 1520.5, 'height': 48, 'time': 212.4}),
                ('fred@redfred.test', 'fred', False, {'score': 980.0, 'height': 31, 'time': 150.75}),
                ('ginette@redfred.test', 'ginette', False, {'score': 1210.25, 'height': 40, 'time': 188.0}),
            ]
            for email, username, is_admin, score in seed:
                credential = Credential(email=email)
                credential.set_password('password')
                db.session.add(credential)
                db.session.commit()
                service.record_login(store, credential.uid, email, username=username, now=now_iso())
                if is_admin:
                    store.update_fields(f'users/{credential.uid}', {'admin': True})
                store.write_record(f'scores/{credential.uid}', score)

            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
