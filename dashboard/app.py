import logging
import os
import time
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .config import config
from .errors import register_error_handlers
from .models import db
from .tournament_registry import TournamentRegistry
from .user_registry import UserRegistry

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """Application factory for the dashboard service."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )

    # Initialize extensions
    db.init_app(app)

    # Initialize services
    users = UserRegistry()
    registry = TournamentRegistry(users)

    # Create tables
    with app.app_context():
        db.create_all()

    # Store services on app for access in routes
    app.users = users
    app.registry = registry
    app.start_time = time.monotonic()

    register_error_handlers(app)
    register_routes(app)

    from .routes import tournaments, users as user_routes
    app.register_blueprint(tournaments.bp)
    app.register_blueprint(user_routes.bp)

    return app


def register_routes(app: Flask):
    """Register service info routes and request logging."""

    @app.before_request
    def log_request():
        logger.info(f"{request.method} {request.path}")

    @app.route('/')
    def index():
        return jsonify({
            'message': 'Score Dashboard API Server',
            'version': app.config['API_VERSION'],
            'timestamp': datetime.now(timezone.utc).isoformat(),
        })

    @app.route('/api/health')
    def health_check():
        """Health check endpoint."""
        try:
            db.session.execute(db.text('SELECT 1'))
            db_ok = True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            db_ok = False

        code = 200 if db_ok else 503
        return jsonify({
            'status': 'OK' if db_ok else 'unhealthy',
            'database': 'connected' if db_ok else 'disconnected',
            'uptime': round(time.monotonic() - app.start_time, 3),
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }), code
