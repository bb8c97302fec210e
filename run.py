#!/usr/bin/env python3
"""
Entry point for the Score Dashboard API.

Usage:
    python run.py                    # Run the API server (default)
    python run.py serve              # Run the API server explicitly
    python run.py init-db            # Create database tables and exit

Environment Variables:
    FLASK_ENV: development, production or testing (default: development)
    PORT: Port to run on (default: 3000)
    DATABASE_URL: SQLAlchemy database URL (default: sqlite:///score_dashboard.db)
    LOG_LEVEL: Logging level (default: INFO, DEBUG in development)
"""
import os
import sys


def run_server():
    """Run the dashboard API server."""
    from dashboard.app import create_app

    app = create_app()
    port = int(os.getenv('PORT', 3000))
    debug = os.getenv('FLASK_ENV', 'development') == 'development'

    print(f"Starting Score Dashboard API on port {port}...")
    app.run(host='0.0.0.0', port=port, debug=debug)


def init_db():
    """Create all tables in the configured database."""
    from dashboard.app import create_app

    # create_app already runs create_all
    app = create_app()
    print(f"Database ready at {app.config['SQLALCHEMY_DATABASE_URI']}")


if __name__ == '__main__':
    mode = sys.argv[1] if len(sys.argv) > 1 else 'serve'

    if mode == 'serve':
        run_server()
    elif mode == 'init-db':
        init_db()
    else:
        print(f"Unknown mode: {mode}")
        print("Usage: python run.py [serve|init-db]")
        sys.exit(1)
