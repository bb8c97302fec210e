"""
Pytest configuration and fixtures for score dashboard tests.
"""
import os
import sys
from datetime import date

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from dashboard.app import create_app
from dashboard.models import db, Tournament, User


# Rounds from the two-round example tournament (players 1..4)
ROUND_ONE = {
    'round': 1,
    'players': [1, 2, 3, 4],
    'games': [
        [25000, 20000, 15000, 10000],
        [30000, 25000, 20000, 15000],
    ],
}

ROUND_TWO = {
    'round': 2,
    'players': [1, 2, 3, 4],
    'games': [
        [20000, 30000, 25000, 15000],
    ],
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for testing."""
    with app.app_context():
        # Clear all tables before each test
        db.session.remove()

        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture
def sample_users(app, db_session):
    """Create four users for testing."""
    with app.app_context():
        users = []
        for i in range(4):
            user = User(account=f'player{i + 1}', nickname=f'Player {i + 1}')
            db.session.add(user)
            users.append(user)

        db.session.commit()

        for user in users:
            db.session.refresh(user)

        return users


@pytest.fixture
def sample_tournament(app, db_session, sample_users):
    """Create a riichi tournament for the sample users with no rounds played."""
    with app.app_context():
        tournament = Tournament(
            title='Spring Riichi Cup',
            category='riichi',
            date=date(2025, 3, 15),
            info={
                'players': [u.id for u in sample_users],
                'round_number': 5,
                'rounds': [],
            }
        )
        db.session.add(tournament)
        db.session.commit()

        # Refresh to get ID
        db.session.refresh(tournament)
        return tournament


@pytest.fixture
def played_tournament(app, db_session):
    """Create a tournament holding the two-round example, without user records."""
    with app.app_context():
        tournament = Tournament(
            title='Example Cup',
            category='qiaoma',
            date=date(2025, 1, 1),
            info={
                'players': [1, 2, 3, 4],
                'round_number': 5,
                'rounds': [ROUND_ONE, ROUND_TWO],
            }
        )
        db.session.add(tournament)
        db.session.commit()

        db.session.refresh(tournament)
        return tournament


@pytest.fixture
def registry(app):
    """The app's TournamentRegistry."""
    return app.registry
