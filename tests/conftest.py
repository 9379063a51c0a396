"""
Shared fixtures: an isolated SQLite database per test and a Flask test client.
"""

import pytest

from app import create_app


@pytest.fixture
def app(tmp_path, monkeypatch):
    """App bound to a temporary database file, CSRF disabled for JSON posts."""
    db_path = str(tmp_path / 'fertilizer_test.db')
    monkeypatch.setenv('FERTILIZER_DB_PATH', db_path)

    app = create_app({
        'TESTING': True,
        'DATABASE': db_path,
        'SECRET_KEY': 'dev-key-for-testing',
        'WTF_CSRF_ENABLED': False,
    })
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def channel(app):
    return app.extensions['change_channel']


@pytest.fixture
def phase_with_blocks(app):
    """Phase "P1" with blocks 10, 2, A and 1 (inserted out of display order)."""
    from database import create_phase, create_block

    phase_id = create_phase('P1', area=120.5, trees=16000)
    block_ids = {label: create_block(phase_id, label) for label in ['10', '2', 'A', '1']}
    return phase_id, block_ids
