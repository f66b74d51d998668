"""
Shared fixtures for the WellQuest test suite
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from services import ServiceRegistry  # noqa: E402
from services.user_service import build_user_profile  # noqa: E402
from tests.fakes import FakeFirestore  # noqa: E402

START_TIME = datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now=START_TIME):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def fake_db():
    """In-memory Firestore"""
    return FakeFirestore()


@pytest.fixture
def services(fake_db, clock):
    return ServiceRegistry(fake_db, clock)


@pytest.fixture
def make_user(fake_db, clock):
    """Store a profile document and return its id"""

    def _make_user(uid, display_name=None, **overrides):
        profile = build_user_profile(
            uid, f'{uid}@example.com', display_name or uid.title(), now=clock()
        )
        for key, value in overrides.items():
            if key == 'statistics':
                profile['statistics'].update(value)
            else:
                profile[key] = value
        fake_db.collection('users').document(uid).set(profile)
        return uid

    return _make_user


@pytest.fixture
def sample_user(make_user):
    return make_user('test-user-id', 'Test User')


@pytest.fixture
def app_client(fake_db, clock, mocker):
    """
    Flask test client wired to the in-memory database. Bearer tokens are
    accepted as-is and become the caller's uid; tokens starting with
    'admin' carry the admin claim.
    """
    import main

    def verify(token, *args, **kwargs):
        return {'uid': token, 'email': f'{token}@example.com', 'admin': token.startswith('admin')}

    mocker.patch('firebase_admin.auth.verify_id_token', side_effect=verify)
    main.init_services(fake_db, clock)
    main.app.config['TESTING'] = True
    with main.app.test_client() as client:
        yield client


def auth_header(uid):
    return {'Authorization': f'Bearer {uid}'}
