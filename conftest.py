from datetime import datetime, timedelta, timezone

import pytest
from cachelib.file import FileSystemCache
from werkzeug.security import generate_password_hash

from app import create_app
from auth import issue_token
from config import TestingConfig
from database import Role, User, db

PASSWORD = 'password123'


@pytest.fixture
def app(tmp_path):
    app = create_app(TestingConfig, test_config={
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'SESSION_CACHELIB': FileSystemCache(str(tmp_path / 'sessions'), threshold=500),
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def create_user(app):
    counter = {'n': 0}

    def _create(role=Role.DONOR, email=None, name='Test User', password=PASSWORD):
        counter['n'] += 1
        email = email or f"{role.value.lower()}{counter['n']}@example.com"
        with app.app_context():
            user = User(name=name, email=email, password=generate_password_hash(password), role=role)
            db.session.add(user)
            db.session.commit()
            return {'id': user.id, 'email': email, 'role': role}

    return _create


@pytest.fixture
def headers_for(app):
    """Bearer headers for a user, without touching the test client's cookies."""
    def _headers(user):
        with app.test_request_context():
            token = issue_token(db.session.get(User, user['id']))
        return {'Authorization': f'Bearer {token}'}

    return _headers


@pytest.fixture
def admin(create_user):
    return create_user(Role.ADMIN, name='Admin User')


@pytest.fixture
def donor(create_user):
    return create_user(Role.DONOR, name='Dana Donor')


@pytest.fixture
def recipient(create_user):
    return create_user(Role.RECIPIENT, name='Rory Recipient')


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)


@pytest.fixture
def donor_headers(donor, headers_for):
    return headers_for(donor)


@pytest.fixture
def recipient_headers(recipient, headers_for):
    return headers_for(recipient)


def iso_in(days=0, hours=0):
    return (datetime.now(timezone.utc) + timedelta(days=days, hours=hours)).isoformat()
