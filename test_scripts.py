from werkzeug.security import check_password_hash

from database import Role, User
from scripts.seed_admin import seed_admin


def test_seed_admin_creates_account_once(app):
    with app.app_context():
        admin, created = seed_admin('root@example.com', 'admin12345', 'Root')
        again, created_again = seed_admin('root@example.com', 'something-else', 'Root')

        assert created is True
        assert created_again is False
        assert again.id == admin.id
        assert admin.role == Role.ADMIN
        assert check_password_hash(admin.password, 'admin12345')
        assert User.query.filter_by(email='root@example.com').count() == 1


def test_seeded_admin_can_sign_in(app, client):
    with app.app_context():
        seed_admin('root@example.com', 'admin12345', 'Root')

    resp = client.post('/api/auth/login', json={'email': 'root@example.com', 'password': 'admin12345'})

    assert resp.status_code == 200
    assert resp.get_json()['user']['role'] == 'ADMIN'
