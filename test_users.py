from conftest import iso_in
from database import Role


def test_user_views_own_profile(client, donor, donor_headers):
    resp = client.get(f"/api/users/{donor['id']}", headers=donor_headers)

    assert resp.status_code == 200
    user = resp.get_json()['user']
    assert user['email'] == donor['email']
    assert 'password' not in user
    assert 'donations' not in user


def test_user_cannot_view_someone_else(client, donor_headers, recipient):
    assert client.get(f"/api/users/{recipient['id']}", headers=donor_headers).status_code == 403


def test_admin_view_includes_recent_activity(client, admin_headers, donor, donor_headers):
    client.post('/api/appointments', json={'appointmentDate': iso_in(days=2)}, headers=donor_headers)

    user = client.get(f"/api/users/{donor['id']}", headers=admin_headers).get_json()['user']

    assert len(user['appointments']) == 1
    assert user['donations'] == []
    assert user['bloodRequests'] == []


def test_admin_lists_users(client, admin_headers, donor, recipient, donor_headers):
    assert len(client.get('/api/users', headers=admin_headers).get_json()['users']) == 3
    assert client.get('/api/users', headers=donor_headers).status_code == 403


def test_user_renames_self(client, donor, donor_headers):
    resp = client.patch(f"/api/users/{donor['id']}", json={'name': 'Dana D.'}, headers=donor_headers)

    assert resp.status_code == 200
    assert resp.get_json()['user']['name'] == 'Dana D.'


def test_user_cannot_change_own_role(client, donor, donor_headers):
    resp = client.patch(f"/api/users/{donor['id']}", json={'role': 'ADMIN'}, headers=donor_headers)

    assert resp.status_code == 403


def test_admin_changes_role(client, admin_headers, donor):
    resp = client.patch(f"/api/users/{donor['id']}", json={'role': 'RECIPIENT'}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.get_json()['user']['role'] == 'RECIPIENT'


def test_email_change_to_taken_address_conflicts(client, donor, donor_headers, recipient):
    resp = client.patch(f"/api/users/{donor['id']}", json={'email': recipient['email']},
                        headers=donor_headers)

    assert resp.status_code == 409


def test_password_change_is_hashed_and_usable(client, donor, donor_headers):
    client.patch(f"/api/users/{donor['id']}", json={'password': 'brand-new-pass'}, headers=donor_headers)

    resp = client.post('/api/auth/login', json={'email': donor['email'], 'password': 'brand-new-pass'})

    assert resp.status_code == 200


def test_admin_cannot_delete_self(client, admin, admin_headers):
    assert client.delete(f"/api/users/{admin['id']}", headers=admin_headers).status_code == 400


def test_only_admin_deletes_users(client, donor, recipient_headers):
    assert client.delete(f"/api/users/{donor['id']}", headers=recipient_headers).status_code == 403


def test_admin_deletes_user(client, admin_headers, create_user):
    user = create_user(Role.RECIPIENT)

    assert client.delete(f"/api/users/{user['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/users/{user['id']}", headers=admin_headers).status_code == 404


def test_user_with_records_cannot_be_deleted(client, admin_headers, donor, donor_headers):
    client.post('/api/appointments', json={'appointmentDate': iso_in(days=2)}, headers=donor_headers)

    assert client.delete(f"/api/users/{donor['id']}", headers=admin_headers).status_code == 409


def test_deleted_users_token_stops_working(client, admin_headers, create_user, headers_for):
    user = create_user(Role.RECIPIENT)
    headers = headers_for(user)
    client.delete(f"/api/users/{user['id']}", headers=admin_headers)

    assert client.get('/api/blood-requests', headers=headers).status_code == 401
