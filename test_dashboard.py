from datetime import timedelta

from conftest import iso_in
from database import Appointment, AppointmentStatus, db, utcnow


def seed(client, admin_headers, donor, donor_headers, recipient_headers):
    for blood_type, quantity, status in [('A_POSITIVE', 3, 'AVAILABLE'), ('A_POSITIVE', 2, 'AVAILABLE'),
                                         ('O_NEGATIVE', 4, 'USED')]:
        client.post('/api/blood-inventory',
                    json={'bloodType': blood_type, 'quantity': quantity, 'expiryDate': iso_in(days=10),
                          'status': status},
                    headers=admin_headers)
    for status in ('COMPLETED', 'SCHEDULED', 'CANCELLED'):
        client.post('/api/donations',
                    json={'donorId': donor['id'], 'donationDate': iso_in(days=-1), 'status': status},
                    headers=admin_headers)
    client.post('/api/appointments', json={'appointmentDate': iso_in(days=5)}, headers=donor_headers)
    client.post('/api/blood-requests', json={'bloodType': 'A_POSITIVE'}, headers=recipient_headers)
    client.post('/api/blood-requests', json={'bloodType': 'O_NEGATIVE'}, headers=recipient_headers)


def test_dashboard_requires_admin(client, donor_headers):
    assert client.get('/api/admin/dashboard').status_code == 401
    assert client.get('/api/admin/dashboard', headers=donor_headers).status_code == 403


def test_totals_match_status_breakdowns(client, admin_headers, donor, donor_headers, recipient_headers):
    seed(client, admin_headers, donor, donor_headers, recipient_headers)

    stats = client.get('/api/admin/dashboard', headers=admin_headers).get_json()['stats']

    for section in ('bloodInventory', 'donations', 'appointments', 'requests'):
        assert stats[section]['total'] == sum(stats[section]['byStatus'].values())
    users = stats['users']
    assert users['total'] == users['admins'] + users['donors'] + users['recipients'] == 3

    assert stats['bloodInventory']['total'] == 3
    assert stats['donations']['byStatus'] == {'SCHEDULED': 1, 'COMPLETED': 1, 'CANCELLED': 1}
    assert stats['requests']['pending'] == 2
    assert stats['appointments']['scheduled'] == 1


def test_by_type_sums_available_units_only(client, admin_headers, donor, donor_headers, recipient_headers):
    seed(client, admin_headers, donor, donor_headers, recipient_headers)

    inventory = client.get('/api/admin/dashboard', headers=admin_headers).get_json()['stats']['bloodInventory']

    assert inventory['byType']['A_POSITIVE'] == 5
    assert inventory['byType']['O_NEGATIVE'] == 0
    assert len(inventory['byType']) == 8
    assert inventory['available'] == 2
    assert inventory['availableUnits'] == 5


def test_today_counts_scheduled_appointments_in_current_utc_day(app, client, admin_headers, donor):
    midnight = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    with app.app_context():
        db.session.add_all([
            Appointment(user_id=donor['id'], appointment_date=midnight + timedelta(seconds=1)),
            Appointment(user_id=donor['id'], appointment_date=midnight + timedelta(days=1, hours=1)),
            Appointment(user_id=donor['id'], appointment_date=midnight + timedelta(seconds=2),
                        status=AppointmentStatus.CANCELLED),
        ])
        db.session.commit()

    appointments = client.get('/api/admin/dashboard', headers=admin_headers).get_json()['stats']['appointments']

    assert appointments['today'] == 1
    assert appointments['total'] == 3
