from conftest import iso_in


def book(client, headers, when=None, notes='first visit'):
    return client.post('/api/appointments', json={'appointmentDate': when or iso_in(days=3), 'notes': notes},
                       headers=headers)


def test_donor_books_future_appointment(client, donor, donor_headers):
    resp = book(client, donor_headers)

    assert resp.status_code == 201
    appointment = resp.get_json()['appointment']
    assert appointment['status'] == 'SCHEDULED'
    assert appointment['userId'] == donor['id']


def test_booking_in_the_past_is_rejected(client, donor_headers):
    resp = book(client, donor_headers, when=iso_in(days=-1))

    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Appointment date must be in the future'


def test_recipients_cannot_book(client, recipient_headers):
    assert book(client, recipient_headers).status_code == 403


def test_booking_requires_a_date(client, donor_headers):
    resp = client.post('/api/appointments', json={'notes': 'whenever'}, headers=donor_headers)

    assert resp.status_code == 400
    assert resp.get_json()['error'][0]['field'] == 'appointmentDate'


def test_owner_cannot_mark_completed(client, donor_headers):
    appointment_id = book(client, donor_headers).get_json()['appointment']['id']

    resp = client.patch(f'/api/appointments/{appointment_id}', json={'status': 'COMPLETED'},
                        headers=donor_headers)

    assert resp.status_code == 403


def test_admin_marks_completed(client, donor_headers, admin_headers):
    appointment_id = book(client, donor_headers).get_json()['appointment']['id']

    resp = client.patch(f'/api/appointments/{appointment_id}', json={'status': 'COMPLETED'},
                        headers=admin_headers)

    assert resp.status_code == 200
    assert resp.get_json()['appointment']['status'] == 'COMPLETED'


def test_owner_edits_notes_and_cancels(client, donor_headers):
    appointment_id = book(client, donor_headers).get_json()['appointment']['id']

    resp = client.patch(f'/api/appointments/{appointment_id}',
                        json={'status': 'CANCELLED', 'notes': 'travelling'}, headers=donor_headers)

    assert resp.status_code == 200
    appointment = resp.get_json()['appointment']
    assert appointment['status'] == 'CANCELLED'
    assert appointment['notes'] == 'travelling'


def test_rescheduling_into_the_past_is_rejected_unless_cancelling(client, donor_headers):
    appointment_id = book(client, donor_headers).get_json()['appointment']['id']
    past = iso_in(days=-2)

    rejected = client.patch(f'/api/appointments/{appointment_id}', json={'appointmentDate': past},
                            headers=donor_headers)
    cancelled = client.patch(f'/api/appointments/{appointment_id}',
                             json={'appointmentDate': past, 'status': 'CANCELLED'}, headers=donor_headers)

    assert rejected.status_code == 400
    assert cancelled.status_code == 200


def test_other_users_cannot_view_update_or_delete(client, donor_headers, create_user, headers_for):
    appointment_id = book(client, donor_headers).get_json()['appointment']['id']
    stranger = headers_for(create_user())

    assert client.get(f'/api/appointments/{appointment_id}', headers=stranger).status_code == 403
    assert client.patch(f'/api/appointments/{appointment_id}', json={'notes': 'x'},
                        headers=stranger).status_code == 403
    assert client.delete(f'/api/appointments/{appointment_id}', headers=stranger).status_code == 403


def test_owner_deletes_appointment(client, donor_headers):
    appointment_id = book(client, donor_headers).get_json()['appointment']['id']

    assert client.delete(f'/api/appointments/{appointment_id}', headers=donor_headers).status_code == 200
    assert client.get(f'/api/appointments/{appointment_id}', headers=donor_headers).status_code == 404


def test_listing_is_scoped_to_owner_unless_admin(client, donor_headers, admin_headers, create_user,
                                                 headers_for):
    book(client, donor_headers)
    book(client, headers_for(create_user()))

    assert len(client.get('/api/appointments', headers=donor_headers).get_json()['appointments']) == 1
    everything = client.get('/api/appointments', headers=admin_headers).get_json()['appointments']
    assert len(everything) == 2
    assert all(a['user'] for a in everything)
