import pytest
from fastapi.testclient import TestClient

from backend.auth.jwt_handler import create_access_token
from backend.database import get_db
from backend.main import app
from backend.notifications import dispatcher
from backend.routes import appointment_routes


@pytest.fixture
def client(session_factory, catalog):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def sent_confirmations(monkeypatch: pytest.MonkeyPatch, session_factory):
    sent = []

    def dispatch_to_test_database(queue, background_tasks):
        return dispatcher.dispatch_events(
            queue,
            background_tasks,
            session_factory=session_factory,
            sender=lambda appointment, patient: sent.append((appointment.id, patient.email)),
        )

    monkeypatch.setattr(appointment_routes, 'dispatch_events', dispatch_to_test_database)
    return sent


def _auth_headers(user, role: str) -> dict:
    return {'Authorization': f'Bearer {create_access_token(user.id, user.email, role)}'}


def _booking(patient, dentist, service, when='2099-06-01T10:00:00') -> dict:
    return {
        'appointmentDate': when,
        'patientUserId': patient.id,
        'dentistUserId': dentist.id,
        'serviceId': service.id,
        'notes': '  Sensitive left molar  ',
    }


def test_routes_require_bearer_token(client) -> None:
    response = client.get('/api/appointments')

    assert response.status_code == 401
    assert response.json() == {
        'success': False,
        'error': 'AUTH_ERROR',
        'message': 'Access denied. No token provided.',
    }


def test_create_appointment_returns_camel_case_envelope(client, dentist, patient, service) -> None:
    response = client.post(
        '/api/appointments',
        json=_booking(patient, dentist, service),
        headers=_auth_headers(patient, 'patient'),
    )

    assert response.status_code == 201
    body = response.json()
    assert body['success'] is True
    assert body['data']['status'] == 'pending'
    assert body['data']['appointmentDate'] == '2099-06-01T10:00:00'
    assert body['data']['notes'] == 'Sensitive left molar'
    assert body['data']['patient']['firstName'] == 'Pat'
    assert 'passwordHash' not in body['data']['patient']


def test_create_appointment_accepts_snake_case_body(client, dentist, patient, service) -> None:
    response = client.post(
        '/api/appointments',
        json={
            'appointment_date': '2099-06-01T10:00:00',
            'patient_user_id': patient.id,
            'dentist_user_id': dentist.id,
            'service_id': service.id,
        },
        headers=_auth_headers(patient, 'patient'),
    )

    assert response.status_code == 201


def test_conflicting_booking_returns_details(client, dentist, patient, service) -> None:
    headers = _auth_headers(patient, 'patient')
    first = client.post('/api/appointments', json=_booking(patient, dentist, service), headers=headers).json()

    response = client.post(
        '/api/appointments',
        json=_booking(patient, dentist, service, when='2099-06-01T11:00:00'),
        headers=headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body['success'] is False
    assert body['error'] == 'SCHEDULING_CONFLICT'
    assert body['details']['existingAppointmentId'] == first['data']['appointmentId']


def test_missing_fields_return_bad_request(client, patient) -> None:
    response = client.post('/api/appointments', json={'notes': 'hi'}, headers=_auth_headers(patient, 'patient'))

    assert response.status_code == 400
    assert response.json()['error'] == 'MISSING_FIELDS'


def test_malformed_body_returns_bad_request(client, patient) -> None:
    response = client.post(
        '/api/appointments',
        json={'patientUserId': 'not-a-number'},
        headers=_auth_headers(patient, 'patient'),
    )

    assert response.status_code == 400
    assert response.json()['error'] == 'VALIDATION_ERROR'


def test_unknown_appointment_returns_not_found(client, patient) -> None:
    response = client.get('/api/appointments/999', headers=_auth_headers(patient, 'patient'))

    assert response.status_code == 404
    assert response.json()['message'] == 'Appointment not found'


def test_listing_is_scoped_to_requester(client, dentist, patient, service) -> None:
    client.post('/api/appointments', json=_booking(patient, dentist, service), headers=_auth_headers(patient, 'patient'))

    dentist_view = client.get('/api/appointments', headers=_auth_headers(dentist, 'dentist')).json()
    by_date = client.get(
        f'/api/appointments/date/2099-06-01/user/{patient.id}',
        headers=_auth_headers(dentist, 'dentist'),
    ).json()

    assert [item['dentistUserId'] for item in dentist_view['data']] == [dentist.id]
    assert len(by_date['data']) == 1


def test_confirming_sends_notification_after_response(
    client, dentist, patient, service, sent_confirmations
) -> None:
    headers = _auth_headers(dentist, 'dentist')
    created = client.post('/api/appointments', json=_booking(patient, dentist, service), headers=headers).json()
    appointment_id = created['data']['appointmentId']

    response = client.put(f'/api/appointments/{appointment_id}', json={'status': 'confirmed'}, headers=headers)

    assert response.status_code == 200
    assert response.json()['data']['status'] == 'confirmed'
    assert sent_confirmations == [(appointment_id, patient.email)]


def test_invalid_transition_is_rejected(client, dentist, patient, service) -> None:
    headers = _auth_headers(dentist, 'dentist')
    created = client.post('/api/appointments', json=_booking(patient, dentist, service), headers=headers).json()
    appointment_id = created['data']['appointmentId']

    response = client.put(f'/api/appointments/{appointment_id}', json={'status': 'completed'}, headers=headers)

    assert response.status_code == 400
    assert response.json()['details']['currentStatus'] == 'pending'


def test_delete_appointment(client, dentist, patient, service) -> None:
    headers = _auth_headers(dentist, 'dentist')
    created = client.post('/api/appointments', json=_booking(patient, dentist, service), headers=headers).json()
    appointment_id = created['data']['appointmentId']

    response = client.delete(f'/api/appointments/{appointment_id}', headers=headers)

    assert response.json() == {'success': True, 'message': 'Appointment deleted successfully'}
    assert client.get(f'/api/appointments/{appointment_id}', headers=headers).status_code == 404
