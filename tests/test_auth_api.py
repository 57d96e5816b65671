"""
Authentication endpoints
"""
import pytest

from conftest import TEST_PASSWORD, fake
from database.models import AuditLog
import config


@pytest.fixture
def registration() -> dict:
    return {
        'email': f"{fake.user_name()}@campus.ac.za",
        'password': TEST_PASSWORD,
        'fullName': fake.name(),
        'studentNumber': 'ST202401',
    }


def test_register_creates_minimal_profile(client, registration):
    response = client.post('/api/auth/register', json=registration)

    assert response.status_code == 201
    data = response.json()
    assert data['userType'] == 'student'
    assert data['profileSetupRequired'] is True
    assert data['accessToken']

    headers = {'Authorization': f"Bearer {data['accessToken']}"}
    profile = client.get('/api/profile', headers=headers).json()
    assert profile['contactName'] == registration['fullName']
    assert profile['studentNumber'] == 'ST202401'
    assert profile['contactPhoneNumber'] == ''
    assert profile['isComplete'] is False


def test_register_duplicate_email(client, registration):
    client.post('/api/auth/register', json=registration)

    response = client.post('/api/auth/register', json=registration)

    assert response.status_code == 409
    assert 'already registered' in response.json()['detail']


def test_register_weak_password(client, registration):
    registration['password'] = 'password'

    response = client.post('/api/auth/register', json=registration)

    assert response.status_code == 422
    assert response.json()['detail'][0]['field'] == 'password'


def test_admin_self_registration_is_disabled(client, registration):
    registration['userType'] = 'admin'

    response = client.post('/api/auth/register', json=registration)

    assert response.status_code == 403


def test_admin_self_registration_when_enabled(client, registration, monkeypatch):
    monkeypatch.setattr(config, 'ALLOW_ADMIN_SELF_REGISTRATION', True)
    registration['userType'] = 'admin'

    response = client.post('/api/auth/register', json=registration)

    assert response.status_code == 201
    assert response.json()['userType'] == 'admin'


def test_login_success(client, student):
    response = client.post('/api/auth/login', json={'email': student.email, 'password': TEST_PASSWORD})

    assert response.status_code == 200
    data = response.json()
    assert data['userId'] == student.id
    assert data['userType'] == 'student'
    assert data['tokenType'] == 'bearer'
    assert data['profileSetupRequired'] is False


def test_login_is_case_insensitive_on_email(client, student):
    response = client.post(
        '/api/auth/login', json={'email': student.email.upper(), 'password': TEST_PASSWORD}
    )
    assert response.status_code == 200


def test_login_invalid_credentials(client, student):
    response = client.post('/api/auth/login', json={'email': student.email, 'password': 'Wrong#999'})

    assert response.status_code == 401
    assert response.json()['detail'] == 'Invalid email or password'


def test_me_and_logout(client, admin):
    me = client.get('/api/auth/me', headers=admin.headers)
    assert me.status_code == 200
    assert me.json()['userType'] == 'admin'
    assert me.json()['email'] == admin.email

    response = client.post('/api/auth/logout', headers=admin.headers)
    assert response.status_code == 200


def test_invalid_token_is_rejected(client):
    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-token'})
    assert response.status_code == 401


def test_health_and_root_are_public(client):
    health = client.get('/health')
    assert health.status_code == 200
    assert health.json()['checks']['database']['status'] == 'ok'

    root = client.get('/')
    assert root.status_code == 200
    assert root.json()['message'] == config.APP_NAME


def test_login_and_failures_are_audited(client, ctx, student):
    client.post('/api/auth/login', json={'email': student.email, 'password': TEST_PASSWORD})
    client.post('/api/auth/login', json={'email': student.email, 'password': 'Wrong#999'})

    with ctx.db.get_session() as session:
        actions = [a.action for a in session.query(AuditLog).order_by(AuditLog.created_at).all()]
    assert 'login' in actions
    assert 'login_failed' in actions
