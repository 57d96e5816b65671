"""
Campus Incident Reporting - Test Configuration and Fixtures
"""
import os
import tempfile
import uuid
from types import SimpleNamespace

import pytest
from faker import Faker

# Set testing environment before the application modules read it
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['RATE_LIMIT_PER_MINUTE'] = '100000'
os.environ['RATE_LIMIT_PER_HOUR'] = '100000'
os.environ['ALLOW_ADMIN_SELF_REGISTRATION'] = 'false'
os.environ['LOG_FILE'] = os.path.join(tempfile.gettempdir(), 'campus_incidents_test.log')

from fastapi.testclient import TestClient

from app import create_app
from core.context import AppContext
from database.connection import Database
from database.models import UserType
from services.auth_service import AuthService

fake = Faker()

TEST_PASSWORD = 'Secret#123'


@pytest.fixture
def ctx() -> AppContext:
    """Fresh in-memory database and live hub per test"""
    context = AppContext(Database('sqlite://'))
    context.db.create_tables()
    yield context
    context.db.dispose()


@pytest.fixture
def client(ctx: AppContext):
    """Test client bound to the test context"""
    app = create_app(ctx)
    with TestClient(app) as test_client:
        yield test_client


def make_user(ctx: AppContext, user_type: UserType = UserType.STUDENT, complete: bool = True):
    """Register a user directly through the service layer"""
    email = f"{fake.user_name()}.{uuid.uuid4().hex[:8]}@campus.ac.za"
    full_name = fake.name()
    student_number = fake.bothify('ST######') if user_type == UserType.STUDENT else None

    with ctx.db.get_session() as session:
        user = AuthService.register(
            session, email, TEST_PASSWORD, full_name, user_type, student_number=student_number
        )
        if complete:
            user.profile.contact_phone_number = fake.numerify('08########')
            user.profile.emergency_contact_name = fake.name()
            user.profile.emergency_contact_phone_number = fake.numerify('07########')
        token = AuthService.issue_token(user)
        user_id = user.id

    return SimpleNamespace(
        id=user_id,
        email=email,
        name=full_name,
        student_number=student_number,
        token=token,
        headers={'Authorization': f'Bearer {token}'},
    )


@pytest.fixture
def student(ctx):
    return make_user(ctx)


@pytest.fixture
def other_student(ctx):
    return make_user(ctx)


@pytest.fixture
def admin(ctx):
    return make_user(ctx, user_type=UserType.ADMIN)


@pytest.fixture
def report_payload() -> dict:
    return {
        'incidentType': 'Fire',
        'locationDetails': 'Library, 2nd floor',
        'detailedDescription': 'Smoke coming from the server room next to the study area',
    }


@pytest.fixture
def file_report(client):
    """Submit a report and return the accepted record"""
    def _file(user, **overrides):
        payload = {
            'incidentType': 'Medical',
            'locationDetails': fake.street_address(),
            'detailedDescription': fake.sentence(nb_words=10),
        }
        payload.update(overrides)
        response = client.post('/api/reports', json=payload, headers=user.headers)
        assert response.status_code == 202, response.text
        return response.json()
    return _file
