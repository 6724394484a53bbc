import uuid

import pytest

from backoffice import create_app, db
from backoffice.config import TestingConfig
from backoffice.models import Provider, User, UserRole
from backoffice.services.auth_service import AuthService

PASSWORD = 'secret123'


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(role=UserRole.ADMIN, email=None, company_id='company-1', password=PASSWORD, **fields):
        user = User(
            email=email or f'{role.lower()}-{uuid.uuid4().hex[:8]}@example.com',
            first_name='Test',
            last_name=role.title(),
            role=role,
            company_id=company_id,
            **fields
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_provider(app):
    def _make_provider(email=None, company_id='company-1', password=PASSWORD, **fields):
        provider = Provider(
            email=email or f'provider-{uuid.uuid4().hex[:8]}@example.com',
            first_name='Paula',
            last_name='Provider',
            business_name='Servicios Generales SAC',
            tax_id='20123456789',
            company_id=company_id,
            **fields
        )
        provider.set_password(password)
        db.session.add(provider)
        db.session.commit()
        return provider

    return _make_provider


@pytest.fixture
def headers_for(app):
    def _headers_for(account):
        return {'Authorization': f'Bearer {AuthService().generate_token(account)}'}

    return _headers_for


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)
