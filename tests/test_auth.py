from flask_jwt_extended import decode_token

from backoffice.api.auth import resolve_actor_id
from backoffice.models import UserRole

PASSWORD = 'secret123'


def register(client, **overrides):
    payload = {
        'email': 'new.user@example.com',
        'password': 'secret123',
        'first_name': 'New',
        'last_name': 'User'
    }
    payload.update(overrides)
    return client.post('/auth/register', json=payload)


def test_register_returns_token_and_user(client):
    response = register(client)

    assert response.status_code == 201
    body = response.get_json()
    assert body['access_token']
    assert body['user']['email'] == 'new.user@example.com'
    assert body['user']['role'] == UserRole.USER
    assert 'password_hash' not in body['user']


def test_register_company_gets_generated_company_id(client):
    response = register(client, role=UserRole.COMPANY)

    assert response.status_code == 201
    assert response.get_json()['user']['company_id']


def test_register_rejects_duplicate_email(client):
    assert register(client).status_code == 201

    response = register(client, email='New.User@example.com')

    assert response.status_code == 400
    assert response.get_json()['status_code'] == 400


def test_register_rejects_email_used_by_provider(client, make_provider):
    make_provider(email='shared@example.com')

    assert register(client, email='shared@example.com').status_code == 400


def test_register_rejects_short_password(client):
    assert register(client, password='123').status_code == 400


def test_login_returns_tokens_with_claims(app, client, make_user):
    user = make_user(UserRole.ACCOUNTING, email='accounting@example.com', company_id='acme')

    response = client.post('/auth/login', json={'email': 'accounting@example.com', 'password': PASSWORD})

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['data']['user']['id'] == user.id
    assert body['data']['refresh_token']

    claims = decode_token(body['data']['token'])
    assert claims['sub'] == user.id
    assert claims['role'] == UserRole.ACCOUNTING
    assert claims['company_id'] == 'acme'
    assert claims['account_type'] == 'user'


def test_login_falls_back_to_providers(client, make_provider):
    make_provider(email='supplier@example.com')

    response = client.post('/auth/login', json={'email': 'supplier@example.com', 'password': PASSWORD})

    assert response.status_code == 200
    user = response.get_json()['data']['user']
    assert user['role'] == UserRole.PROVIDER
    assert user['account_type'] == 'provider'


def test_login_with_bad_credentials_is_unauthorized(client, make_user):
    make_user(email='someone@example.com')

    wrong_password = client.post('/auth/login', json={'email': 'someone@example.com', 'password': 'nope123'})
    unknown_email = client.post('/auth/login', json={'email': 'ghost@example.com', 'password': PASSWORD})

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401


def test_login_inactive_account_is_forbidden(client, make_user):
    make_user(email='inactive@example.com', is_active=False)

    response = client.post('/auth/login', json={'email': 'inactive@example.com', 'password': PASSWORD})

    assert response.status_code == 403


def test_account_locks_after_repeated_failures(client, make_user):
    make_user(email='locked@example.com')

    for _ in range(5):
        response = client.post('/auth/login', json={'email': 'locked@example.com', 'password': 'wrong1'})
        assert response.status_code == 401

    response = client.post('/auth/login', json={'email': 'locked@example.com', 'password': PASSWORD})

    assert response.status_code == 423


def test_login_requires_credentials(client):
    assert client.post('/auth/login', json={'email': 'a@example.com'}).status_code == 400


def test_login_rejects_non_string_credentials(client, make_user):
    make_user(email='typed@example.com')

    response = client.post('/auth/login', json={'email': 'typed@example.com', 'password': 123456789})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Email and password must be strings'

    assert client.post('/auth/login', json=['typed@example.com', PASSWORD]).status_code == 400
    assert register(client, role=[UserRole.ADMIN]).status_code == 400


def test_validate_token(client, admin, admin_headers):
    assert client.get('/auth/validate-token').status_code == 401

    response = client.get('/auth/validate-token', headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json()['user']['id'] == admin.id


def test_invalid_token_is_unauthorized(client):
    response = client.get('/auth/validate-token', headers={'Authorization': 'Bearer not-a-token'})

    assert response.status_code == 401
    assert response.get_json()['error'] == 'Unauthorized'


def test_refresh_issues_new_access_token(client, make_user):
    make_user(email='refresh@example.com')
    login = client.post('/auth/login', json={'email': 'refresh@example.com', 'password': PASSWORD})
    refresh_token = login.get_json()['data']['refresh_token']

    response = client.post('/auth/refresh', headers={'Authorization': f'Bearer {refresh_token}'})

    assert response.status_code == 200
    assert response.get_json()['access_token']


def test_change_password(client, make_user, headers_for):
    user = make_user(email='changer@example.com')
    headers = headers_for(user)

    wrong = client.post('/auth/change-password', headers=headers,
                        json={'current_password': 'wrong99', 'new_password': 'another1'})
    assert wrong.status_code == 401

    response = client.post('/auth/change-password', headers=headers,
                           json={'current_password': PASSWORD, 'new_password': 'another1'})
    assert response.status_code == 200

    login = client.post('/auth/login', json={'email': 'changer@example.com', 'password': 'another1'})
    assert login.status_code == 200


def test_resolve_actor_id_prefers_id_claim_then_sub_then_body():
    assert resolve_actor_id({'_id': 'a', 'sub': 'b'}, {'user_id': 'c'}) == 'a'
    assert resolve_actor_id({'sub': 'b'}, {'user_id': 'c'}) == 'b'
    assert resolve_actor_id({}, {'user_id': 'c'}) == 'c'
    assert resolve_actor_id({}, {}) is None


def test_change_password_rejects_non_string_password(client, make_user, headers_for):
    user = make_user(email='typed.changer@example.com')

    response = client.post('/auth/change-password', headers=headers_for(user),
                           json={'current_password': 123456789, 'new_password': 'another1'})
    assert response.status_code == 400

    response = client.post('/auth/change-password', headers=headers_for(user),
                           json={'current_password': PASSWORD, 'new_password': 12345678})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Password must be a string'
