from backoffice.models import UserRole


def provider_payload(**overrides):
    payload = {
        'email': 'supplier@example.com',
        'password': 'secret123',
        'first_name': 'Sam',
        'last_name': 'Supplier',
        'business_name': 'Suministros Andinos SAC',
        'tax_id': '20600000001'
    }
    payload.update(overrides)
    return payload


def test_company_creates_provider_for_itself(client, make_user, headers_for):
    company = make_user(UserRole.COMPANY, company_id='acme')

    response = client.post('/providers', json=provider_payload(), headers=headers_for(company))

    assert response.status_code == 201
    body = response.get_json()
    assert body['company_id'] == 'acme'
    assert body['role'] == UserRole.PROVIDER
    assert 'password_hash' not in body


def test_create_provider_rejects_bad_ruc(client, admin_headers):
    response = client.post('/providers', json=provider_payload(tax_id='12345'), headers=admin_headers)

    assert response.status_code == 400


def test_create_provider_rejects_email_used_by_user(client, admin, admin_headers):
    response = client.post('/providers', json=provider_payload(email=admin.email), headers=admin_headers)

    assert response.status_code == 400


def test_create_provider_role_guard(client, make_user, headers_for):
    accounting = make_user(UserRole.ACCOUNTING)

    response = client.post('/providers', json=provider_payload(), headers=headers_for(accounting))

    assert response.status_code == 403


def test_list_providers_by_company(client, admin_headers, make_provider):
    make_provider(company_id='acme')
    make_provider(company_id='globex')

    response = client.get('/providers?company_id=acme', headers=admin_headers)

    assert response.status_code == 200
    assert [provider['company_id'] for provider in response.get_json()] == ['acme']
    assert len(client.get('/providers', headers=admin_headers).get_json()) == 2


def test_provider_updates_only_own_profile(client, make_provider, headers_for):
    provider = make_provider()
    other = make_provider()

    response = client.patch(f'/providers/{provider.id}', json={'phone': '+51 999 888 777'},
                            headers=headers_for(provider))
    assert response.status_code == 200
    assert response.get_json()['phone'] == '+51 999 888 777'

    response = client.patch(f'/providers/{other.id}', json={'phone': '+51 999 888 777'},
                            headers=headers_for(provider))
    assert response.status_code == 403


def test_get_and_delete_provider(client, admin_headers, make_provider):
    provider = make_provider()

    assert client.get(f'/providers/{provider.id}', headers=admin_headers).status_code == 200
    assert client.delete(f'/providers/{provider.id}', headers=admin_headers).status_code == 204
    assert client.get(f'/providers/{provider.id}', headers=admin_headers).status_code == 404


def test_company_cannot_create_provider_for_another_company(client, make_user, headers_for):
    company = make_user(UserRole.COMPANY, company_id='company-A')

    response = client.post('/providers', json=provider_payload(company_id='company-B'),
                           headers=headers_for(company))

    assert response.status_code == 403
    listing = client.get('/providers?company_id=company-B', headers=headers_for(company))
    assert listing.get_json() == []

    response = client.post('/providers', json=provider_payload(company_id='company-A'),
                           headers=headers_for(company))
    assert response.status_code == 201
    assert response.get_json()['company_id'] == 'company-A'


def test_company_manages_only_its_own_providers(client, make_user, make_provider, headers_for):
    company = make_user(UserRole.COMPANY, company_id='company-A')
    own = make_provider(company_id='company-A')
    foreign = make_provider(company_id='company-B')

    response = client.patch(f'/providers/{foreign.id}', json={'is_active': False}, headers=headers_for(company))
    assert response.status_code == 403
    assert client.get(f'/providers/{foreign.id}', headers=headers_for(company)).get_json()['is_active'] is True

    response = client.patch(f'/providers/{own.id}', json={'company_id': 'company-B'}, headers=headers_for(company))
    assert response.status_code == 403

    response = client.patch(f'/providers/{own.id}', json={'is_active': False}, headers=headers_for(company))
    assert response.status_code == 200
    assert response.get_json()['is_active'] is False


def test_provider_cannot_move_or_reactivate_itself(client, make_provider, headers_for):
    provider = make_provider(company_id='company-1')

    response = client.patch(f'/providers/{provider.id}',
                            json={'company_id': 'company-B', 'is_active': False, 'phone': '+51 911 222 333'},
                            headers=headers_for(provider))

    assert response.status_code == 200
    body = response.get_json()
    assert body['company_id'] == 'company-1'
    assert body['is_active'] is True
    assert body['phone'] == '+51 911 222 333'


def test_admin_can_reassign_provider_company(client, admin_headers, make_provider):
    provider = make_provider(company_id='company-1')

    response = client.patch(f'/providers/{provider.id}', json={'company_id': 'company-2'}, headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json()['company_id'] == 'company-2'


def test_provider_fields_must_be_strings(client, admin_headers):
    response = client.post('/providers', json=provider_payload(phone=999888777), headers=admin_headers)

    assert response.status_code == 400
    assert 'phone must be a string' in response.get_json()['message']
