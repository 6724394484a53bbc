import httpx
import pytest

from backoffice.api import expense_routes
from backoffice.models import UserRole

RECEIPT_TEXT = """RESTAURANTE EL SABOR SAC
RUC: 20512345678
BOLETA DE VENTA ELECTRONICA
B001-00004567
Fecha de emisión: 15/03/2024
OP. GRAVADA S/ 50.00
IGV 18% S/ 9.00
IMPORTE TOTAL S/ 59.00"""


@pytest.fixture
def fake_download(monkeypatch):
    def _get(url, **kwargs):
        return httpx.Response(200, content=b'fake-image-bytes', request=httpx.Request('GET', url))

    monkeypatch.setattr(httpx, 'get', _get)


@pytest.fixture
def fake_ocr(monkeypatch):
    def _extract_text(image_data, confidence_threshold=0.5):
        assert image_data == b'fake-image-bytes'
        return {'full_text': RECEIPT_TEXT, 'overall_confidence': 0.9}

    monkeypatch.setattr(expense_routes.expense_service.ocr_service, 'extract_text', _extract_text)


def create_expense(client, headers, **overrides):
    payload = {
        'description': 'Team lunch',
        'amount': 59.0,
        'currency': 'PEN',
        'expense_date': '2024-03-15',
        'category': 'MEALS'
    }
    payload.update(overrides)
    return client.post('/expense', json=payload, headers=headers)


def test_analyze_image_extracts_receipt_fields(client, admin_headers, fake_download, fake_ocr):
    response = client.post('/expense/analyze-image', json={'image_url': 'https://cdn.example.com/r.jpg'},
                           headers=admin_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True

    data = body['data']
    assert data['vendor_name'] == 'RESTAURANTE EL SABOR SAC'
    assert data['vendor_tax_id'] == '20512345678'
    assert data['document_number'] == 'B001-00004567'
    assert data['expense_date'] == '2024-03-15'
    assert data['currency'] == 'PEN'
    assert data['subtotal'] == 50.0
    assert data['tax_amount'] == 9.0
    assert data['amount'] == 59.0
    assert data['category'] == 'MEALS'
    assert 0 < data['confidence'] <= 1
    assert data['raw_text'] == RECEIPT_TEXT


def test_analyze_image_download_failure_is_bad_request(client, admin_headers, monkeypatch):
    def _get(url, **kwargs):
        raise httpx.ConnectError('connection refused')

    monkeypatch.setattr(httpx, 'get', _get)

    response = client.post('/expense/analyze-image', json={'image_url': 'https://cdn.example.com/r.jpg'},
                           headers=admin_headers)

    assert response.status_code == 400


def test_analyze_image_ocr_failure_is_server_error(client, admin_headers, fake_download, monkeypatch):
    def _extract_text(image_data, confidence_threshold=0.5):
        raise RuntimeError('OCR extraction failed: unreadable image')

    monkeypatch.setattr(expense_routes.expense_service.ocr_service, 'extract_text', _extract_text)

    response = client.post('/expense/analyze-image', json={'image_url': 'https://cdn.example.com/r.jpg'},
                           headers=admin_headers)

    assert response.status_code == 500


def test_analyze_image_requires_url_and_token(client, admin_headers):
    assert client.post('/expense/analyze-image', json={'image_url': 'x'}).status_code == 401
    assert client.post('/expense/analyze-image', json={}, headers=admin_headers).status_code == 400


def test_create_expense_uses_company_from_token(client, admin, admin_headers):
    response = create_expense(client, admin_headers)

    assert response.status_code == 201
    body = response.get_json()
    assert body['company_id'] == 'company-1'
    assert body['created_by'] == admin.id
    assert body['status'] == 'PENDING'
    assert body['amount'] == 59.0


def test_create_expense_without_company_in_token(client, make_user, headers_for):
    admin = make_user(UserRole.ADMIN, company_id=None)

    assert create_expense(client, headers_for(admin)).status_code == 400


def test_create_expense_validation_and_roles(client, admin_headers, make_user, headers_for):
    assert create_expense(client, admin_headers, amount=0).status_code == 400
    assert create_expense(client, admin_headers, description='').status_code == 400

    colaborador = make_user(UserRole.COLABORADOR)
    assert create_expense(client, headers_for(colaborador)).status_code == 403


def test_list_and_get_expenses_are_company_scoped(client, admin_headers):
    expense = create_expense(client, admin_headers).get_json()
    create_expense(client, admin_headers, description='Taxi')

    listing = client.get('/expense/company-1', headers=admin_headers)
    assert listing.status_code == 200
    assert len(listing.get_json()) == 2

    assert client.get('/expense/company-1?status=APPROVED', headers=admin_headers).get_json() == []
    assert client.get('/expense/company-1?status=UNKNOWN', headers=admin_headers).status_code == 400

    found = client.get(f"/expense/{expense['id']}/company-1", headers=admin_headers)
    assert found.status_code == 200
    assert client.get(f"/expense/{expense['id']}/other-company", headers=admin_headers).status_code == 404


def test_update_expense(client, admin_headers):
    expense = create_expense(client, admin_headers).get_json()

    response = client.patch(f"/expense/{expense['id']}/company-1",
                            json={'amount': 75.5, 'vendor_name': 'Chifa Lung Fung', 'status': 'APPROVED'},
                            headers=admin_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body['amount'] == 75.5
    assert body['vendor_name'] == 'Chifa Lung Fung'
    assert body['status'] == 'PENDING'


def test_approve_expense(client, admin, admin_headers):
    expense = create_expense(client, admin_headers).get_json()
    url = f"/expense/{expense['id']}/company-1/approve"

    response = client.patch(url, json={'comment': 'ok'}, headers=admin_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'APPROVED'
    assert body['approved_by'] == admin.id
    assert body['approved_at']
    assert body['approval_comment'] == 'ok'

    # Already approved
    assert client.patch(url, json={}, headers=admin_headers).status_code == 400


def test_reject_expense_requires_reason(client, admin_headers):
    expense = create_expense(client, admin_headers).get_json()
    url = f"/expense/{expense['id']}/company-1/reject"

    assert client.patch(url, json={}, headers=admin_headers).status_code == 400

    response = client.patch(url, json={'reason': 'No receipt attached'}, headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json()['status'] == 'REJECTED'
    assert response.get_json()['rejection_reason'] == 'No receipt attached'


def test_delete_expense(client, admin_headers):
    expense = create_expense(client, admin_headers).get_json()

    response = client.delete(f"/expense/{expense['id']}/company-1", headers=admin_headers)

    assert response.status_code == 204
    assert client.get(f"/expense/{expense['id']}/company-1", headers=admin_headers).status_code == 404


def test_create_expense_rejects_wrong_field_types(client, admin_headers):
    response = create_expense(client, admin_headers, category={'name': 'MEALS'})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'category must be a string'

    assert create_expense(client, admin_headers, currency=604).status_code == 400
    assert create_expense(client, admin_headers, analysis=['not', 'an', 'object']).status_code == 400
    assert client.post('/expense', json=['Team lunch', 59.0], headers=admin_headers).status_code == 400


def test_review_text_must_be_string(client, admin_headers):
    expense = create_expense(client, admin_headers).get_json()
    base = f"/expense/{expense['id']}/company-1"

    assert client.patch(f'{base}/approve', json={'comment': ['ok']}, headers=admin_headers).status_code == 400
    assert client.patch(f'{base}/reject', json={'reason': 42}, headers=admin_headers).status_code == 400
    assert client.get(base, headers=admin_headers).get_json()['status'] == 'PENDING'
