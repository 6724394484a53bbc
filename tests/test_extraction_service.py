from datetime import date, timedelta

import pytest

from backoffice.services.extraction_service import ExtractionService
from backoffice.services.validation_service import ValidationService

INVOICE_TEXT = """DISTRIBUIDORA NORTE EIRL
R.U.C. 20512345678
FACTURA ELECTRONICA
F001 - 00000789
Fecha de emisión: 10/02/2024
Fecha de vencimiento: 10/03/2024
Moneda: SOLES
OP. GRAVADA S/. 1,000.00
I.G.V. 18% S/. 180.00
IMPORTE TOTAL S/. 1,180.00"""


@pytest.fixture
def extraction_service():
    return ExtractionService()


@pytest.fixture
def validation_service():
    return ValidationService()


def valid_invoice(**overrides):
    data = {
        'serie': 'F001',
        'correlativo': '00000789',
        'ruc': '20512345678',
        'issue_date': '2024-02-10',
        'due_date': '2024-03-10',
        'currency': 'PEN',
        'subtotal': 1000.0,
        'tax_amount': 180.0,
        'total': 1180.0,
        'confidence': 0.9
    }
    data.update(overrides)
    return data


def test_extract_invoice_data(extraction_service):
    data = extraction_service.extract_invoice_data(INVOICE_TEXT)

    assert data['serie'] == 'F001'
    assert data['correlativo'] == '00000789'
    assert data['ruc'] == '20512345678'
    assert data['issue_date'] == '2024-02-10'
    assert data['due_date'] == '2024-03-10'
    assert data['currency'] == 'PEN'
    assert data['subtotal'] == 1000.0
    assert data['tax_amount'] == 180.0
    assert data['total'] == 1180.0
    assert data['confidence'] > 0.8


def test_extract_invoice_data_from_empty_text(extraction_service):
    data = extraction_service.extract_invoice_data('')

    assert data['serie'] is None
    assert data['ruc'] is None
    assert data['total'] is None
    assert data['confidence'] < 0.2


def test_clean_text_normalizes_currency_and_pipes(extraction_service):
    cleaned = extraction_service._clean_text('  TOTAL   S /. 10.00 \n\n|GV 1.80  ')

    assert cleaned == 'TOTAL S/ 10.00\nIGV 1.80'


def test_receipt_total_is_derived_from_subtotal(extraction_service):
    data = extraction_service.extract_receipt_data('TIENDA SAN JUAN\nSubtotal: 100.00\nIGV: 18.00')

    assert data['amount'] == 118.0
    assert data['subtotal'] == 100.0
    assert data['tax_amount'] == 18.0


def test_receipt_subtotal_is_derived_from_tax_rate(extraction_service):
    data = extraction_service.extract_receipt_data('TAXI EXPRESS\nIGV (18%) incluido\nTotal: 118.00')

    assert data['amount'] == 118.0
    assert data['subtotal'] == 100.0
    assert data['tax_amount'] == 18.0
    assert data['category'] == 'TRANSPORT'


def test_receipt_confidence_blends_ocr_confidence(extraction_service):
    without_ocr = extraction_service.extract_receipt_data(INVOICE_TEXT)
    with_ocr = extraction_service.extract_receipt_data(INVOICE_TEXT, ocr_confidence=0.0)

    assert with_ocr['confidence'] == pytest.approx(without_ocr['confidence'] / 2, abs=0.001)


def test_validation_accepts_consistent_invoice(validation_service):
    result = validation_service.validate_invoice_data(valid_invoice())

    assert result['is_valid'] is True
    assert result['errors'] == []
    assert result['warnings'] == []
    assert result['confidence'] == 0.9


def test_validation_reports_missing_and_malformed_fields(validation_service):
    result = validation_service.validate_invoice_data(valid_invoice(serie=None, ruc='123', correlativo='12AB'))

    assert result['is_valid'] is False
    assert 'Missing required field: serie' in result['errors']
    assert 'Invalid RUC: 123' in result['errors']
    assert 'Invalid correlativo format: 12AB' in result['errors']


def test_validation_checks_dates(validation_service):
    future = (date.today() + timedelta(days=60)).isoformat()

    assert not validation_service.validate_invoice_data(valid_invoice(issue_date=future, due_date=None))['is_valid']
    assert not validation_service.validate_invoice_data(valid_invoice(due_date='2024-01-01'))['is_valid']

    result = validation_service.validate_invoice_data(valid_invoice(issue_date=None))
    assert result['is_valid'] is True
    assert 'Issue date not found' in result['warnings']


def test_validation_checks_amounts(validation_service):
    assert not validation_service.validate_invoice_data(valid_invoice(total=0))['is_valid']

    mismatch = validation_service.validate_invoice_data(valid_invoice(total=1200.0))
    assert mismatch['is_valid'] is True
    assert any('does not match total' in warning for warning in mismatch['warnings'])


def test_validation_warns_on_low_confidence(validation_service):
    result = validation_service.validate_invoice_data(valid_invoice(confidence=0.3))

    assert result['is_valid'] is True
    assert any('Low extraction confidence' in warning for warning in result['warnings'])
