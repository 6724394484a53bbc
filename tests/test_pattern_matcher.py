from datetime import date

import pytest

from backoffice.utils.pattern_matcher import PatternMatcher


@pytest.fixture
def matcher():
    return PatternMatcher()


@pytest.mark.parametrize('text, expected', [
    ('FACTURA ELECTRONICA\nN° F001-00000123', ('F001', '00000123', 0.95)),
    ('BOLETA B002 - 456', ('B002', '456', 0.85)),
    ('Gracias por su compra', ('', '', 0.0)),
])
def test_extract_document_number(matcher, text, expected):
    assert matcher.extract_document_number(text) == expected


def test_iso_dates_are_not_read_as_document_numbers(matcher):
    assert matcher.extract_document_number('Fecha: 2024-03-15') == ('', '', 0.0)


def test_extract_ruc_prefers_labelled_value(matcher):
    assert matcher.extract_ruc('Cliente 10456789012\nR.U.C. N° 20512345678') == ('20512345678', 0.95)
    assert matcher.extract_ruc('Emisor 20512345678') == ('20512345678', 0.6)
    assert matcher.extract_ruc('Telefono 987654321') == ('', 0.0)


@pytest.mark.parametrize('text, expected', [
    ('Fecha de emisión: 15/03/2024', date(2024, 3, 15)),
    ('Fecha: 2024-03-15', date(2024, 3, 15)),
    ('Emitido 5 de marzo de 2024', date(2024, 3, 5)),
    ('Fecha 05.03.24', date(2024, 3, 5)),
])
def test_extract_issue_date(matcher, text, expected):
    parsed, confidence = matcher.extract_issue_date(text)

    assert parsed == expected
    assert confidence == 0.9


def test_issue_date_falls_back_to_first_date(matcher):
    assert matcher.extract_issue_date('Lima 31/12/2023') == (date(2023, 12, 31), 0.6)
    assert matcher.extract_issue_date('sin fecha valida 45/13/2023') == (None, 0.0)


def test_extract_due_date(matcher):
    text = 'Fecha de emisión: 01/04/2024\nFecha de vencimiento: 30/04/2024'

    assert matcher.extract_due_date(text) == (date(2024, 4, 30), 0.9)
    assert matcher.extract_due_date('Fecha: 01/04/2024') == (None, 0.0)


@pytest.mark.parametrize('text, currency', [
    ('TOTAL S/ 10.00', 'PEN'),
    ('Total USD 10.00', 'USD'),
    ('Total 10,00 €', 'EUR'),
])
def test_extract_currency(matcher, text, currency):
    assert matcher.extract_currency(text) == (currency, 0.9)


def test_currency_defaults_to_soles(matcher):
    assert matcher.extract_currency('Total 10.00') == ('PEN', 0.3)


def test_extract_amounts(matcher):
    text = 'SUBTOTAL: 1,000.00\nIGV (18%): 180.00\nTOTAL: S/ 1,180.00'

    assert matcher.extract_amounts(text) == {'subtotal': 1000.0, 'tax': 180.0, 'total': 1180.0}


def test_subtotal_line_is_not_read_as_total(matcher):
    assert matcher.extract_amounts('Sub Total 50.00') == {'subtotal': 50.0}


def test_extract_tax_rate(matcher):
    assert matcher.extract_tax_rate('IGV 18% 9.00') == (18.0, 0.9)
    assert matcher.extract_tax_rate('Total 10.00') == (0.0, 0.0)


def test_extract_vendor_name_skips_document_headers(matcher):
    text = 'FACTURA ELECTRONICA\nRUC 20512345678\nDISTRIBUIDORA NORTE EIRL\nAv. Arequipa 123'

    name, confidence = matcher.extract_vendor_name(text)

    assert name == 'DISTRIBUIDORA NORTE EIRL'
    assert confidence == pytest.approx(0.7)


def test_extract_vendor_name_from_single_line(matcher):
    name, confidence = matcher.extract_vendor_name('Hotel Los Andes RUC 20512345678 Total 200.00')

    assert name == 'Hotel Los Andes'
    assert confidence == 0.6


@pytest.mark.parametrize('text, category', [
    ('TAXI SEGURO SAC\nCarrera en taxi', 'TRANSPORT'),
    ('HOTEL PLAZA\nhospedaje 2 noches', 'LODGING'),
    ('Chifa Lung Fung', 'MEALS'),
    ('Comercial XYZ', 'OTHER'),
])
def test_guess_category(matcher, text, category):
    assert matcher.guess_category(text)[0] == category
