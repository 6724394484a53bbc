"""
Pattern Matcher for extracting structured data from invoice and receipt text
Rule-based regex patterns tuned for Peruvian electronic invoices (serie-correlativo, RUC, IGV)
"""

import re
from typing import Dict, List, Optional, Tuple
from datetime import date
import logging

logger = logging.getLogger(__name__)

AMOUNT = r'(\d+(?:,\d{3})*(?:\.\d{1,2})?)'
CURRENCY_PREFIX = r'(?:S/\.?|\$|€|USD|PEN|EUR)?\s*'


class PatternMatcher:
    """Rule-based pattern matcher for invoice and receipt data extraction."""

    def __init__(self):
        """Initialize pattern matcher with compiled regex patterns."""
        self._compile_patterns()

    def _compile_patterns(self):
        """Compile all regex patterns for performance."""

        # Document number patterns: F001-00000123, B001 - 456, N° E001-12
        self.document_number_patterns = [
            re.compile(r'N[°ºo]?\.?\s*:?\s*\b([FBE][A-Z0-9]{3})\s*-\s*(\d{1,8})\b', re.IGNORECASE),
            re.compile(r'\b([FBE][A-Z0-9]{3})\s*-\s*(\d{1,8})\b', re.IGNORECASE)
        ]

        # RUC patterns
        self.ruc_patterns = [
            re.compile(r'R\.?\s*U\.?\s*C\.?\s*(?:N[°ºo]?\.?)?\s*:?\s*(\d{11})\b', re.IGNORECASE),
            re.compile(r'\b((?:10|15|17|20)\d{9})\b')
        ]

        # Date patterns, ISO first so 2024-03-15 is not read as 24-03-15
        self.date_patterns = [
            (re.compile(r'(\d{4})[/-](\d{1,2})[/-](\d{1,2})'), 'ymd'),
            (re.compile(r'(\d{1,2})[/.-](\d{1,2})[/.-](\d{2,4})'), 'dmy'),
            (re.compile(r'(\d{1,2})\s+(?:de\s+)?([A-Za-z]{3,10})\.?\s+(?:de(?:l)?\s+)?(\d{4})', re.IGNORECASE), 'd_month_y'),
        ]

        self.date_keywords = [
            r'fecha\s+de\s+emisi[oó]n', r'fecha\s+emisi[oó]n', r'emitido', r'fecha', r'invoice\s+date', r'date'
        ]

        self.due_date_keywords = [
            r'fecha\s+de\s+vencimiento', r'vencimiento', r'due\s+date'
        ]

        # Amount patterns, tried in order for each amount type
        self.amount_patterns = {
            'subtotal': [
                re.compile(r'(?:line\s*extension|taxable)\s*amount\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'op\.?\s*gravadas?\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'valor\s+(?:de\s+)?venta\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'sub\s*-?\s*total\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
            ],
            'tax': [
                re.compile(r'tax\s*amount\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'(?:i\.?g\.?v\.?|tax|vat)\s*(?:\(?\s*\d{1,2}(?:\.\d{1,2})?\s*%\s*\)?)?\s*:?\s*'
                           + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
            ],
            'total': [
                re.compile(r'payable\s*amount\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'importe\s+total\s*(?:a\s+pagar)?\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'total\s+a\s+pagar\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'monto\s+total\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'amount\s+due\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
                re.compile(r'(?<!sub)(?<!sub )(?<!sub-)\btotal\s*:?\s*' + CURRENCY_PREFIX + AMOUNT, re.IGNORECASE),
            ],
        }

        self.tax_rate_patterns = [
            re.compile(r'(?:i\.?g\.?v\.?|tax|vat)\s*\(?\s*(\d{1,2}(?:\.\d{1,2})?)\s*%', re.IGNORECASE),
            re.compile(r'(\d{1,2}(?:\.\d{1,2})?)\s*%\s*(?:i\.?g\.?v\.?|tax|vat)', re.IGNORECASE),
        ]

        self.email_pattern = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')

        # Expense category keywords
        self.category_keywords = {
            'MEALS': ['restaurant', 'restaurante', 'cafe', 'cafeteria', 'pollería', 'polleria', 'chifa',
                      'cevicheria', 'menu', 'comida', 'food', 'bar'],
            'TRANSPORT': ['taxi', 'uber', 'cabify', 'grifo', 'combustible', 'gasolina', 'petroleo', 'diesel',
                          'peaje', 'estacionamiento', 'parking', 'fuel', 'transporte', 'pasaje'],
            'LODGING': ['hotel', 'hostal', 'hospedaje', 'alojamiento', 'lodging'],
            'SUPPLIES': ['libreria', 'librería', 'papeleria', 'útiles', 'utiles', 'ferreteria', 'ferretería',
                         'office', 'oficina', 'toner', 'tinta'],
            'SERVICES': ['servicio', 'service', 'consultoria', 'consultoría', 'mantenimiento', 'internet',
                         'telefonia', 'telefonía', 'luz', 'agua'],
        }

    def extract_document_number(self, text: str) -> Tuple[str, str, float]:
        """Extract serie and correlativo (e.g. F001, 00000123) from text."""
        for index, pattern in enumerate(self.document_number_patterns):
            match = pattern.search(text)
            if match:
                serie = match.group(1).upper()
                correlativo = match.group(2)
                # Higher confidence when prefixed with N° or with a letter series
                confidence = 0.95 if index == 0 else 0.85
                return serie, correlativo, confidence

        return "", "", 0.0

    def extract_ruc(self, text: str) -> Tuple[str, float]:
        """Extract the issuer RUC (11 digit taxpayer id)."""
        for index, pattern in enumerate(self.ruc_patterns):
            match = pattern.search(text)
            if match:
                return match.group(1), 0.95 if index == 0 else 0.6
        return "", 0.0

    def extract_issue_date(self, text: str) -> Tuple[Optional[date], float]:
        """Extract the issue date, preferring dates next to a date keyword."""
        parsed = self._date_after_keywords(text, self.date_keywords)
        if parsed:
            return parsed, 0.9

        # Fallback: first date anywhere in the text
        parsed = self._parse_date(text)
        if parsed:
            return parsed, 0.6

        return None, 0.0

    def extract_due_date(self, text: str) -> Tuple[Optional[date], float]:
        """Extract the due date."""
        parsed = self._date_after_keywords(text, self.due_date_keywords)
        if parsed:
            return parsed, 0.9
        return None, 0.0

    def _date_after_keywords(self, text: str, keywords: List[str]) -> Optional[date]:
        for keyword in keywords:
            keyword_pattern = re.compile(rf'{keyword}\s*:?\s*(.{{0,40}})', re.IGNORECASE)
            keyword_match = keyword_pattern.search(text)
            if keyword_match:
                parsed_date = self._parse_date(keyword_match.group(1))
                if parsed_date:
                    return parsed_date
        return None

    def extract_currency(self, text: str) -> Tuple[str, float]:
        """Extract currency from text."""
        if re.search(r'S/\.?|\bsoles\b|\bPEN\b', text, re.IGNORECASE):
            return 'PEN', 0.9
        if re.search(r'US\$|\bUSD\b|\bd[oó]lares\b|\$', text, re.IGNORECASE):
            return 'USD', 0.9
        if re.search(r'€|\bEUR\b|\beuros?\b', text, re.IGNORECASE):
            return 'EUR', 0.9

        return 'PEN', 0.3  # Default to soles

    def extract_amounts(self, text: str) -> Dict[str, float]:
        """Extract subtotal, tax and total amounts from text."""
        amounts = {}

        for amount_type, patterns in self.amount_patterns.items():
            for pattern in patterns:
                match = pattern.search(text)
                if match:
                    try:
                        amounts[amount_type] = float(match.group(1).replace(',', ''))
                        break
                    except (ValueError, IndexError):
                        continue

        return amounts

    def extract_tax_rate(self, text: str) -> Tuple[float, float]:
        """Extract tax rate percentage from text."""
        for pattern in self.tax_rate_patterns:
            match = pattern.search(text)
            if match:
                try:
                    return float(match.group(1)), 0.9
                except ValueError:
                    continue

        return 0.0, 0.0

    def extract_vendor_name(self, text: str) -> Tuple[str, float]:
        """Extract the issuer name, usually printed before the RUC at the top."""
        lines = [line.strip() for line in text.split('\n') if line.strip()]

        if len(lines) > 1:
            for i, line in enumerate(lines[:5]):
                if line.lower() in ('factura', 'boleta', 'factura electronica', 'factura electrónica',
                                    'boleta de venta', 'boleta de venta electronica', 'recibo'):
                    continue
                if self.email_pattern.search(line) or re.search(r'\bR\.?U\.?C\b|\d{11}', line, re.IGNORECASE):
                    continue
                if len(line) > 2 and not line.replace(' ', '').isdigit():
                    return line, max(0.9 - (i * 0.1), 0.5)
            return "", 0.0

        # Single-line OCR output: take what precedes the RUC
        ruc_match = re.search(r'\bR\.?\s*U\.?\s*C\b', text, re.IGNORECASE)
        if ruc_match and ruc_match.start() > 2:
            name = text[:ruc_match.start()].strip(' -:,')
            return name[:120], 0.6

        return "", 0.0

    def guess_category(self, text: str) -> Tuple[str, float]:
        """Guess an expense category from keywords in the receipt."""
        lowered = text.lower()
        best_category, best_hits = 'OTHER', 0

        for category, keywords in self.category_keywords.items():
            hits = sum(1 for keyword in keywords if re.search(rf'\b{re.escape(keyword)}\b', lowered))
            if hits > best_hits:
                best_category, best_hits = category, hits

        if best_hits == 0:
            return 'OTHER', 0.2
        return best_category, min(0.5 + 0.15 * best_hits, 0.95)

    def _parse_date(self, text: str) -> Optional[date]:
        """Parse date from text using various formats; numeric dates are day-first."""
        month_names = {
            'jan': 1, 'ene': 1, 'enero': 1, 'january': 1,
            'feb': 2, 'febrero': 2, 'february': 2,
            'mar': 3, 'marzo': 3, 'march': 3,
            'apr': 4, 'abr': 4, 'abril': 4, 'april': 4,
            'may': 5, 'mayo': 5,
            'jun': 6, 'junio': 6, 'june': 6,
            'jul': 7, 'julio': 7, 'july': 7,
            'aug': 8, 'ago': 8, 'agosto': 8, 'august': 8,
            'sep': 9, 'set': 9, 'septiembre': 9, 'setiembre': 9, 'september': 9,
            'oct': 10, 'octubre': 10, 'october': 10,
            'nov': 11, 'noviembre': 11, 'november': 11,
            'dec': 12, 'dic': 12, 'diciembre': 12, 'december': 12
        }

        for pattern, order in self.date_patterns:
            for match in pattern.finditer(text):
                try:
                    first, second, third = match.groups()

                    if order == 'ymd':
                        year, month, day = int(first), int(second), int(third)
                    elif order == 'dmy':
                        day, month, year = int(first), int(second), int(third)
                    else:
                        month = month_names.get(second.lower())
                        if not month:
                            continue
                        day, year = int(first), int(third)

                    # Handle 2-digit years
                    if year < 100:
                        year += 2000 if year < 50 else 1900

                    return date(year, month, day)

                except (ValueError, IndexError):
                    continue

        return None
