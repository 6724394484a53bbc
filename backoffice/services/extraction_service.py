"""
Extraction Service for structured data extraction from OCR text
Rule-based pattern matching for receipts (expenses) and electronic invoices
"""

import re
import logging
from typing import Dict, Optional
from datetime import datetime
from decimal import Decimal, InvalidOperation

from backoffice.utils.pattern_matcher import PatternMatcher

logger = logging.getLogger(__name__)


class ExtractionService:
    """Service for extracting structured data from OCR text."""

    def __init__(self):
        """Initialize extraction service with pattern matcher."""
        self.pattern_matcher = PatternMatcher()

    def extract_receipt_data(self, ocr_text: str, ocr_confidence: Optional[float] = None) -> Dict:
        """
        Extract expense fields from a receipt.

        Args:
            ocr_text: Raw OCR extracted text
            ocr_confidence: Average OCR confidence, blended into the result

        Returns:
            Dictionary with vendor, document, date and amount fields
        """
        start_time = datetime.now()
        text = self._clean_text(ocr_text)
        matcher = self.pattern_matcher
        confidence_scores = []

        vendor_name, conf = matcher.extract_vendor_name(text)
        if vendor_name:
            confidence_scores.append(conf)

        vendor_tax_id, conf = matcher.extract_ruc(text)
        if vendor_tax_id:
            confidence_scores.append(conf)

        serie, correlativo, conf = matcher.extract_document_number(text)
        document_number = f"{serie}-{correlativo}" if serie else None
        if serie:
            confidence_scores.append(conf)

        expense_date, conf = matcher.extract_issue_date(text)
        if expense_date:
            confidence_scores.append(conf)

        currency, conf = matcher.extract_currency(text)
        confidence_scores.append(conf)

        financial_data = self._extract_financial_data(text)
        if financial_data['total']:
            confidence_scores.append(0.9)

        category, conf = matcher.guess_category(text)

        confidence = sum(confidence_scores) / len(confidence_scores) if confidence_scores else 0.0
        if ocr_confidence is not None:
            confidence = (confidence + ocr_confidence) / 2

        processing_time = (datetime.now() - start_time).total_seconds() * 1000
        logger.info(f"Receipt data extraction completed in {processing_time:.2f}ms")

        return {
            'vendor_name': vendor_name or None,
            'vendor_tax_id': vendor_tax_id or None,
            'document_number': document_number,
            'expense_date': expense_date.isoformat() if expense_date else None,
            'currency': currency,
            'subtotal': financial_data['subtotal'],
            'tax_amount': financial_data['tax'],
            'amount': financial_data['total'],
            'category': category,
            'confidence': round(confidence, 3),
            'raw_text': ocr_text
        }

    def extract_invoice_data(self, ocr_text: str) -> Dict:
        """Extract the identifying fields of an electronic invoice."""
        text = self._clean_text(ocr_text)
        matcher = self.pattern_matcher
        confidence_scores = []

        serie, correlativo, conf = matcher.extract_document_number(text)
        confidence_scores.append(conf)

        ruc, conf = matcher.extract_ruc(text)
        confidence_scores.append(conf)

        issue_date, conf = matcher.extract_issue_date(text)
        confidence_scores.append(conf)

        due_date, _ = matcher.extract_due_date(text)

        currency, conf = matcher.extract_currency(text)
        confidence_scores.append(conf)

        financial_data = self._extract_financial_data(text)
        confidence_scores.append(0.9 if financial_data['total'] else 0.0)

        return {
            'serie': serie or None,
            'correlativo': correlativo or None,
            'ruc': ruc or None,
            'issue_date': issue_date.isoformat() if issue_date else None,
            'due_date': due_date.isoformat() if due_date else None,
            'currency': currency,
            'subtotal': financial_data['subtotal'],
            'tax_amount': financial_data['tax'],
            'total': financial_data['total'],
            'confidence': round(sum(confidence_scores) / len(confidence_scores), 3)
        }

    def _clean_text(self, text: str) -> str:
        """Normalize OCR text while keeping line breaks."""
        if not text:
            return ""

        lines = [re.sub(r'[ \t]+', ' ', line).strip() for line in text.splitlines()]
        cleaned = '\n'.join(line for line in lines if line)

        # Common OCR confusions around currency symbols
        cleaned = re.sub(r'S[ \t]*/[ \t]*\.?[ \t]*', 'S/ ', cleaned)
        cleaned = cleaned.replace('|', 'I')

        return cleaned

    def _extract_financial_data(self, text: str) -> Dict:
        """Extract amounts and fill in whatever can be derived from the others."""
        amounts = self.pattern_matcher.extract_amounts(text)
        financial_data = {
            'subtotal': amounts.get('subtotal'),
            'tax': amounts.get('tax'),
            'total': amounts.get('total')
        }

        tax_rate, _ = self.pattern_matcher.extract_tax_rate(text)
        return self._validate_financial_data(financial_data, tax_rate)

    def _validate_financial_data(self, financial_data: Dict, tax_rate: float = 0.0) -> Dict:
        """Recalculate a missing total or subtotal from the other amounts."""
        try:
            subtotal = financial_data.get('subtotal')
            tax = financial_data.get('tax')
            total = financial_data.get('total')

            if total is None and subtotal is not None:
                calculated = Decimal(str(subtotal)) + Decimal(str(tax or 0))
                financial_data['total'] = float(calculated)
                financial_data['calculated_total'] = True

            elif total is not None and subtotal is None and tax is not None:
                calculated = Decimal(str(total)) - Decimal(str(tax))
                if calculated >= 0:
                    financial_data['subtotal'] = float(calculated)

            elif total is not None and subtotal is None and tax_rate:
                rate = Decimal(str(tax_rate)) / 100
                calculated = (Decimal(str(total)) / (1 + rate)).quantize(Decimal('0.01'))
                financial_data['subtotal'] = float(calculated)
                financial_data['tax'] = float(Decimal(str(total)) - calculated)

        except (InvalidOperation, ValueError, TypeError) as e:
            logger.warning(f"Financial data validation failed: {str(e)}")

        return financial_data
