"""
Validation Service for invoice data extracted from uploaded documents
Local checks on format, dates and amount consistency
"""

import logging
from typing import Dict
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

from backoffice.utils.validators import DataValidator

logger = logging.getLogger(__name__)


class ValidationService:
    """Service for validating extracted invoice data."""

    REQUIRED_FIELDS = ('serie', 'correlativo', 'ruc', 'total')

    def __init__(self, min_confidence: float = 0.5, max_future_days: int = 30):
        self.min_confidence = min_confidence
        self.max_future_days = max_future_days

    def validate_invoice_data(self, extracted_data: Dict) -> Dict:
        """
        Validate extracted invoice data.

        Args:
            extracted_data: Output of ExtractionService.extract_invoice_data

        Returns:
            Validation result with is_valid, errors, warnings and confidence
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'confidence': float(extracted_data.get('confidence') or 0.0)
        }

        self._validate_required_fields(extracted_data, result)
        self._validate_formats(extracted_data, result)
        self._validate_dates(extracted_data, result)
        self._validate_amounts(extracted_data, result)

        if result['confidence'] < self.min_confidence:
            result['warnings'].append(
                f"Low extraction confidence: {result['confidence']:.2f} < {self.min_confidence:.2f}"
            )

        result['is_valid'] = not result['errors']
        logger.info(f"Invoice validation completed - Valid: {result['is_valid']}, "
                    f"errors: {len(result['errors'])}")
        return result

    def _validate_required_fields(self, data: Dict, result: Dict):
        for field in self.REQUIRED_FIELDS:
            if data.get(field) in (None, ''):
                result['errors'].append(f"Missing required field: {field}")

    def _validate_formats(self, data: Dict, result: Dict):
        if data.get('serie') and not DataValidator.validate_serie(data['serie']):
            result['errors'].append(f"Invalid serie format: {data['serie']}")

        if data.get('correlativo') and not DataValidator.validate_correlativo(data['correlativo']):
            result['errors'].append(f"Invalid correlativo format: {data['correlativo']}")

        if data.get('ruc') and not DataValidator.validate_ruc(data['ruc']):
            result['errors'].append(f"Invalid RUC: {data['ruc']}")

    def _validate_dates(self, data: Dict, result: Dict):
        try:
            issue_date = DataValidator.parse_date(data.get('issue_date'))
            due_date = DataValidator.parse_date(data.get('due_date'))
        except (TypeError, ValueError) as e:
            result['errors'].append(f"Invalid date format: {str(e)}")
            return

        if issue_date is None:
            result['warnings'].append("Issue date not found")
            return

        if issue_date > date.today() + timedelta(days=self.max_future_days):
            result['errors'].append(
                f"Issue date {issue_date.isoformat()} is more than {self.max_future_days} days in the future"
            )

        if due_date and due_date < issue_date:
            result['errors'].append("Due date cannot be before issue date")

    def _validate_amounts(self, data: Dict, result: Dict):
        try:
            total = data.get('total')
            if total is None:
                return

            total = Decimal(str(total))
            if total <= 0:
                result['errors'].append("Total amount must be greater than zero")
                return

            subtotal, tax = data.get('subtotal'), data.get('tax_amount')
            if subtotal is not None and tax is not None:
                expected = Decimal(str(subtotal)) + Decimal(str(tax))
                if abs(expected - total) > Decimal('0.01'):
                    result['warnings'].append(
                        f"Subtotal plus tax ({expected}) does not match total ({total})"
                    )

        except (InvalidOperation, ValueError, TypeError) as e:
            result['errors'].append(f"Invalid amount: {str(e)}")
