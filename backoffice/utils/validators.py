"""
Data validation utilities for the back-office API
"""

import re
from typing import Any, Dict, List, Optional, Union
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
import email_validator

from backoffice.models.user import UserRole


class DataValidator:
    """Utility class for data validation and sanitization."""

    MIN_PASSWORD_LENGTH = 6
    PDF_SIGNATURE = b'%PDF'

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email address format."""
        if not email or not isinstance(email, str):
            return False
        try:
            email_validator.validate_email(email, check_deliverability=False)
            return True
        except email_validator.EmailNotValidError:
            return False

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower() if isinstance(email, str) else email

    @staticmethod
    def validate_phone(phone: str) -> bool:
        """Validate phone number format."""
        if not phone or not isinstance(phone, str):
            return False

        digits_only = re.sub(r'\D', '', phone)
        return 7 <= len(digits_only) <= 15

    @staticmethod
    def validate_currency_amount(amount: Union[str, float, int, Decimal]) -> bool:
        """Validate currency amount."""
        if isinstance(amount, bool):
            return False
        try:
            decimal_amount = Decimal(str(amount))
            return decimal_amount.is_finite() and decimal_amount >= 0
        except (InvalidOperation, TypeError, ValueError):
            return False

    @staticmethod
    def to_decimal(value) -> Optional[Decimal]:
        """Decimal from request input; empty values become None."""
        if value is None or value == '':
            return None
        return Decimal(str(value))

    @staticmethod
    def parse_date(date_value: Union[str, date, datetime, None]) -> Optional[date]:
        """Parse an ISO date (YYYY-MM-DD); raises ValueError on bad input."""
        if date_value in (None, ''):
            return None
        if isinstance(date_value, datetime):
            return date_value.date()
        if isinstance(date_value, date):
            return date_value
        return datetime.strptime(str(date_value)[:10], '%Y-%m-%d').date()

    @classmethod
    def validate_date(cls, date_value: Union[str, date, datetime]) -> bool:
        """Validate date value."""
        try:
            return cls.parse_date(date_value) is not None
        except (TypeError, ValueError):
            return False

    @staticmethod
    def sanitize_string(text: str, max_length: Optional[int] = None) -> str:
        """Sanitize string input."""
        if not isinstance(text, str):
            return ""

        sanitized = text.strip()

        # Remove null bytes and other control characters
        sanitized = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', sanitized)

        if max_length and len(sanitized) > max_length:
            sanitized = sanitized[:max_length]

        return sanitized

    @staticmethod
    def validate_ruc(tax_id: str) -> bool:
        """RUC taxpayer ids are 11 digits starting with 10, 15, 17 or 20."""
        if not tax_id:
            return False
        return bool(re.fullmatch(r'(10|15|17|20)\d{9}', str(tax_id).strip()))

    @staticmethod
    def validate_serie(serie: str) -> bool:
        """Series are 4 characters, e.g. F001, B001, E001 or 0001."""
        if not serie:
            return False
        return bool(re.fullmatch(r'[A-Z0-9]{4}', str(serie).strip().upper()))

    @staticmethod
    def validate_correlativo(correlativo: str) -> bool:
        """Sequence numbers are 1 to 8 digits."""
        if correlativo is None:
            return False
        return bool(re.fullmatch(r'\d{1,8}', str(correlativo).strip()))

    @classmethod
    def validate_password(cls, password: str) -> List[str]:
        errors = []
        if not password:
            errors.append('Password is required')
        elif not isinstance(password, str):
            errors.append('Password must be a string')
        elif len(password) < cls.MIN_PASSWORD_LENGTH:
            errors.append(f'Password must be at least {cls.MIN_PASSWORD_LENGTH} characters long')
        return errors

    @staticmethod
    def check_types(data: Dict[str, Any], string_fields=(), bool_fields=(),
                    errors: Optional[Dict[str, List[str]]] = None) -> Dict[str, List[str]]:
        """Record an error for each present field holding a value of the wrong JSON type."""
        errors = {} if errors is None else errors
        for field in string_fields:
            if data.get(field) is not None and not isinstance(data[field], str):
                errors.setdefault(field, []).append(f'{field} must be a string')
        for field in bool_fields:
            if field in data and not isinstance(data[field], bool):
                errors.setdefault(field, []).append(f'{field} must be a boolean')
        return errors

    @classmethod
    def validate_user_data(cls, data: Dict[str, Any], partial: bool = False) -> Dict[str, List[str]]:
        """Validate user data and return validation errors."""
        errors = cls.check_types(data, ('email', 'first_name', 'last_name', 'role', 'company_id'), ('is_active',))

        if not partial or 'email' in data:
            if not data.get('email'):
                errors.setdefault('email', []).append('Email is required')
            elif 'email' not in errors and not cls.validate_email(data['email']):
                errors.setdefault('email', []).append('Invalid email format')

        if not partial or 'password' in data:
            password_errors = cls.validate_password(data.get('password'))
            if password_errors:
                errors['password'] = password_errors

        for field in ('first_name', 'last_name'):
            if field not in errors and (not partial or field in data):
                if not cls.sanitize_string(data.get(field) or ''):
                    errors.setdefault(field, []).append(f'{field} is required')

        role = data.get('role')
        if role is not None and 'role' not in errors and role not in UserRole.ALL:
            errors.setdefault('role', []).append(f'Role must be one of: {", ".join(UserRole.ALL)}')

        return errors

    @classmethod
    def validate_provider_data(cls, data: Dict[str, Any], partial: bool = False) -> Dict[str, List[str]]:
        """Validate provider data and return validation errors."""
        errors = cls.validate_user_data({k: v for k, v in data.items() if k != 'role'}, partial=partial)
        cls.check_types(data, ('phone', 'business_name', 'tax_id'), errors=errors)

        tax_id = data.get('tax_id')
        if tax_id and 'tax_id' not in errors and not cls.validate_ruc(tax_id):
            errors.setdefault('tax_id', []).append('RUC must be 11 digits')

        phone = data.get('phone')
        if phone and 'phone' not in errors and not cls.validate_phone(phone):
            errors.setdefault('phone', []).append('Invalid phone number format')

        return errors

    @classmethod
    def validate_invoice_data(cls, data: Dict[str, Any], partial: bool = False) -> Dict[str, List[str]]:
        """Validate invoice data and return validation errors."""
        errors = cls.check_types(data, ('description', 'company_id', 'client_id', 'project_id',
                                        'provider_id', 'currency', 'status'))

        if not partial or 'serie' in data:
            if not cls.validate_serie(data.get('serie')):
                errors.setdefault('serie', []).append('Serie must be 4 alphanumeric characters')

        if not partial or 'correlativo' in data:
            if not cls.validate_correlativo(data.get('correlativo')):
                errors.setdefault('correlativo', []).append('Correlativo must be 1 to 8 digits')

        if not partial or 'total' in data:
            if data.get('total') is None:
                errors.setdefault('total', []).append('Total amount is required')
            elif not cls.validate_currency_amount(data['total']):
                errors.setdefault('total', []).append('Total amount must be a non-negative number')

        for field in ('subtotal', 'tax_amount'):
            if data.get(field) is not None and not cls.validate_currency_amount(data[field]):
                errors.setdefault(field, []).append(f'{field} must be a non-negative number')

        for field in ('issue_date', 'due_date'):
            if data.get(field) and not cls.validate_date(data[field]):
                errors.setdefault(field, []).append(f'Invalid {field} format, expected YYYY-MM-DD')

        currency = data.get('currency')
        if currency is not None and 'currency' not in errors and not re.fullmatch(r'[A-Za-z]{3}', currency):
            errors.setdefault('currency', []).append('Currency must be a 3-letter ISO code')

        return errors

    @classmethod
    def validate_expense_data(cls, data: Dict[str, Any], partial: bool = False) -> Dict[str, List[str]]:
        """Validate expense data and return validation errors."""
        errors = cls.check_types(data, ('description', 'category', 'currency', 'vendor_name',
                                        'vendor_tax_id', 'document_number', 'image_url'))

        if data.get('analysis') is not None and not isinstance(data['analysis'], dict):
            errors.setdefault('analysis', []).append('analysis must be an object')

        if 'description' not in errors and (not partial or 'description' in data):
            if not cls.sanitize_string(data.get('description') or ''):
                errors.setdefault('description', []).append('Description is required')

        if not partial or 'amount' in data:
            amount = data.get('amount')
            if amount is None:
                errors.setdefault('amount', []).append('Amount is required')
            elif not cls.validate_currency_amount(amount) or Decimal(str(amount)) <= 0:
                errors.setdefault('amount', []).append('Amount must be greater than zero')

        if data.get('expense_date') and not cls.validate_date(data['expense_date']):
            errors.setdefault('expense_date', []).append('Invalid expense_date format, expected YYYY-MM-DD')

        vendor_tax_id = data.get('vendor_tax_id')
        if vendor_tax_id and 'vendor_tax_id' not in errors and not cls.validate_ruc(vendor_tax_id):
            errors.setdefault('vendor_tax_id', []).append('RUC must be 11 digits')

        currency = data.get('currency')
        if currency is not None and 'currency' not in errors and not re.fullmatch(r'[A-Za-z]{3}', currency):
            errors.setdefault('currency', []).append('Currency must be a 3-letter ISO code')

        return errors

    @staticmethod
    def sanitize_file_name(filename: str) -> str:
        """Sanitize uploaded file name."""
        if not filename:
            return "unknown_file"

        sanitized = re.sub(r'[^\w\-_\.]', '_', filename)
        sanitized = re.sub(r'\.+', '.', sanitized)

        if len(sanitized) > 255:
            name, ext = sanitized.rsplit('.', 1) if '.' in sanitized else (sanitized, '')
            max_name_length = 255 - len(ext) - 1 if ext else 255
            sanitized = name[:max_name_length] + ('.' + ext if ext else '')

        return sanitized or "file"

    @classmethod
    def is_pdf(cls, file_data: bytes) -> bool:
        return bool(file_data) and file_data.lstrip()[:4] == cls.PDF_SIGNATURE
