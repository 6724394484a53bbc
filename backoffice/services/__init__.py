"""
Business services for the back-office API
Contains account, expense and invoice logic plus OCR, extraction and validation
"""

from backoffice.services.ocr_service import OCRService
from backoffice.services.extraction_service import ExtractionService
from backoffice.services.validation_service import ValidationService
from backoffice.services.user_service import UserService
from backoffice.services.provider_service import ProviderService
from backoffice.services.auth_service import AuthService
from backoffice.services.expense_service import ExpenseService
from backoffice.services.invoice_service import InvoiceService

__all__ = [
    'OCRService',
    'ExtractionService',
    'ValidationService',
    'UserService',
    'ProviderService',
    'AuthService',
    'ExpenseService',
    'InvoiceService'
]
