"""
Database models for the back-office API
"""

from backoffice.models.user import User, UserRole
from backoffice.models.provider import Provider
from backoffice.models.invoice import Invoice, InvoiceStatus, PaymentStatus
from backoffice.models.expense import Expense, ExpenseStatus

__all__ = [
    'User',
    'UserRole',
    'Provider',
    'Invoice',
    'InvoiceStatus',
    'PaymentStatus',
    'Expense',
    'ExpenseStatus'
]
