"""
Expense model for company spending records
"""

import uuid

from backoffice import db
from backoffice.models.user import utcnow, isoformat


class ExpenseStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'

    ALL = (PENDING, APPROVED, REJECTED)


class Expense(db.Model):
    """Expense registered by a company, optionally backed by an analyzed receipt image."""

    __tablename__ = 'expenses'

    # Primary key
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Multi-tenant support
    company_id = db.Column(db.String(36), nullable=False, index=True)
    created_by = db.Column(db.String(36))

    # Expense details
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(100))
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    currency = db.Column(db.String(3), default='PEN', nullable=False)
    expense_date = db.Column(db.Date)

    # Receipt information
    vendor_name = db.Column(db.String(255))
    vendor_tax_id = db.Column(db.String(20))
    document_number = db.Column(db.String(50))
    image_url = db.Column(db.String(1000))
    analysis = db.Column(db.JSON)

    # Review workflow
    status = db.Column(db.String(20), default=ExpenseStatus.PENDING, nullable=False, index=True)
    approved_by = db.Column(db.String(36))
    approved_at = db.Column(db.DateTime(timezone=True))
    approval_comment = db.Column(db.Text)
    rejected_by = db.Column(db.String(36))
    rejected_at = db.Column(db.DateTime(timezone=True))
    rejection_reason = db.Column(db.Text)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow,
                           onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.Index('idx_expense_company_status', 'company_id', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'created_by': self.created_by,
            'description': self.description,
            'category': self.category,
            'amount': float(self.amount) if self.amount is not None else 0.0,
            'currency': self.currency,
            'expense_date': isoformat(self.expense_date),
            'vendor_name': self.vendor_name,
            'vendor_tax_id': self.vendor_tax_id,
            'document_number': self.document_number,
            'image_url': self.image_url,
            'analysis': self.analysis,
            'status': self.status,
            'approved_by': self.approved_by,
            'approved_at': isoformat(self.approved_at),
            'approval_comment': self.approval_comment,
            'rejected_by': self.rejected_by,
            'rejected_at': isoformat(self.rejected_at),
            'rejection_reason': self.rejection_reason,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }

    def __repr__(self):
        return f'<Expense {self.id} {self.amount} {self.currency} ({self.status})>'
