"""
Invoice model for provider invoices and their approval workflow
"""

from datetime import date
import base64
import uuid

from backoffice import db
from backoffice.models.user import utcnow, isoformat


class InvoiceStatus:
    DRAFT = 'DRAFT'
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'

    ALL = (DRAFT, PENDING, APPROVED, REJECTED)


class PaymentStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'

    ALL = (PENDING, APPROVED, REJECTED)


class Invoice(db.Model):
    """Provider invoice with its attachments, review and payment state."""

    __tablename__ = 'invoices'

    # Primary key
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Invoice identification
    serie = db.Column(db.String(20), nullable=False, index=True)
    correlativo = db.Column(db.String(20), nullable=False)
    description = db.Column(db.Text)

    # Ownership
    provider_id = db.Column(db.String(36), db.ForeignKey('providers.id'), index=True)
    company_id = db.Column(db.String(36), index=True)
    client_id = db.Column(db.String(36), index=True)
    project_id = db.Column(db.String(36), index=True)
    created_by = db.Column(db.String(36))

    # Financial information
    currency = db.Column(db.String(3), default='PEN', nullable=False)
    subtotal = db.Column(db.Numeric(15, 2), default=0)
    tax_amount = db.Column(db.Numeric(15, 2), default=0)
    total = db.Column(db.Numeric(15, 2), default=0, nullable=False)
    issue_date = db.Column(db.Date)
    due_date = db.Column(db.Date)

    # Review workflow
    status = db.Column(db.String(20), default=InvoiceStatus.PENDING, nullable=False, index=True)
    rejection_reason = db.Column(db.Text)
    approved_by = db.Column(db.String(36))
    approved_at = db.Column(db.DateTime(timezone=True))
    rejected_by = db.Column(db.String(36))
    rejected_at = db.Column(db.DateTime(timezone=True))

    # Payment sub-status, only meaningful once approved
    payment_status = db.Column(db.String(20), default=PaymentStatus.PENDING, nullable=False, index=True)
    payment_rejection_reason = db.Column(db.Text)
    payment_updated_at = db.Column(db.DateTime(timezone=True))

    # Attachments, base64 encoded
    pdf_file = db.Column(db.Text)
    pdf_filename = db.Column(db.String(255))
    acceptance_document = db.Column(db.Text)
    acceptance_document_filename = db.Column(db.String(255))

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow,
                           onupdate=utcnow, nullable=False)

    provider = db.relationship('Provider', backref=db.backref('invoices', lazy='dynamic'))

    __table_args__ = (
        db.Index('idx_invoice_status_payment', 'status', 'payment_status'),
        db.UniqueConstraint('provider_id', 'serie', 'correlativo', name='uq_invoice_provider_serie_correlativo'),
    )

    @property
    def number(self):
        """Printed document number, e.g. F001-00000123."""
        return f"{self.serie}-{self.correlativo}"

    @property
    def is_overdue(self):
        if not self.due_date or self.payment_status == PaymentStatus.APPROVED:
            return False
        return date.today() > self.due_date

    def attach_pdf(self, file_data, filename=None):
        self.pdf_file = base64.b64encode(file_data).decode('ascii')
        self.pdf_filename = filename

    def pdf_bytes(self):
        return base64.b64decode(self.pdf_file) if self.pdf_file else None

    def attach_acceptance_document(self, file_data, filename=None):
        self.acceptance_document = base64.b64encode(file_data).decode('ascii')
        self.acceptance_document_filename = filename

    def acceptance_document_bytes(self):
        return base64.b64decode(self.acceptance_document) if self.acceptance_document else None

    @staticmethod
    def _amount(value):
        return float(value) if value is not None else 0.0

    def to_dict(self):
        """Convert invoice to dictionary for API responses."""
        return {
            'id': self.id,
            'serie': self.serie,
            'correlativo': self.correlativo,
            'number': self.number,
            'description': self.description,
            'provider_id': self.provider_id,
            'company_id': self.company_id,
            'client_id': self.client_id,
            'project_id': self.project_id,
            'created_by': self.created_by,
            'currency': self.currency,
            'amounts': {
                'subtotal': self._amount(self.subtotal),
                'tax': self._amount(self.tax_amount),
                'total': self._amount(self.total)
            },
            'issue_date': isoformat(self.issue_date),
            'due_date': isoformat(self.due_date),
            'status': self.status,
            'review': {
                'rejection_reason': self.rejection_reason,
                'approved_by': self.approved_by,
                'approved_at': isoformat(self.approved_at),
                'rejected_by': self.rejected_by,
                'rejected_at': isoformat(self.rejected_at)
            },
            'payment': {
                'status': self.payment_status,
                'rejection_reason': self.payment_rejection_reason,
                'updated_at': isoformat(self.payment_updated_at)
            },
            'attachments': {
                'has_pdf': bool(self.pdf_file),
                'pdf_filename': self.pdf_filename,
                'has_acceptance_document': bool(self.acceptance_document),
                'acceptance_document_filename': self.acceptance_document_filename
            },
            'is_overdue': self.is_overdue,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }

    def __repr__(self):
        return f'<Invoice {self.number} ({self.status}/{self.payment_status})>'

