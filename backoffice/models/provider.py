"""
Provider model for suppliers that bill client companies
"""

import uuid

from backoffice import db
from backoffice.models.user import PasswordMixin, UserRole, utcnow, isoformat


class Provider(PasswordMixin, db.Model):
    """Supplier account; logs in like a user and always carries the PROVIDER role."""

    __tablename__ = 'providers'

    account_type = 'provider'

    # Primary key
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Authentication fields
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Contact information
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(50))

    # Business information
    business_name = db.Column(db.String(255))
    tax_id = db.Column(db.String(20), index=True)  # RUC

    # Client company this provider bills
    company_id = db.Column(db.String(36), index=True)

    role = db.Column(db.String(50), nullable=False, default=UserRole.PROVIDER)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow,
                           onupdate=utcnow, nullable=False)

    @property
    def display_name(self):
        """Business name if available, otherwise the contact's name."""
        return self.business_name or self.full_name

    def to_dict(self):
        """Convert provider to dictionary for API responses."""
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'display_name': self.display_name,
            'phone': self.phone,
            'business_name': self.business_name,
            'tax_id': self.tax_id,
            'company_id': self.company_id,
            'role': self.role,
            'account_type': self.account_type,
            'is_active': self.is_active,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }

    def __repr__(self):
        return f'<Provider {self.email} ({self.business_name})>'
