"""
User model for authentication and multi-tenant support
"""

from datetime import datetime, timezone, timedelta
from werkzeug.security import generate_password_hash, check_password_hash
import uuid

from backoffice import db


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat(value):
    return value.isoformat() if value else None


class UserRole:
    """Roles carried in access tokens and checked by route guards."""

    ADMIN = 'ADMIN'
    ADMIN2 = 'ADMIN2'
    COLABORADOR = 'COLABORADOR'
    USER = 'USER'
    COMPANY = 'COMPANY'
    PROVIDER = 'PROVIDER'
    ACCOUNTING = 'ACCOUNTING'
    TREASURY = 'TREASURY'

    ALL = (ADMIN, ADMIN2, COLABORADOR, USER, COMPANY, PROVIDER, ACCOUNTING, TREASURY)


class PasswordMixin:
    """Password hashing shared by every account that can log in."""

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash or password is None:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class User(PasswordMixin, db.Model):
    """User model for authentication and authorization."""

    __tablename__ = 'users'

    account_type = 'user'

    # Primary key
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Authentication fields
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Profile information
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)

    # Multi-tenant support
    company_id = db.Column(db.String(36), index=True)

    # Authorization
    role = db.Column(db.String(50), nullable=False, default=UserRole.USER)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Security tracking
    last_login_at = db.Column(db.DateTime(timezone=True))
    last_login_ip = db.Column(db.String(45))  # IPv6 support
    failed_login_attempts = db.Column(db.Integer, default=0, nullable=False)
    locked_until = db.Column(db.DateTime(timezone=True))

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow,
                           onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.Index('idx_user_company_role', 'company_id', 'role'),
    )

    def is_account_locked(self):
        """Check if account is locked due to failed login attempts."""
        locked_until = as_utc(self.locked_until)
        if locked_until:
            if utcnow() < locked_until:
                return True
            # Unlock account if lock period has expired
            self.locked_until = None
            self.failed_login_attempts = 0
        return False

    def record_failed_login(self, max_attempts=5, lock_minutes=60):
        """Record a failed login attempt, locking the account at the limit."""
        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1

        if self.failed_login_attempts >= max_attempts:
            self.locked_until = utcnow() + timedelta(minutes=lock_minutes)

    def record_successful_login(self, ip_address=None):
        """Record a successful login."""
        self.last_login_at = utcnow()
        self.last_login_ip = ip_address
        self.failed_login_attempts = 0
        self.locked_until = None

    def to_dict(self, include_security=False):
        """Convert user to dictionary for API responses."""
        data = {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'company_id': self.company_id,
            'role': self.role,
            'account_type': self.account_type,
            'is_active': self.is_active,
            'last_login_at': isoformat(self.last_login_at),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }

        if include_security:
            data.update({
                'failed_login_attempts': self.failed_login_attempts,
                'is_locked': self.is_account_locked()
            })

        return data

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'
