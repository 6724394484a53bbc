"""
Authentication Service
Registration, credential checks with account lockout, and JWT issuance
"""

import logging
import uuid
from typing import Dict, Optional, Union

from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token
from werkzeug.exceptions import BadRequest, Forbidden, HTTPException, NotFound, Unauthorized

from backoffice import db
from backoffice.models.user import User, UserRole
from backoffice.models.provider import Provider
from backoffice.services.user_service import UserService
from backoffice.utils.validators import DataValidator

logger = logging.getLogger(__name__)

Account = Union[User, Provider]


class Locked(HTTPException):
    code = 423
    description = 'Account is temporarily locked due to failed login attempts'


class AuthService:
    """Service behind the /auth endpoints."""

    def __init__(self, user_service: Optional[UserService] = None):
        self.user_service = user_service or UserService()

    def register(self, data: Dict) -> Dict:
        data = dict(data or {})
        role = data.get('role') or UserRole.USER

        if role == UserRole.COMPANY:
            data['company_id'] = str(uuid.uuid4())
            logger.info(f"Assigned company_id {data['company_id']} to new COMPANY account")

        user = self.user_service.create(dict(data, role=role, is_active=True))

        return {
            'access_token': self.generate_token(user),
            'user': user.to_dict()
        }

    def login(self, email: str, password: str, ip_address: Optional[str] = None) -> Dict:
        if not email or not password:
            raise BadRequest('Email and password are required')
        if not isinstance(email, str) or not isinstance(password, str):
            raise BadRequest('Email and password must be strings')

        account = self.validate_user(email, password)
        if not account:
            raise Unauthorized('Invalid email or password')

        if not account.is_active:
            raise Forbidden('Account is deactivated')

        if isinstance(account, User):
            account.record_successful_login(ip_address)
            db.session.commit()

        logger.info(f"{account.account_type.capitalize()} logged in: {account.email} from {ip_address}")

        return {
            'success': True,
            'data': {
                'user': account.to_dict(),
                'token': self.generate_token(account),
                'refresh_token': create_refresh_token(identity=str(account.id))
            }
        }

    def validate_user(self, email: str, password: str) -> Optional[Account]:
        """Look the email up in users, then providers; None on bad credentials."""
        email = DataValidator.normalize_email(email)
        logger.debug(f"Validating credentials for: {email}")

        user = User.query.filter_by(email=email).first()
        if user:
            if user.is_account_locked():
                raise Locked()

            if not user.check_password(password):
                user.record_failed_login(
                    max_attempts=current_app.config.get('MAX_FAILED_LOGINS', 5),
                    lock_minutes=current_app.config.get('ACCOUNT_LOCK_MINUTES', 60)
                )
                db.session.commit()
                logger.warning(f"Invalid password for user: {email}")
                return None
            return user

        provider = Provider.query.filter_by(email=email).first()
        if provider:
            if not provider.check_password(password):
                logger.warning(f"Invalid password for provider: {email}")
                return None
            return provider

        logger.warning(f"User/provider not found: {email}")
        return None

    @staticmethod
    def token_claims(account: Account) -> Dict:
        return {
            'email': account.email,
            'role': account.role,
            'first_name': account.first_name,
            'last_name': account.last_name,
            'company_id': account.company_id,
            'account_type': account.account_type
        }

    def generate_token(self, account: Account) -> str:
        logger.debug(f"Generating token for: {account.email}")
        return create_access_token(identity=str(account.id), additional_claims=self.token_claims(account))

    def find_account(self, account_id: str, account_type: Optional[str] = None) -> Optional[Account]:
        if account_type == Provider.account_type:
            return db.session.get(Provider, account_id)
        if account_type == User.account_type:
            return db.session.get(User, account_id)
        return db.session.get(User, account_id) or db.session.get(Provider, account_id)

    def refresh(self, account_id: str) -> Dict:
        account = self.find_account(account_id)
        if not account or not account.is_active:
            raise Unauthorized('User not found or inactive')

        return {
            'access_token': self.generate_token(account),
            'expires_in': current_app.config['JWT_ACCESS_TOKEN_EXPIRES'].total_seconds()
        }

    def validate_token(self, claims: Dict) -> Dict:
        account = self.find_account(claims.get('sub'), claims.get('account_type'))
        if not account:
            raise Unauthorized('Invalid token')
        return account.to_dict()

    def change_password(self, claims: Dict, current_password: str, new_password: str) -> None:
        account = self.find_account(claims.get('sub'), claims.get('account_type'))
        if not account:
            raise NotFound('User not found')

        if not current_password or not new_password:
            raise BadRequest('Current password and new password are required')
        if not isinstance(current_password, str):
            raise BadRequest('Current password must be a string')

        if not account.check_password(current_password):
            raise Unauthorized('Current password is incorrect')

        password_errors = DataValidator.validate_password(new_password)
        if password_errors:
            raise BadRequest(password_errors[0])

        account.set_password(new_password)
        db.session.commit()
        logger.info(f"Password changed for: {account.email}")
