"""
User Service for account management
"""

import logging
from typing import Dict, List, Optional

from werkzeug.exceptions import BadRequest, NotFound

from backoffice import db
from backoffice.models.user import User, UserRole
from backoffice.models.provider import Provider
from backoffice.utils.validators import DataValidator

logger = logging.getLogger(__name__)

USER_FIELDS = ('email', 'first_name', 'last_name', 'company_id', 'role', 'is_active')


def email_in_use(email: str, exclude_id: Optional[str] = None) -> bool:
    """Emails are unique across users and providers, since login looks up both."""
    email = DataValidator.normalize_email(email)
    for model in (User, Provider):
        account = model.query.filter_by(email=email).first()
        if account and account.id != exclude_id:
            return True
    return False


def first_error(errors: Dict[str, List[str]]) -> str:
    field, messages = next(iter(errors.items()))
    return messages[0] if messages else f'Invalid {field}'


class UserService:
    """CRUD operations for back-office users."""

    def create(self, data: Dict) -> User:
        logger.info(f"Creating user: {data.get('email')}")

        errors = DataValidator.validate_user_data(data)
        if errors:
            raise BadRequest(first_error(errors))

        email = DataValidator.normalize_email(data['email'])
        if email_in_use(email):
            logger.warning(f"User with email {email} already exists")
            raise BadRequest('Email is already registered')

        role = data.get('role') or UserRole.USER
        if role == UserRole.COMPANY and not data.get('company_id'):
            logger.warning("company_id is required for COMPANY users")
            raise BadRequest('company_id is required for COMPANY users')

        user = User(
            email=email,
            first_name=DataValidator.sanitize_string(data['first_name'], 100),
            last_name=DataValidator.sanitize_string(data['last_name'], 100),
            role=role,
            company_id=data.get('company_id') or None,
            is_active=data.get('is_active', True)
        )
        user.set_password(data['password'])

        db.session.add(user)
        db.session.commit()

        logger.info(f"User created with ID: {user.id}")
        return user

    def find_all(self) -> List[User]:
        return User.query.order_by(User.created_at.desc()).all()

    def find_one(self, user_id: str) -> User:
        user = db.session.get(User, user_id)
        if not user:
            logger.warning(f"User with ID {user_id} not found")
            raise NotFound(f'User with ID {user_id} not found')
        return user

    def find_by_email(self, email: str) -> User:
        user = User.query.filter_by(email=DataValidator.normalize_email(email)).first()
        if not user:
            logger.warning(f"User with email {email} not found")
            raise NotFound(f'User with email {email} not found')
        return user

    def update(self, user_id: str, data: Dict) -> User:
        logger.info(f"Updating user with ID: {user_id}")
        user = self.find_one(user_id)

        errors = DataValidator.validate_user_data(data, partial=True)
        if errors:
            raise BadRequest(first_error(errors))

        role = data.get('role', user.role)
        company_id = data.get('company_id', user.company_id)
        if role == UserRole.COMPANY and not company_id:
            logger.warning("company_id is required for COMPANY users")
            raise BadRequest('company_id is required for COMPANY users')

        if 'email' in data:
            email = DataValidator.normalize_email(data['email'])
            if email != user.email and email_in_use(email, exclude_id=user.id):
                raise BadRequest('Email is already registered')
            data = dict(data, email=email)

        for field in USER_FIELDS:
            if field in data:
                setattr(user, field, data[field])

        if data.get('password'):
            user.set_password(data['password'])

        db.session.commit()

        logger.info(f"User updated: {user_id}")
        return user

    def remove(self, user_id: str) -> None:
        user = self.find_one(user_id)
        db.session.delete(user)
        db.session.commit()
        logger.info(f"User deleted: {user_id}")
