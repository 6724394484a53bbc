"""
Provider Service for supplier accounts
"""

import logging
from typing import Dict, List, Optional

from werkzeug.exceptions import BadRequest, Forbidden, NotFound

from backoffice import db
from backoffice.models.provider import Provider
from backoffice.models.user import UserRole
from backoffice.services.user_service import email_in_use, first_error
from backoffice.utils.validators import DataValidator

logger = logging.getLogger(__name__)

PROVIDER_FIELDS = ('first_name', 'last_name', 'phone', 'business_name', 'tax_id', 'company_id', 'is_active')

# Fields a provider cannot change on its own profile
SELF_LOCKED_FIELDS = ('company_id', 'is_active')


class ProviderService:
    """CRUD operations for providers."""

    @staticmethod
    def _ensure_can_manage(provider: Provider, claims: Optional[Dict]):
        """Providers manage only themselves and companies only their own providers."""
        if not claims:
            return

        role = claims.get('role')
        if role == UserRole.PROVIDER and claims.get('sub') != provider.id:
            logger.warning(f"Provider {claims.get('sub')} tried to modify provider {provider.id}")
            raise Forbidden('Providers can only update their own profile')

        if role == UserRole.COMPANY and provider.company_id != claims.get('company_id'):
            logger.warning(f"Company {claims.get('company_id')} tried to modify provider {provider.id}")
            raise Forbidden('Companies can only manage their own providers')

    @staticmethod
    def _company_scope(data: Dict, claims: Optional[Dict]) -> Dict:
        """Pin company_id to the caller's company for COMPANY accounts."""
        if not claims or claims.get('role') != UserRole.COMPANY:
            return data

        own_company = claims.get('company_id')
        if data.get('company_id') not in (None, own_company):
            raise Forbidden('Companies can only manage their own providers')
        return dict(data, company_id=own_company)

    def create(self, data: Dict, claims: Optional[Dict] = None) -> Provider:
        logger.info(f"Creating provider: {data.get('email')}")

        errors = DataValidator.validate_provider_data(data)
        if errors:
            raise BadRequest(first_error(errors))

        data = self._company_scope(data, claims)

        email = DataValidator.normalize_email(data['email'])
        if email_in_use(email):
            raise BadRequest('Email is already registered')

        provider = Provider(
            email=email,
            first_name=DataValidator.sanitize_string(data['first_name'], 100),
            last_name=DataValidator.sanitize_string(data['last_name'], 100),
            phone=data.get('phone'),
            business_name=DataValidator.sanitize_string(data.get('business_name') or '', 255) or None,
            tax_id=data.get('tax_id') or None,
            company_id=data.get('company_id') or None,
            is_active=data.get('is_active', True)
        )
        provider.set_password(data['password'])

        db.session.add(provider)
        db.session.commit()

        logger.info(f"Provider created with ID: {provider.id}")
        return provider

    def find_all(self, company_id: Optional[str] = None) -> List[Provider]:
        query = Provider.query
        if company_id:
            query = query.filter_by(company_id=company_id)
        return query.order_by(Provider.created_at.desc()).all()

    def find_one(self, provider_id: str) -> Provider:
        provider = db.session.get(Provider, provider_id)
        if not provider:
            logger.warning(f"Provider with ID {provider_id} not found")
            raise NotFound(f'Provider with ID {provider_id} not found')
        return provider

    def update(self, provider_id: str, data: Dict, claims: Optional[Dict] = None) -> Provider:
        logger.info(f"Updating provider with ID: {provider_id}")
        provider = self.find_one(provider_id)
        self._ensure_can_manage(provider, claims)

        errors = DataValidator.validate_provider_data(data, partial=True)
        if errors:
            raise BadRequest(first_error(errors))

        if claims and claims.get('role') == UserRole.PROVIDER:
            ignored = [field for field in SELF_LOCKED_FIELDS if field in data]
            if ignored:
                logger.warning(f"Provider {provider_id} cannot change {', '.join(ignored)} on its own profile")
            data = {key: value for key, value in data.items() if key not in SELF_LOCKED_FIELDS}
        else:
            data = self._company_scope(data, claims) if 'company_id' in data else data

        if 'email' in data:
            email = DataValidator.normalize_email(data['email'])
            if email != provider.email and email_in_use(email, exclude_id=provider.id):
                raise BadRequest('Email is already registered')
            provider.email = email

        for field in PROVIDER_FIELDS:
            if field in data:
                setattr(provider, field, data[field])

        if data.get('password'):
            provider.set_password(data['password'])

        db.session.commit()
        return provider

    def remove(self, provider_id: str) -> None:
        provider = self.find_one(provider_id)
        db.session.delete(provider)
        db.session.commit()
        logger.info(f"Provider deleted: {provider_id}")
