"""
Provider management API endpoints
"""

from flask import Blueprint, request, jsonify
import logging

from backoffice.api.auth import roles_required, get_current_claims, json_body
from backoffice.models.user import UserRole
from backoffice.services.provider_service import ProviderService

providers_bp = Blueprint('providers', __name__)
logger = logging.getLogger(__name__)

provider_service = ProviderService()


@providers_bp.route('', methods=['POST'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2, UserRole.COMPANY)
def create_provider():
    """Create a provider; companies register providers for themselves."""
    provider = provider_service.create(json_body(), get_current_claims())
    return jsonify(provider.to_dict()), 201


@providers_bp.route('', methods=['GET'])
@roles_required()
def list_providers():
    """List providers, optionally for one company."""
    providers = provider_service.find_all(company_id=request.args.get('company_id'))
    return jsonify([provider.to_dict() for provider in providers]), 200


@providers_bp.route('/<provider_id>', methods=['GET'])
@roles_required()
def get_provider(provider_id):
    """Get a provider by ID."""
    return jsonify(provider_service.find_one(provider_id).to_dict()), 200


@providers_bp.route('/<provider_id>', methods=['PATCH'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2, UserRole.COMPANY, UserRole.PROVIDER)
def update_provider(provider_id):
    """Update a provider profile."""
    provider = provider_service.update(provider_id, json_body(), get_current_claims())
    return jsonify(provider.to_dict()), 200


@providers_bp.route('/<provider_id>', methods=['DELETE'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def delete_provider(provider_id):
    """Delete a provider."""
    provider_service.remove(provider_id)
    logger.info(f"Provider {provider_id} removed")
    return '', 204
