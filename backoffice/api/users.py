"""
User management API endpoints
"""

from flask import Blueprint, jsonify
import logging

from backoffice.api.auth import roles_required, json_body
from backoffice.models.user import UserRole
from backoffice.services.user_service import UserService

users_bp = Blueprint('users', __name__)
logger = logging.getLogger(__name__)

user_service = UserService()


@users_bp.route('', methods=['POST'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def create_user():
    """Create a back-office user."""
    user = user_service.create(json_body())
    return jsonify(user.to_dict()), 201


@users_bp.route('', methods=['GET'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def list_users():
    """List users, including their lockout state."""
    return jsonify([user.to_dict(include_security=True) for user in user_service.find_all()]), 200


@users_bp.route('/email/<email>', methods=['GET'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def get_user_by_email(email):
    """Get a user by email address."""
    return jsonify(user_service.find_by_email(email).to_dict()), 200


@users_bp.route('/<user_id>', methods=['GET'])
@roles_required()
def get_user(user_id):
    """Get a user by ID."""
    return jsonify(user_service.find_one(user_id).to_dict()), 200


@users_bp.route('/<user_id>', methods=['PATCH'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def update_user(user_id):
    """Update a user."""
    user = user_service.update(user_id, json_body())
    return jsonify(user.to_dict()), 200


@users_bp.route('/<user_id>', methods=['DELETE'])
@roles_required(UserRole.ADMIN)
def delete_user(user_id):
    """Delete a user."""
    user_service.remove(user_id)
    logger.info(f"User {user_id} removed")
    return '', 204
