"""
Authentication API endpoints
Handles registration, login, JWT tokens, and the role guard shared by every blueprint
"""

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity, verify_jwt_in_request
from functools import wraps
from werkzeug.exceptions import BadRequest, Forbidden, HTTPException
import logging

from backoffice import db, limiter
from backoffice.services.auth_service import AuthService

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

auth_service = AuthService()


def roles_required(*roles):
    """Decorator requiring a valid bearer token and, when roles are given, one of them."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()

            if roles:
                role = get_jwt().get('role')
                if role not in roles:
                    logger.warning(f"Role {role} denied access to {request.path}")
                    raise Forbidden(f'This action requires one of the roles: {", ".join(roles)}')

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def get_current_claims():
    """Claims of the verified token in the current request."""
    return get_jwt()


def resolve_actor_id(claims, body=None):
    """Id of the acting account: the _id claim, then sub, then user_id from the body."""
    if claims and claims.get('_id'):
        logger.debug("Actor id resolved from _id claim")
        return claims['_id']

    if claims and claims.get('sub'):
        logger.debug("Actor id resolved from sub claim")
        return claims['sub']

    if body and body.get('user_id'):
        logger.debug("Actor id resolved from request body user_id")
        return body['user_id']

    logger.warning("Could not resolve actor id from token or request body")
    return None


def json_body():
    """JSON object from the request body; an empty body reads as {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequest('Request body must be a JSON object')
    return data


def client_ip():
    return request.environ.get('HTTP_X_FORWARDED_FOR', request.remote_addr)


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    """Register a new user."""
    try:
        data = json_body()
        result = auth_service.register(data)

        logger.info(f"New user registered: {result['user']['email']}")
        return jsonify(result), 201

    except HTTPException:
        db.session.rollback()
        raise
    except Exception as e:
        logger.error(f"User registration failed: {str(e)}")
        db.session.rollback()
        return jsonify({
            'error': 'Registration failed',
            'message': 'An error occurred during registration'
        }), 500


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    """Authenticate a user or provider and return JWT tokens."""
    try:
        data = json_body()
        result = auth_service.login(data.get('email'), data.get('password'), client_ip())
        return jsonify(result), 200

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login failed: {str(e)}")
        db.session.rollback()
        return jsonify({
            'error': 'Login failed',
            'message': 'An error occurred during login'
        }), 500


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    """Refresh JWT access token."""
    return jsonify(auth_service.refresh(get_jwt_identity())), 200


@auth_bp.route('/validate-token', methods=['GET'])
@roles_required()
def validate_token():
    """Return the account behind the bearer token."""
    return jsonify({
        'valid': True,
        'user': auth_service.validate_token(get_current_claims())
    }), 200


@auth_bp.route('/change-password', methods=['POST'])
@roles_required()
def change_password():
    """Change the password of the authenticated account."""
    try:
        data = json_body()
        auth_service.change_password(
            get_current_claims(),
            data.get('current_password'),
            data.get('new_password')
        )
        return jsonify({'message': 'Password changed successfully'}), 200

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Password change failed: {str(e)}")
        db.session.rollback()
        return jsonify({
            'error': 'Password change failed',
            'message': 'An error occurred while changing password'
        }), 500
