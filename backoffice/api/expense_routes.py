"""
Expense API endpoints
Receipt image analysis, expense records and their approval
"""

from flask import Blueprint, request, jsonify
from werkzeug.exceptions import HTTPException
import logging

from backoffice import db
from backoffice.api.auth import roles_required, get_current_claims, resolve_actor_id, json_body
from backoffice.models.user import UserRole
from backoffice.services.expense_service import ExpenseService

expense_bp = Blueprint('expense', __name__)
logger = logging.getLogger(__name__)

# Initialize services
expense_service = ExpenseService()


@expense_bp.route('/analyze-image', methods=['POST'])
@roles_required()
def analyze_image():
    """Download a receipt image and extract expense fields from it."""
    try:
        data = json_body()
        result = expense_service.analyze_image_with_url(data.get('image_url'))
        return jsonify(result), 200

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Expense image analysis failed: {str(e)}")
        return jsonify({
            'error': 'Analysis failed',
            'message': 'An error occurred while analyzing the image'
        }), 500


@expense_bp.route('', methods=['POST'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def create_expense():
    """Create an expense for the company in the token."""
    try:
        claims = get_current_claims()
        data = json_body()

        expense = expense_service.create(
            data,
            company_id=claims.get('company_id'),
            created_by=resolve_actor_id(claims, data)
        )
        return jsonify(expense.to_dict()), 201

    except HTTPException:
        db.session.rollback()
        raise
    except Exception as e:
        logger.error(f"Expense creation failed: {str(e)}")
        db.session.rollback()
        return jsonify({
            'error': 'Creation failed',
            'message': 'An error occurred while creating the expense'
        }), 500


@expense_bp.route('/<company_id>', methods=['GET'])
@roles_required()
def list_expenses(company_id):
    """List a company's expenses, newest first."""
    expenses = expense_service.find_all(company_id, status=request.args.get('status'))
    return jsonify([expense.to_dict() for expense in expenses]), 200


@expense_bp.route('/<expense_id>/<company_id>', methods=['GET'])
@roles_required()
def get_expense(expense_id, company_id):
    return jsonify(expense_service.find_one(expense_id, company_id).to_dict()), 200


@expense_bp.route('/<expense_id>/<company_id>', methods=['PATCH'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def update_expense(expense_id, company_id):
    expense = expense_service.update(expense_id, company_id, json_body())
    return jsonify(expense.to_dict()), 200


@expense_bp.route('/<expense_id>/<company_id>/approve', methods=['PATCH'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def approve_expense(expense_id, company_id):
    claims = get_current_claims()
    data = json_body()

    expense = expense_service.approve(
        expense_id,
        claims.get('company_id') or company_id,
        approver_id=resolve_actor_id(claims, data),
        comment=data.get('comment')
    )
    return jsonify(expense.to_dict()), 200


@expense_bp.route('/<expense_id>/<company_id>/reject', methods=['PATCH'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def reject_expense(expense_id, company_id):
    claims = get_current_claims()
    data = json_body()

    expense = expense_service.reject(
        expense_id,
        claims.get('company_id') or company_id,
        rejector_id=resolve_actor_id(claims, data),
        reason=data.get('reason')
    )
    return jsonify(expense.to_dict()), 200


@expense_bp.route('/<expense_id>/<company_id>', methods=['DELETE'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2)
def delete_expense(expense_id, company_id):
    expense_service.remove(expense_id, company_id)
    return '', 204
