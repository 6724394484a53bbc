"""
Invoice API endpoints
Invoice validation from documents, CRUD, review and payment workflow, and PDF attachments
"""

from flask import Blueprint, request, jsonify, current_app, send_file
from werkzeug.exceptions import BadRequest, HTTPException
import io
import logging

from backoffice import db, limiter
from backoffice.api.auth import roles_required, get_current_claims, resolve_actor_id, json_body
from backoffice.models.user import UserRole
from backoffice.services.invoice_service import InvoiceService
from backoffice.utils.uploads import read_upload, read_pdf_upload

invoice_bp = Blueprint('invoice', __name__)
logger = logging.getLogger(__name__)

# Initialize services
invoice_service = InvoiceService()

ALL_INVOICE_ROLES = (
    UserRole.ADMIN, UserRole.PROVIDER, UserRole.USER,
    UserRole.COMPANY, UserRole.ACCOUNTING, UserRole.TREASURY
)


def send_pdf(file_data, filename):
    """Serve PDF bytes inline."""
    return send_file(
        io.BytesIO(file_data),
        mimetype='application/pdf',
        as_attachment=False,
        download_name=filename
    )


@invoice_bp.route('/validate-from-image', methods=['POST'])
@roles_required()
@limiter.limit("20 per minute")
def validate_from_image():
    """Read an invoice image, PDF or XML and validate its fields."""
    file = request.files.get('invoiceImage')
    logger.info(f"Received file: {file.filename if file else None}")

    try:
        upload = read_upload(file, current_app.config['INVOICE_IMAGE_MIME_TYPES'])
        result = invoice_service.validate_invoice_from_image(upload['file_data'], upload['mime_type'])

        logger.info(f"Validation result for {upload['filename']}: valid={result['is_valid']}")
        return jsonify(result), 200

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error processing file {file.filename if file else None}: {str(e)}")
        return jsonify({
            'error': 'Validation failed',
            'message': 'Error processing the file or validating the invoice'
        }), 500


@invoice_bp.route('', methods=['POST'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER)
def create_invoice():
    """Create an invoice as DRAFT or PENDING."""
    try:
        invoice = invoice_service.create(json_body(), get_current_claims())
        return jsonify(invoice.to_dict()), 201

    except HTTPException:
        db.session.rollback()
        raise
    except Exception as e:
        logger.error(f"Invoice creation failed: {str(e)}")
        db.session.rollback()
        return jsonify({
            'error': 'Creation failed',
            'message': 'An error occurred while creating the invoice'
        }), 500


@invoice_bp.route('', methods=['GET'])
@roles_required(*ALL_INVOICE_ROLES)
def list_invoices():
    """List invoices with filtering; providers only see their own."""
    filters = {
        'status': request.args.get('status'),
        'payment_status': request.args.get('payment_status'),
        'company_id': request.args.get('company_id'),
        'provider_id': request.args.get('provider_id')
    }
    invoices = invoice_service.find_all(get_current_claims(), filters)

    return jsonify([invoice.to_dict() for invoice in invoices]), 200


@invoice_bp.route('/<invoice_id>', methods=['GET'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER, UserRole.USER, UserRole.ACCOUNTING)
def get_invoice(invoice_id):
    """Get an invoice by ID."""
    return jsonify(invoice_service.find_one(invoice_id).to_dict()), 200


@invoice_bp.route('/client/<client_id>', methods=['GET'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER, UserRole.USER)
def get_invoices_by_client(client_id):
    """List invoices billed to a client."""
    return jsonify([invoice.to_dict() for invoice in invoice_service.find_by_client(client_id)]), 200


@invoice_bp.route('/project/<project_id>', methods=['GET'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER, UserRole.USER)
def get_invoices_by_project(project_id):
    """List invoices for a project."""
    return jsonify([invoice.to_dict() for invoice in invoice_service.find_by_project(project_id)]), 200


@invoice_bp.route('/<invoice_id>', methods=['PATCH'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER)
def update_invoice(invoice_id):
    """Update an invoice that has not been approved."""
    invoice = invoice_service.update(invoice_id, json_body(), get_current_claims())
    return jsonify(invoice.to_dict()), 200


@invoice_bp.route('/<invoice_id>/submit', methods=['POST'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER)
def submit_invoice(invoice_id):
    """Move a DRAFT invoice to PENDING."""
    invoice = invoice_service.submit(invoice_id, get_current_claims())
    return jsonify(invoice.to_dict()), 200


@invoice_bp.route('/<invoice_id>/status', methods=['PUT'])
@roles_required(UserRole.ACCOUNTING)
def update_invoice_status(invoice_id):
    """Approve or reject a pending invoice."""
    data = json_body()

    invoice = invoice_service.update_status(
        invoice_id,
        data.get('status'),
        reason=data.get('reason'),
        actor_id=resolve_actor_id(get_current_claims(), data)
    )
    return jsonify(invoice.to_dict()), 200


@invoice_bp.route('/<invoice_id>/reject', methods=['PUT'])
@roles_required(UserRole.ADMIN, UserRole.ADMIN2, UserRole.ACCOUNTING)
def reject_invoice(invoice_id):
    """Reject a PENDING or APPROVED invoice that has not been paid."""
    data = json_body()

    invoice = invoice_service.reject_invoice(
        invoice_id,
        data.get('rejection_reason'),
        actor_id=resolve_actor_id(get_current_claims(), data)
    )
    return jsonify(invoice.to_dict()), 200


@invoice_bp.route('/<invoice_id>/payment-status', methods=['PUT'])
@roles_required(UserRole.TREASURY)
def update_payment_status(invoice_id):
    """Record the treasury payment decision on an APPROVED invoice."""
    data = json_body()

    invoice = invoice_service.update_payment_status(
        invoice_id,
        data.get('status'),
        rejection_reason=data.get('rejection_reason')
    )
    return jsonify(invoice.to_dict()), 200


@invoice_bp.route('/<invoice_id>', methods=['DELETE'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER)
def delete_invoice(invoice_id):
    """Delete an invoice; providers may delete only their own."""
    invoice_service.remove(invoice_id, get_current_claims())
    return '', 204


@invoice_bp.route('/<invoice_id>/acceptance-document', methods=['POST'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER)
def upload_acceptance_document(invoice_id):
    """Attach the signed acceptance document (PDF) to an invoice."""
    upload = read_pdf_upload(request.files.get('acceptanceDocument'))

    invoice = invoice_service.upload_acceptance_document(
        invoice_id,
        upload['file_data'],
        upload['filename'],
        get_current_claims()
    )
    return jsonify(invoice.to_dict()), 200


@invoice_bp.route('/<invoice_id>/acceptance-document/download', methods=['GET'])
@roles_required(UserRole.ADMIN, UserRole.PROVIDER, UserRole.USER)
def download_acceptance_document(invoice_id):
    """Download the acceptance document PDF."""
    file_data, filename = invoice_service.download_acceptance_document(invoice_id)
    return send_pdf(file_data, filename)


@invoice_bp.route('/<invoice_id>/pdf', methods=['GET'])
@roles_required()
def get_invoice_pdf(invoice_id):
    """Download the invoice PDF."""
    file_data, filename = invoice_service.get_pdf(invoice_id)
    return send_pdf(file_data, filename)


@invoice_bp.route('/upload', methods=['POST'])
@roles_required()
@limiter.limit("10 per minute")
def upload_invoice_and_acceptance():
    """Create an invoice from its PDF, optionally with the acceptance document."""
    try:
        files = request.files.getlist('files')
        if not files:
            raise BadRequest('No files were received')
        if len(files) > 2:
            raise BadRequest('At most two files are allowed: invoice and acceptance document')

        uploads = [read_pdf_upload(file) for file in files]
        result = invoice_service.upload_invoice_and_acceptance(
            uploads,
            request.form.to_dict(),
            get_current_claims()
        )

        return jsonify({
            'success': True,
            'message': 'Files uploaded successfully',
            'data': result
        }), 201

    except HTTPException:
        db.session.rollback()
        raise
    except Exception as e:
        logger.error(f"Invoice upload failed: {str(e)}")
        db.session.rollback()
        return jsonify({
            'error': 'Upload failed',
            'message': f'Error uploading files: {str(e)}'
        }), 500
