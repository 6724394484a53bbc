"""
Invoice Service
Provider invoices: creation, review workflow, payment status and PDF attachments
"""

import logging
from typing import Dict, List, Optional, Tuple

from flask import current_app
from werkzeug.exceptions import BadRequest, Forbidden, InternalServerError, NotFound

from backoffice import db
from backoffice.models.invoice import Invoice, InvoiceStatus, PaymentStatus
from backoffice.models.user import UserRole, utcnow
from backoffice.services.extraction_service import ExtractionService
from backoffice.services.ocr_service import OCRService
from backoffice.services.user_service import first_error
from backoffice.services.validation_service import ValidationService
from backoffice.utils.validators import DataValidator

logger = logging.getLogger(__name__)

INVOICE_FIELDS = ('serie', 'correlativo', 'description', 'company_id', 'client_id', 'project_id',
                  'currency', 'subtotal', 'tax_amount', 'total', 'issue_date', 'due_date')
AMOUNT_FIELDS = ('subtotal', 'tax_amount', 'total')
DATE_FIELDS = ('issue_date', 'due_date')

SUMMARY_FIELDS = ('serie', 'correlativo', 'ruc', 'issue_date', 'currency', 'total')


class InvoiceService:
    """Service behind the /invoices endpoints."""

    def __init__(self, ocr_service: Optional[OCRService] = None,
                 extraction_service: Optional[ExtractionService] = None,
                 validation_service: Optional[ValidationService] = None):
        self.ocr_service = ocr_service or OCRService()
        self.extraction_service = extraction_service or ExtractionService()
        self.validation_service = validation_service or ValidationService()

    # Document validation

    def validate_invoice_from_image(self, file_data: bytes, mime_type: str) -> Dict:
        """Read an invoice image, PDF or XML and validate its fields locally."""
        threshold = current_app.config.get('OCR_CONFIDENCE_THRESHOLD', 0.5)
        try:
            text_result = self.ocr_service.extract_document_text(file_data, mime_type, threshold)
        except ValueError as e:
            raise BadRequest(str(e))
        except RuntimeError as e:
            raise InternalServerError(f'Error processing the file: {str(e)}')

        extracted = self.extraction_service.extract_invoice_data(text_result.get('full_text', ''))
        validation = self.validation_service.validate_invoice_data(extracted)

        return {
            'is_valid': validation['is_valid'],
            'invoice_data': {field: extracted.get(field) for field in SUMMARY_FIELDS},
            'errors': validation['errors'],
            'warnings': validation['warnings'],
            'confidence': validation['confidence']
        }

    # Helpers

    @staticmethod
    def _is_provider(claims: Optional[Dict]) -> bool:
        return bool(claims) and claims.get('role') == UserRole.PROVIDER

    def _ensure_owner(self, invoice: Invoice, claims: Optional[Dict]):
        if self._is_provider(claims) and invoice.provider_id != claims.get('sub'):
            logger.warning(f"Provider {claims.get('sub')} tried to modify invoice {invoice.id}")
            raise Forbidden('Providers can only modify their own invoices')

    def _ensure_unique_number(self, provider_id: Optional[str], serie: str, correlativo: str,
                              exclude_id: Optional[str] = None):
        existing = Invoice.query.filter_by(
            provider_id=provider_id,
            serie=serie,
            correlativo=correlativo
        ).first()
        if existing and existing.id != exclude_id:
            raise BadRequest(f'Invoice {serie}-{correlativo} already exists for this provider')

    @staticmethod
    def _apply_fields(invoice: Invoice, data: Dict):
        for field in INVOICE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field in AMOUNT_FIELDS:
                value = DataValidator.to_decimal(value)
            elif field in DATE_FIELDS:
                value = DataValidator.parse_date(value)
            elif field == 'serie' and value:
                value = str(value).strip().upper()
            elif field == 'correlativo' and value is not None:
                value = str(value).strip()
            elif field == 'currency' and value:
                value = value.upper()
            setattr(invoice, field, value)

    # CRUD

    def create(self, data: Dict, claims: Optional[Dict] = None, commit: bool = True) -> Invoice:
        data = dict(data or {})
        claims = claims or {}

        status = data.get('status') or InvoiceStatus.PENDING
        if status not in (InvoiceStatus.DRAFT, InvoiceStatus.PENDING):
            raise BadRequest('New invoices must be DRAFT or PENDING')

        errors = DataValidator.validate_invoice_data(data)
        if errors:
            raise BadRequest(first_error(errors))

        provider_id = claims.get('sub') if self._is_provider(claims) else data.get('provider_id')
        serie = str(data['serie']).strip().upper()
        correlativo = str(data['correlativo']).strip()
        self._ensure_unique_number(provider_id, serie, correlativo)

        invoice = Invoice(
            provider_id=provider_id,
            created_by=claims.get('sub'),
            status=status,
            payment_status=PaymentStatus.PENDING
        )
        self._apply_fields(invoice, data)
        if not invoice.company_id:
            invoice.company_id = claims.get('company_id')

        db.session.add(invoice)
        if commit:
            db.session.commit()
            logger.info(f"Invoice {invoice.number} created with ID {invoice.id} ({status})")
        return invoice

    def find_all(self, claims: Optional[Dict] = None, filters: Optional[Dict] = None) -> List[Invoice]:
        filters = filters or {}
        query = Invoice.query

        if self._is_provider(claims):
            query = query.filter_by(provider_id=claims.get('sub'))
        elif filters.get('provider_id'):
            query = query.filter_by(provider_id=filters['provider_id'])

        if filters.get('status'):
            if filters['status'] not in InvoiceStatus.ALL:
                raise BadRequest(f'Status must be one of: {", ".join(InvoiceStatus.ALL)}')
            query = query.filter_by(status=filters['status'])

        if filters.get('payment_status'):
            if filters['payment_status'] not in PaymentStatus.ALL:
                raise BadRequest(f'Payment status must be one of: {", ".join(PaymentStatus.ALL)}')
            query = query.filter_by(payment_status=filters['payment_status'])

        if filters.get('company_id'):
            query = query.filter_by(company_id=filters['company_id'])

        return query.order_by(Invoice.created_at.desc()).all()

    def find_one(self, invoice_id: str) -> Invoice:
        invoice = db.session.get(Invoice, invoice_id)
        if not invoice:
            logger.warning(f"Invoice with ID {invoice_id} not found")
            raise NotFound(f'Invoice with ID {invoice_id} not found')
        return invoice

    def find_by_client(self, client_id: str) -> List[Invoice]:
        return Invoice.query.filter_by(client_id=client_id).order_by(Invoice.created_at.desc()).all()

    def find_by_project(self, project_id: str) -> List[Invoice]:
        return Invoice.query.filter_by(project_id=project_id).order_by(Invoice.created_at.desc()).all()

    def update(self, invoice_id: str, data: Dict, claims: Optional[Dict] = None) -> Invoice:
        invoice = self.find_one(invoice_id)
        self._ensure_owner(invoice, claims)

        if invoice.status == InvoiceStatus.APPROVED:
            raise BadRequest('Approved invoices cannot be modified')

        errors = DataValidator.validate_invoice_data(data, partial=True)
        if errors:
            raise BadRequest(first_error(errors))

        if 'serie' in data or 'correlativo' in data:
            serie = str(data.get('serie', invoice.serie)).strip().upper()
            correlativo = str(data.get('correlativo', invoice.correlativo)).strip()
            self._ensure_unique_number(invoice.provider_id, serie, correlativo, exclude_id=invoice.id)

        self._apply_fields(invoice, data)
        db.session.commit()

        logger.info(f"Invoice {invoice_id} updated")
        return invoice

    def remove(self, invoice_id: str, claims: Optional[Dict] = None) -> None:
        invoice = self.find_one(invoice_id)
        self._ensure_owner(invoice, claims)
        db.session.delete(invoice)
        db.session.commit()
        logger.info(f"Invoice deleted: {invoice_id}")

    # Review workflow

    def submit(self, invoice_id: str, claims: Optional[Dict] = None) -> Invoice:
        invoice = self.find_one(invoice_id)
        self._ensure_owner(invoice, claims)

        if invoice.status != InvoiceStatus.DRAFT:
            raise BadRequest(f'Only DRAFT invoices can be submitted (current status: {invoice.status})')

        invoice.status = InvoiceStatus.PENDING
        db.session.commit()

        logger.info(f"Invoice {invoice_id} submitted for review")
        return invoice

    def update_status(self, invoice_id: str, status: str, reason: Optional[str] = None,
                      actor_id: Optional[str] = None) -> Invoice:
        if status not in (InvoiceStatus.APPROVED, InvoiceStatus.REJECTED):
            raise BadRequest('Status must be APPROVED or REJECTED')

        invoice = self.find_one(invoice_id)

        if invoice.status != InvoiceStatus.PENDING:
            raise BadRequest(f'Only PENDING invoices can be reviewed (current status: {invoice.status})')

        if status == InvoiceStatus.APPROVED:
            invoice.status = InvoiceStatus.APPROVED
            invoice.approved_by = actor_id
            invoice.approved_at = utcnow()
            invoice.rejection_reason = None
        else:
            if not isinstance(reason, str) or not reason.strip():
                raise BadRequest('A reason is required to reject an invoice')
            self._mark_rejected(invoice, reason.strip(), actor_id)

        db.session.commit()

        logger.info(f"Invoice {invoice_id} set to {status} by {actor_id}")
        return invoice

    def reject_invoice(self, invoice_id: str, rejection_reason: Optional[str],
                       actor_id: Optional[str] = None) -> Invoice:
        if not isinstance(rejection_reason, str) or not rejection_reason.strip():
            raise BadRequest('rejection_reason is required')

        invoice = self.find_one(invoice_id)

        if invoice.status not in (InvoiceStatus.PENDING, InvoiceStatus.APPROVED):
            raise BadRequest(f'Invoice cannot be rejected from status {invoice.status}')
        if invoice.payment_status == PaymentStatus.APPROVED:
            raise BadRequest('Invoice has already been paid')

        self._mark_rejected(invoice, rejection_reason.strip(), actor_id)
        db.session.commit()

        logger.info(f"Invoice {invoice_id} rejected by {actor_id}")
        return invoice

    @staticmethod
    def _mark_rejected(invoice: Invoice, reason: str, actor_id: Optional[str]):
        invoice.status = InvoiceStatus.REJECTED
        invoice.rejection_reason = reason
        invoice.rejected_by = actor_id
        invoice.rejected_at = utcnow()

    def update_payment_status(self, invoice_id: str, status: str,
                              rejection_reason: Optional[str] = None) -> Invoice:
        if status not in (PaymentStatus.APPROVED, PaymentStatus.REJECTED):
            raise BadRequest('Payment status must be APPROVED or REJECTED')

        invoice = self.find_one(invoice_id)

        if invoice.status != InvoiceStatus.APPROVED:
            raise BadRequest('Payment status can only be updated on APPROVED invoices')

        if status == PaymentStatus.REJECTED:
            if not isinstance(rejection_reason, str) or not rejection_reason.strip():
                raise BadRequest('A rejection reason is required to reject a payment')
            invoice.payment_rejection_reason = rejection_reason.strip()
        else:
            invoice.payment_rejection_reason = None

        invoice.payment_status = status
        invoice.payment_updated_at = utcnow()
        db.session.commit()

        logger.info(f"Invoice {invoice_id} payment status set to {status}")
        return invoice

    # Attachments

    def upload_acceptance_document(self, invoice_id: str, file_data: bytes, filename: Optional[str] = None,
                                   claims: Optional[Dict] = None) -> Invoice:
        invoice = self.find_one(invoice_id)
        self._ensure_owner(invoice, claims)

        if not DataValidator.is_pdf(file_data):
            raise BadRequest('Only PDF files are allowed')

        invoice.attach_acceptance_document(file_data, filename)
        db.session.commit()

        logger.info(f"Acceptance document uploaded for invoice {invoice_id} ({len(file_data)} bytes)")
        return invoice

    def download_acceptance_document(self, invoice_id: str) -> Tuple[bytes, str]:
        invoice = self.find_one(invoice_id)
        file_data = invoice.acceptance_document_bytes()
        if not file_data:
            raise NotFound('Acceptance document not found for this invoice')

        filename = invoice.acceptance_document_filename or \
            f'acceptance-{invoice.serie}-{invoice.correlativo}.pdf'
        return file_data, filename

    def get_pdf(self, invoice_id: str) -> Tuple[bytes, str]:
        invoice = self.find_one(invoice_id)
        file_data = invoice.pdf_bytes()
        if not file_data:
            raise NotFound('Invoice PDF not found')
        return file_data, f'invoice-{invoice.serie}-{invoice.correlativo}.pdf'

    def upload_invoice_and_acceptance(self, files: List[Dict], form: Dict,
                                      claims: Optional[Dict] = None) -> Dict:
        """
        Create an invoice from an uploaded PDF, optionally with its acceptance document.

        Args:
            files: One or two uploads as returned by read_pdf_upload; invoice first
            form: Form fields; they take precedence over values read from the PDF
            claims: JWT claims of the uploader

        Returns:
            Dictionary with the created invoice and the fields read from the PDF
        """
        if not files:
            raise BadRequest('At least the invoice PDF is required')
        if len(files) > 2:
            raise BadRequest('At most two files are allowed: invoice and acceptance document')

        invoice_file = files[0]
        extracted = {}
        try:
            text_result = self.ocr_service.extract_pdf_text(
                invoice_file['file_data'],
                current_app.config.get('OCR_CONFIDENCE_THRESHOLD', 0.5)
            )
            extracted = self.extraction_service.extract_invoice_data(text_result.get('full_text', ''))
        except RuntimeError as e:
            logger.warning(f"Could not read invoice PDF {invoice_file['filename']}: {str(e)}")

        data = {field: extracted.get(field) for field in INVOICE_FIELDS if extracted.get(field) is not None}
        data.update({key: value for key, value in dict(form or {}).items() if value not in (None, '')})

        invoice = self.create(data, claims, commit=False)
        invoice.attach_pdf(invoice_file['file_data'], invoice_file['filename'])

        if len(files) == 2:
            acceptance_file = files[1]
            invoice.attach_acceptance_document(acceptance_file['file_data'], acceptance_file['filename'])

        db.session.commit()
        logger.info(f"Invoice {invoice.number} uploaded with {len(files)} file(s)")

        return {
            'invoice': invoice.to_dict(),
            'extracted': extracted
        }
