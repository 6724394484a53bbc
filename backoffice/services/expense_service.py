"""
Expense Service
Company expenses, receipt image analysis and the approval workflow
"""

import logging
from typing import Dict, List, Optional

import httpx
from flask import current_app
from werkzeug.exceptions import BadRequest, InternalServerError, NotFound

from backoffice import db
from backoffice.models.expense import Expense, ExpenseStatus
from backoffice.models.user import utcnow
from backoffice.services.extraction_service import ExtractionService
from backoffice.services.ocr_service import OCRService
from backoffice.services.user_service import first_error
from backoffice.utils.validators import DataValidator

logger = logging.getLogger(__name__)

EXPENSE_FIELDS = ('description', 'category', 'amount', 'currency', 'expense_date',
                  'vendor_name', 'vendor_tax_id', 'document_number', 'image_url', 'analysis')


class ExpenseService:
    """Service behind the /expense endpoints."""

    def __init__(self, ocr_service: Optional[OCRService] = None,
                 extraction_service: Optional[ExtractionService] = None):
        self.ocr_service = ocr_service or OCRService()
        self.extraction_service = extraction_service or ExtractionService()

    def download_image(self, image_url: str) -> bytes:
        timeout = current_app.config.get('IMAGE_DOWNLOAD_TIMEOUT', 15)
        try:
            response = httpx.get(image_url, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Image download failed for {image_url}: {str(e)}")
            raise BadRequest(f'Could not download image: {str(e)}')

        if not response.content:
            raise BadRequest('Downloaded image is empty')
        return response.content

    def analyze_image_with_url(self, image_url: str) -> Dict:
        """Download a receipt image, OCR it and extract expense fields."""
        if not image_url or not str(image_url).startswith(('http://', 'https://')):
            raise BadRequest('image_url must be an http(s) URL')

        logger.info(f"Analyzing expense image: {image_url}")
        image_data = self.download_image(image_url)

        threshold = current_app.config.get('OCR_CONFIDENCE_THRESHOLD', 0.5)
        try:
            ocr_result = self.ocr_service.extract_text(image_data, confidence_threshold=threshold)
        except (RuntimeError, ValueError) as e:
            raise InternalServerError(f'Image analysis failed: {str(e)}')

        data = self.extraction_service.extract_receipt_data(
            ocr_result.get('full_text', ''),
            ocr_confidence=ocr_result.get('overall_confidence')
        )

        return {'success': True, 'data': data}

    def _apply_fields(self, expense: Expense, data: Dict):
        for field in EXPENSE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == 'amount':
                value = DataValidator.to_decimal(value)
            elif field == 'expense_date':
                value = DataValidator.parse_date(value)
            elif field == 'currency' and value:
                value = value.upper()
            setattr(expense, field, value)

    def create(self, data: Dict, company_id: Optional[str], created_by: Optional[str] = None) -> Expense:
        if not company_id:
            raise BadRequest('Token does not carry a company_id')

        errors = DataValidator.validate_expense_data(data)
        if errors:
            raise BadRequest(first_error(errors))

        expense = Expense(company_id=company_id, created_by=created_by, status=ExpenseStatus.PENDING)
        self._apply_fields(expense, data)

        db.session.add(expense)
        db.session.commit()

        logger.info(f"Expense {expense.id} created for company {company_id}")
        return expense

    def find_all(self, company_id: str, status: Optional[str] = None) -> List[Expense]:
        query = Expense.query.filter_by(company_id=company_id)
        if status:
            if status not in ExpenseStatus.ALL:
                raise BadRequest(f'Status must be one of: {", ".join(ExpenseStatus.ALL)}')
            query = query.filter_by(status=status)
        return query.order_by(Expense.created_at.desc()).all()

    def find_one(self, expense_id: str, company_id: str) -> Expense:
        expense = db.session.get(Expense, expense_id)
        if not expense or expense.company_id != company_id:
            logger.warning(f"Expense {expense_id} not found for company {company_id}")
            raise NotFound(f'Expense with ID {expense_id} not found')
        return expense

    def update(self, expense_id: str, company_id: str, data: Dict) -> Expense:
        expense = self.find_one(expense_id, company_id)

        errors = DataValidator.validate_expense_data(data, partial=True)
        if errors:
            raise BadRequest(first_error(errors))

        self._apply_fields(expense, data)
        db.session.commit()
        return expense

    def approve(self, expense_id: str, company_id: str, approver_id: str, comment: Optional[str] = None) -> Expense:
        if comment is not None and not isinstance(comment, str):
            raise BadRequest('comment must be a string')

        expense = self.find_one(expense_id, company_id)

        if expense.status != ExpenseStatus.PENDING:
            raise BadRequest(f'Only PENDING expenses can be approved (current status: {expense.status})')

        expense.status = ExpenseStatus.APPROVED
        expense.approved_by = approver_id
        expense.approved_at = utcnow()
        expense.approval_comment = comment
        db.session.commit()

        logger.info(f"Expense {expense_id} approved by {approver_id}")
        return expense

    def reject(self, expense_id: str, company_id: str, rejector_id: str, reason: Optional[str]) -> Expense:
        if not isinstance(reason, str) or not reason.strip():
            raise BadRequest('A rejection reason is required')

        expense = self.find_one(expense_id, company_id)

        if expense.status != ExpenseStatus.PENDING:
            raise BadRequest(f'Only PENDING expenses can be rejected (current status: {expense.status})')

        expense.status = ExpenseStatus.REJECTED
        expense.rejected_by = rejector_id
        expense.rejected_at = utcnow()
        expense.rejection_reason = reason.strip()
        db.session.commit()

        logger.info(f"Expense {expense_id} rejected by {rejector_id}")
        return expense

    def remove(self, expense_id: str, company_id: str) -> None:
        expense = self.find_one(expense_id, company_id)
        db.session.delete(expense)
        db.session.commit()
        logger.info(f"Expense deleted: {expense_id}")
