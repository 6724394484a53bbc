"""
Utility modules for the back-office API
Contains pattern matching, validation, and upload helpers
"""

from backoffice.utils.pattern_matcher import PatternMatcher
from backoffice.utils.validators import DataValidator
from backoffice.utils.uploads import read_upload, read_pdf_upload

__all__ = [
    'PatternMatcher',
    'DataValidator',
    'read_upload',
    'read_pdf_upload'
]
