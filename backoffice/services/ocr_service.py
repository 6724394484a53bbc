"""
OCR Service for receipt and invoice text extraction
Uses OpenCV preprocessing + EasyOCR for images and PyMuPDF for PDFs
"""

import cv2
import numpy as np
import pymupdf
from PIL import Image
import io
import logging
import xml.etree.ElementTree as ElementTree
from typing import Dict, List, Optional
import time

from flask import current_app

logger = logging.getLogger(__name__)

class OCRService:
    """OCR service for extracting text from receipt and invoice documents."""

    IMAGE_MIME_TYPES = {'image/jpeg', 'image/png', 'image/gif'}
    PDF_MIME_TYPES = {'application/pdf'}
    XML_MIME_TYPES = {'application/xml', 'text/xml'}

    def __init__(self, languages: Optional[List[str]] = None):
        """Initialize OCR service; the EasyOCR reader loads on first use."""
        self.languages = languages
        self.reader = None

    def _get_reader(self):
        """Initialize EasyOCR reader with the configured languages."""
        if self.reader is None:
            languages = self.languages or current_app.config.get('OCR_LANGUAGES', ['es', 'en'])
            try:
                import easyocr
                self.reader = easyocr.Reader(languages, gpu=False)  # Use CPU for compatibility
                logger.info(f"EasyOCR reader initialized for languages {languages}")
            except Exception as e:
                logger.error(f"Failed to initialize EasyOCR reader: {str(e)}")
                raise
        return self.reader

    def preprocess_image(self, image_data: bytes) -> np.ndarray:
        """
        Preprocess image for better OCR accuracy.

        Args:
            image_data: Raw image bytes

        Returns:
            Preprocessed image as numpy array
        """
        try:
            image = Image.open(io.BytesIO(image_data))

            if image.mode != 'RGB':
                image = image.convert('RGB')

            # Convert PIL to OpenCV format
            opencv_image = cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)

            return self._apply_preprocessing_steps(opencv_image)

        except Exception as e:
            logger.error(f"Image preprocessing failed: {str(e)}")
            raise ValueError(f"Failed to preprocess image: {str(e)}")

    def _apply_preprocessing_steps(self, image: np.ndarray) -> np.ndarray:
        """Grayscale, denoise, threshold and deskew the image."""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

        denoised = cv2.fastNlMeansDenoising(gray)

        thresh = cv2.adaptiveThreshold(
            denoised, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 11, 2
        )

        kernel = np.ones((1, 1), np.uint8)
        cleaned = cv2.morphologyEx(thresh, cv2.MORPH_CLOSE, kernel)

        return self._deskew_image(cleaned)

    def _deskew_image(self, image: np.ndarray) -> np.ndarray:
        """Attempt to correct skew in the image."""
        try:
            edges = cv2.Canny(image, 50, 150, apertureSize=3)
            lines = cv2.HoughLines(edges, 1, np.pi/180, threshold=100)

            if lines is not None and len(lines) > 0:
                angles = [np.degrees(line[0][1]) - 90 for line in lines[:10]]
                median_angle = np.median(angles)

                # Only correct if angle is significant but not too large
                if 1 < abs(median_angle) < 45:
                    center = (image.shape[1] // 2, image.shape[0] // 2)
                    rotation_matrix = cv2.getRotationMatrix2D(center, median_angle, 1.0)
                    return cv2.warpAffine(image, rotation_matrix, (image.shape[1], image.shape[0]))

            return image

        except Exception as e:
            logger.warning(f"Deskewing failed: {str(e)}")
            return image

    def extract_text(self, image_data: bytes, confidence_threshold: float = 0.5) -> Dict:
        """
        Extract text from image using OCR.

        Args:
            image_data: Raw image bytes
            confidence_threshold: Minimum confidence for text extraction

        Returns:
            Dictionary containing extracted text and metadata
        """
        start_time = time.time()

        try:
            processed_image = self.preprocess_image(image_data)

            results = self._get_reader().readtext(processed_image)

            extracted_data = self._process_ocr_results(results, confidence_threshold)

            processing_time = (time.time() - start_time) * 1000

            extracted_data.update({
                'processing_time_ms': processing_time,
                'ocr_engine': 'EasyOCR',
                'confidence_threshold': confidence_threshold
            })

            logger.info(f"OCR extraction completed in {processing_time:.2f}ms")
            return extracted_data

        except Exception as e:
            logger.error(f"OCR extraction failed: {str(e)}")
            raise RuntimeError(f"OCR extraction failed: {str(e)}")

    def _process_ocr_results(self, results: List, confidence_threshold: float) -> Dict:
        """Organize EasyOCR (bounding_box, text, confidence) tuples into text and scores."""
        lines = []
        text_blocks = []
        total_confidence = 0.0
        valid_blocks = 0

        for bounding_box, text, confidence in results:
            cleaned_text = text.strip()
            if not cleaned_text:
                continue

            text_blocks.append({
                'text': cleaned_text,
                'confidence': float(confidence),
                'above_threshold': confidence >= confidence_threshold
            })
            lines.append(cleaned_text)

            if confidence >= confidence_threshold:
                total_confidence += confidence
                valid_blocks += 1

        average_confidence = total_confidence / valid_blocks if valid_blocks > 0 else 0.0

        return {
            'full_text': '\n'.join(lines),
            'text_blocks': text_blocks,
            'total_blocks': len(text_blocks),
            'high_confidence_blocks': valid_blocks,
            'overall_confidence': float(average_confidence)
        }

    def extract_pdf_text(self, pdf_data: bytes, confidence_threshold: float = 0.5) -> Dict:
        """
        Extract text from a PDF, falling back to OCR of the first page for scans.

        Args:
            pdf_data: Raw PDF bytes

        Returns:
            Dictionary containing extracted text and metadata
        """
        try:
            with pymupdf.open(stream=pdf_data, filetype='pdf') as document:
                text = '\n'.join(page.get_text() for page in document).strip()

                if text:
                    return {
                        'full_text': text,
                        'total_blocks': len(text.splitlines()),
                        'overall_confidence': 1.0,
                        'ocr_engine': 'PyMuPDF'
                    }

                if document.page_count == 0:
                    raise ValueError("PDF has no pages")

                # Scanned PDF: render the first page and OCR it
                pixmap = document[0].get_pixmap(dpi=200)
                image_data = pixmap.tobytes('png')

        except (RuntimeError, ValueError) as e:
            logger.error(f"PDF text extraction failed: {str(e)}")
            raise RuntimeError(f"PDF text extraction failed: {str(e)}")

        logger.info("PDF has no text layer, running OCR on first page")
        return self.extract_text(image_data, confidence_threshold)

    def extract_document_text(self, file_data: bytes, mime_type: str, confidence_threshold: float = 0.5) -> Dict:
        """Extract text from an uploaded image, PDF or XML document."""
        if mime_type in self.PDF_MIME_TYPES:
            return self.extract_pdf_text(file_data, confidence_threshold)

        if mime_type in self.XML_MIME_TYPES:
            text = self.xml_to_text(file_data)
            return {
                'full_text': text,
                'total_blocks': len(text.splitlines()),
                'overall_confidence': 1.0,
                'ocr_engine': 'none'
            }

        if mime_type in self.IMAGE_MIME_TYPES:
            return self.extract_text(file_data, confidence_threshold)

        raise ValueError(f"Unsupported document type: {mime_type}")

    @staticmethod
    def xml_to_text(xml_data: bytes) -> str:
        """Flatten an XML invoice (e.g. UBL) into 'Element: value' lines."""
        try:
            root = ElementTree.fromstring(xml_data)
        except ElementTree.ParseError as e:
            raise ValueError(f"Invalid XML document: {str(e)}")

        lines = []
        for element in root.iter():
            value = (element.text or '').strip()
            if value:
                name = element.tag.rsplit('}', 1)[-1]
                lines.append(f"{name}: {value}")
        return '\n'.join(lines)
