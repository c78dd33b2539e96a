"""
Form field extraction from uploaded images and PDFs.

Extraction runs an ordered chain of strategies: the OpenAI vision model,
text patterns found in a PDF's text layer, a local heuristic list, and
finally a static default list. Each strategy returns an empty list on
failure, so the chain always produces fields.
"""

import base64
import io
import json
import re
from typing import Callable, List, Optional, Sequence, Tuple
import fitz  # PyMuPDF
from loguru import logger
from openai import OpenAI
from PIL import Image

from .config import config
from .models import FormField

DEFAULT_FIELDS: List[Tuple[str, str]] = [
    ("Name", "Your full name as it appears on official documents."),
    ("Address", "Your current residential address including house number, street name, city, and PIN code."),
    ("Mobile", "Your 10-digit mobile phone number."),
    ("Email", "Your email address, if you have one."),
    ("Date of Birth", "Your date of birth in DD/MM/YYYY format."),
    ("Gender", "Your gender (Male/Female/Other)."),
    ("Occupation", "Your current job or profession."),
    ("Aadhaar Number", "Your 12-digit Aadhaar card number."),
]

PDF_FIELDS: List[Tuple[str, str]] = [
    ("Name of applicant", "Your full name as it appears on official documents."),
    ("Mailing Address", "Your current residential address including house number, street name, city, and PIN code."),
    ("Mobile", "Your 10-digit mobile phone number."),
    ("Email", "Your email address, if you have one."),
    ("Date of Birth", "Your date of birth in DD/MM/YYYY format."),
    ("Gender", "Your gender (Male/Female/Other)."),
    ("Occupation", "Your current job or profession."),
    ("Aadhaar Number", "Your 12-digit Aadhaar card number."),
    ("Name of recipient", "Full name of the person receiving the item or service."),
    ("Any other item Date", "Date for any other relevant item in the form."),
    ("shop Company PERSONAL DETAILS", "Personal details required for shop or company registration."),
    ("Or I wish to take out a gift subscription in the name of", "Details for gift subscription registration."),
]

VISION_SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes form images and extracts form fields with explanations."
)
VISION_USER_PROMPT = (
    "Analyze this form image. Extract all form fields and provide explanations for each field. "
    "Return the result as a JSON array where each item has 'label' and 'explanation' properties."
)

# Context appended to short explanations, first matching label fragment wins
EXPLANATION_CONTEXT: List[Tuple[Tuple[str, ...], str]] = [
    (("name",), "This should be your official name as it appears in legal documents."),
    (("address",), "Include complete details like building number, street, city, and postal code."),
    (("date",), "Use the format DD/MM/YYYY."),
    (("id", "code"), "This is a unique identifier, make sure to enter it exactly as it appears in your documents."),
    (("jurisdiction",), "This refers to the legal authority or territory where your entity is registered."),
    (("status",), "This indicates the current legal status of your entity."),
    (("registered", "registration"), "This is important for official records and verification purposes."),
]

_JSON_ARRAY_RE = re.compile(r"\[\s*\{[\s\S]*?\}\s*\]")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*?\"label\"[\s\S]*?\"explanation\"[\s\S]*?\}")
_ITEM_RE = re.compile(r"^\s*(?:[0-9]+\.|[-*•])\s+([^:]+):\s*(.+)$")
_KNOWN_SUFFIX_RE = re.compile(
    r"^\s*([A-Za-z\s]+(?:Name|Address|ID|Code|Date|Status|Jurisdiction|Entity|At))\s*[:\-]\s*(.+)$"
)
_COLON_RE = re.compile(r"^[*-]?\s*([^:]+):\s*(.+)$")
_DASH_RE = re.compile(r"^[*-]?\s*([^-]+)-\s*(.+)$")
_PDF_LABEL_RE = re.compile(r"([A-Za-z][A-Za-z ]*?)\s*[:*]")

VISION_IMAGE_WIDTH_HINT = 1000
VISION_IMAGE_HEIGHT_HINT = 800


def default_form_fields() -> List[FormField]:
    return [FormField(label, explanation) for label, explanation in DEFAULT_FIELDS]


def enhance_explanation(label: str, explanation: str) -> str:
    """Add field-type context to a short explanation."""
    if len(explanation) > 100:
        return explanation

    lower_label = label.lower()
    for fragments, context in EXPLANATION_CONTEXT:
        if any(fragment in lower_label for fragment in fragments):
            return f"{explanation} {context}".strip()
    return explanation


def _fields_from_json(items) -> List[FormField]:
    if not isinstance(items, list):
        return []
    fields = [FormField.from_dict(item) for item in items if isinstance(item, dict)]
    return [field for field in fields if field.label]


def extract_fields_from_text(text: str) -> List[FormField]:
    """
    Extract ``Label: explanation`` pairs from free text, line by line.

    Returns an empty list when no line matches.
    """
    fields: List[FormField] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        for pattern in (_ITEM_RE, _KNOWN_SUFFIX_RE, _COLON_RE, _DASH_RE):
            match = pattern.match(line)
            if match:
                label = match.group(1).strip().strip("*").strip()
                if label:
                    fields.append(FormField(label, match.group(2).strip()))
                break

    logger.debug(f"Extracted {len(fields)} fields from text")
    return fields


def parse_vision_response(content: str) -> List[FormField]:
    """
    Parse form fields out of a vision model reply.

    Tries a JSON array first, then individual JSON objects, then line-based
    text extraction.
    """
    array_match = _JSON_ARRAY_RE.search(content)
    if array_match:
        try:
            fields = _fields_from_json(json.loads(array_match.group(0)))
            if fields:
                return fields
        except json.JSONDecodeError as e:
            logger.warning(f"Error parsing JSON array match: {e}")

    objects = _JSON_OBJECT_RE.findall(content)
    if objects:
        try:
            fields = _fields_from_json(json.loads("[" + ",".join(objects) + "]"))
            if fields:
                return fields
        except json.JSONDecodeError as e:
            logger.warning(f"Error parsing individual objects: {e}")

    logger.info("No structured JSON found, using text extraction...")
    return extract_fields_from_text(content)


def extract_pdf_labels(text: str) -> List[FormField]:
    """Find ``Label:`` and ``Label *`` patterns in PDF text, de-duplicated case-insensitively."""
    fields: List[FormField] = []
    seen = set()
    for match in _PDF_LABEL_RE.finditer(text):
        label = " ".join(match.group(1).split())
        if len(label) > 1 and label.lower() not in seen:
            seen.add(label.lower())
            fields.append(FormField(label, ""))
    return fields


class FormParser:
    """
    Extracts form fields from an uploaded image or PDF.
    """

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        """
        Initialize the parser.

        Args:
            client (Optional[OpenAI]): OpenAI client. Built from config when an API key is set
            model (Optional[str]): Vision model name
        """
        if client is None and config.openai_api_key:
            client = OpenAI(api_key=config.openai_api_key)
        self.client = client
        self.model = model or config.openai_vision_model

    def parse_form(self, file_bytes: bytes, mime_type: str, filename: str = "") -> List[FormField]:
        """
        Parse a form file into fields.

        Args:
            file_bytes (bytes): Raw file contents
            mime_type (str): MIME type such as ``image/png`` or ``application/pdf``
            filename (str): Original filename, for logging

        Returns:
            List[FormField]: Extracted fields, never empty
        """
        logger.info(f"Parsing file: {filename} Type: {mime_type} Size: {len(file_bytes)}")

        strategies: Sequence[Tuple[str, Callable[[], List[FormField]]]] = [
            ("vision", lambda: self._parse_with_vision(file_bytes, mime_type)),
            ("pdf text", lambda: self._parse_pdf_text(file_bytes, mime_type)),
            ("local", lambda: self._parse_locally(file_bytes, mime_type)),
        ]

        for name, strategy in strategies:
            try:
                fields = strategy()
            except Exception as e:
                logger.error(f"Form parsing strategy '{name}' failed: {e}")
                continue
            if fields:
                logger.info(f"Extracted {len(fields)} fields using {name} strategy")
                return fields
            logger.info(f"No fields from {name} strategy, falling back")

        logger.warning("Using default form fields as fallback")
        return default_form_fields()

    def _parse_with_vision(self, file_bytes: bytes, mime_type: str) -> List[FormField]:
        if self.client is None:
            return []

        if "pdf" in mime_type:
            image_bytes, image_type = render_pdf_first_page(file_bytes), "image/png"
        elif "image" in mime_type:
            image_bytes, image_type = file_bytes, mime_type
        else:
            return []

        fields = self.analyze_form_image(image_bytes, image_type)
        return [FormField(f.label, enhance_explanation(f.label, f.explanation)) for f in fields]

    def analyze_form_image(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> List[FormField]:
        """
        Ask the vision model for the fields in a form image.

        Raises:
            openai.OpenAIError: If the API call fails
            ValueError: If the reply has no content
        """
        logger.info("Analyzing form with OpenAI Vision API...")
        image_b64 = base64.b64encode(image_bytes).decode("ascii")

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": VISION_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": VISION_USER_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_b64}"}},
                    ],
                },
            ],
            max_tokens=1000,
        )

        content = response.choices[0].message.content
        if not content:
            raise ValueError("No content in response")

        logger.debug(f"Raw content from OpenAI: {content[:200]}...")
        return parse_vision_response(content)

    @staticmethod
    def _parse_pdf_text(file_bytes: bytes, mime_type: str) -> List[FormField]:
        if "pdf" not in mime_type:
            return []
        return extract_pdf_labels(extract_pdf_text(file_bytes))

    @staticmethod
    def _parse_locally(file_bytes: bytes, mime_type: str) -> List[FormField]:
        if "image" in mime_type:
            fields = default_form_fields()
            with Image.open(io.BytesIO(file_bytes)) as img:
                width, height = img.size
            # Larger scans are more often identity forms
            if width > VISION_IMAGE_WIDTH_HINT:
                fields.append(FormField("Passport Number", "Your passport number as shown on your passport."))
            if height > VISION_IMAGE_HEIGHT_HINT:
                fields.append(FormField("PAN Card Number", "Your 10-character PAN card number."))
            return fields
        if "pdf" in mime_type:
            logger.info("Local PDF processing...")
            return [FormField(label, explanation) for label, explanation in PDF_FIELDS]
        return default_form_fields()


def extract_pdf_text(file_bytes: bytes) -> str:
    """Extract text from all pages of a PDF using PyMuPDF."""
    doc = fitz.open(stream=file_bytes, filetype="pdf")
    try:
        return "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()


def render_pdf_first_page(file_bytes: bytes, dpi: int = 150) -> bytes:
    """Render the first page of a PDF to PNG bytes."""
    doc = fitz.open(stream=file_bytes, filetype="pdf")
    try:
        pix = doc[0].get_pixmap(dpi=dpi)
        return pix.tobytes("png")
    finally:
        doc.close()
