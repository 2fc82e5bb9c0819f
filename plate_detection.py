"""
Vision model response boundary.

The upload workflow sends vehicle images to an external vision model that
answers with plate candidates as JSON. This module validates that payload
against a fixed schema and turns each candidate into a detection ready for
``detections.create_detection``. It does not call the model.
"""

import logging
import re
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

LOW_CONFIDENCE_THRESHOLD = 60

# Common plate layouts once separators are removed
PLATE_PATTERNS = [
    re.compile(r"^[A-Z]{3}\d{3}$"),       # ABC123
    re.compile(r"^[A-Z]{3}\d{4}$"),       # ABC1234
    re.compile(r"^\d{3}[A-Z]{3}$"),       # 123ABC
    re.compile(r"^[A-Z]{2}\d{4}$"),       # AB1234
    re.compile(r"^[A-Z]\d{3}[A-Z]{3}$"),  # A123ABC
    re.compile(r"^[A-Z]{3}\d{2}[A-Z]$"),  # ABC12D
]


class MalformedVisionResponse(ValueError):
    """The vision model returned a payload that does not match the schema."""


class BoundingBox(BaseModel):
    """Plate location as percentages of the image dimensions."""
    model_config = ConfigDict(extra="forbid")

    x_min: float = Field(..., ge=0, le=100)
    y_min: float = Field(..., ge=0, le=100)
    x_max: float = Field(..., ge=0, le=100)
    y_max: float = Field(..., ge=0, le=100)

    @model_validator(mode="after")
    def validate_corners(self) -> "BoundingBox":
        if self.x_min > self.x_max or self.y_min > self.y_max:
            raise ValueError("Bounding box minimum exceeds maximum")
        return self


class PlateCandidate(BaseModel):
    """One plate reported by the vision model."""
    model_config = ConfigDict(extra="forbid")

    text: str
    confidence: float = Field(..., ge=0, le=100)
    bbox: BoundingBox


class PlateDetectionResponse(BaseModel):
    """Top-level vision model payload."""
    model_config = ConfigDict(extra="forbid")

    plates: List[PlateCandidate]


def clean_plate_text(raw_text: str) -> str:
    """Uppercase, apply common OCR corrections and strip invalid characters."""
    cleaned = raw_text.strip().upper()
    cleaned = cleaned.replace("O", "0").replace("I", "1")
    return re.sub(r"[^A-Z0-9-]", "", cleaned)


def validate_plate_pattern(text: str) -> bool:
    """Check whether plate text matches a known layout."""
    compact = re.sub(r"[-\s]", "", text).upper()
    return any(pattern.match(compact) for pattern in PLATE_PATTERNS)


def determine_status(confidence: float, is_valid_pattern: bool) -> str:
    if confidence < LOW_CONFIDENCE_THRESHOLD:
        return "LOW_CONFIDENCE"
    if not is_valid_pattern:
        return "MANUAL_REVIEW"
    return "OK"


def parse_plate_response(payload: Union[str, bytes, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Validate a vision model payload and build detection fields.

    Args:
        payload: Raw JSON text or an already-decoded dict.

    Returns:
        One dict per plate with plate_text, confidence (int 0-100), bbox
        and status. A response with no plates yields a single
        ``NO_PLATE_FOUND`` entry so the upload is still recorded.

    Raises:
        MalformedVisionResponse: If the payload is not valid JSON or does
            not match the expected schema.
    """
    try:
        if isinstance(payload, (str, bytes)):
            response = PlateDetectionResponse.model_validate_json(payload)
        else:
            response = PlateDetectionResponse.model_validate(payload)
    except ValidationError as e:
        logger.warning("Rejected malformed vision response: %d errors", e.error_count())
        raise MalformedVisionResponse(str(e)) from e

    if not response.plates:
        return [{
            "plate_text": "",
            "confidence": 0,
            "bbox": BoundingBox(x_min=0, y_min=0, x_max=0, y_max=0).model_dump(),
            "status": "NO_PLATE_FOUND",
        }]

    results = []
    for candidate in response.plates:
        plate_text = clean_plate_text(candidate.text)
        # Status is decided on the raw score; only the stored value is rounded
        results.append({
            "plate_text": plate_text,
            "confidence": round(candidate.confidence),
            "bbox": candidate.bbox.model_dump(),
            "status": determine_status(candidate.confidence, validate_plate_pattern(plate_text)),
        })
    return results
