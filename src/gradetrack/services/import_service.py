from dataclasses import dataclass, field
import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from gradetrack.schemas import DATA_URI_PATTERN, ExtractedSubject
from gradetrack.services.gemini_client import GeminiClient, GeminiClientError, inline_part, text_part

logger = logging.getLogger(__name__)

MISSING_INPUT_ERROR = "Either text or an image must be provided."
UNREADABLE_ERROR = "The AI model could not understand the provided data. Please check your input and try again."
INTERNAL_ERROR = (
    "An internal error occurred while analyzing the data. This could be due to an invalid image format "
    "or a temporary service issue. Please try again later."
)

EXTRACTION_PROMPT = """You are an expert at analyzing academic transcripts. Extract subject information from the provided text or image.

For each subject, extract the following:
1.  **name**: The full name of the subject.
2.  **credits**: The credit value.
3.  **marks**: The numerical marks (out of 100). This can be omitted if not present.
4.  **status**: The final status. Must be one of 'PASS', 'RA' (Re-appear), 'AAA' (Absent), 'W' (Withdrawn), or 'ABS' (Absent). If marks are below 50, the status should be 'RA'. If the subject is passed but no marks are given, the status is 'PASS'.

Return the extracted subjects as a JSON object of the form {"subjects": [...]}. If no subjects can be found, return an empty array.
"""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "subjects": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "credits": {"type": "NUMBER"},
                    "marks": {"type": "NUMBER"},
                    "status": {"type": "STRING", "enum": ["PASS", "RA", "AAA", "W", "ABS"]},
                },
                "required": ["name", "credits", "status"],
            },
        }
    },
    "required": ["subjects"],
}

_subjects_adapter = TypeAdapter(List[ExtractedSubject])


@dataclass
class ExtractionResult:
    subjects: List[ExtractedSubject] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        if self.error is not None:
            return {"error": self.error}
        return {"subjects": [s.model_dump() for s in self.subjects]}


def build_parts(text: Optional[str], photo_data_uri: Optional[str]) -> List[dict]:
    parts = [text_part(EXTRACTION_PROMPT), text_part("Analyze the provided data:")]
    if text:
        parts.append(text_part(f"---\n{text}\n---"))
    if photo_data_uri:
        match = DATA_URI_PATTERN.match(photo_data_uri)
        if match is None:
            raise ValueError("Expected a base64 data URI: data:<mimetype>;base64,<encoded_data>")
        parts.append(inline_part(match.group("mime"), "".join(match.group("data").split())))
    return parts


class ImportService:
    def __init__(self, client: GeminiClient) -> None:
        self.client = client

    @classmethod
    def from_settings(cls) -> "ImportService":
        return cls(GeminiClient.from_settings())

    def extract_semester_data(self, text: Optional[str] = None, photo_data_uri: Optional[str] = None) -> ExtractionResult:
        if not (text and text.strip()) and not photo_data_uri:
            return ExtractionResult(error=MISSING_INPUT_ERROR)

        try:
            parts = build_parts(text, photo_data_uri)
            output = self.client.generate_json(parts, RESPONSE_SCHEMA)
        except (GeminiClientError, ValueError) as exc:
            logger.error("Critical error during transcript extraction: %s", exc)
            return ExtractionResult(error=INTERNAL_ERROR)

        if not isinstance(output, dict) or not isinstance(output.get("subjects"), list):
            return ExtractionResult(error=UNREADABLE_ERROR)

        try:
            subjects = _subjects_adapter.validate_python(output["subjects"])
        except ValidationError as exc:
            logger.warning("Extraction output failed validation: %s", exc)
            return ExtractionResult(error=UNREADABLE_ERROR)

        logger.info("Extracted %d subjects", len(subjects))
        return ExtractionResult(subjects=subjects)
