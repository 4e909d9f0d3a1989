import logging

from gradetrack.services.gemini_client import GeminiClient, GeminiClientError, text_part

logger = logging.getLogger(__name__)

FALLBACK_CONFIRMATION = "Thank you for your feedback! We've received it and appreciate you helping us improve."

FEEDBACK_PROMPT = """A user has just submitted feedback for the GradeTrack application.

Your task is to generate a brief, friendly, and appreciative confirmation message. The tone should be professional but warm.

- Acknowledge the type of feedback they provided.
- Thank them for taking the time to help improve the platform.
- Do NOT ask them for more information or promise any specific action.

Here is the user's submission:
- User ID: {user_id}
- User Email: {user_email}
- Feedback Type: {feedback_type}
- Message: {message}

Respond with a JSON object of the form {{"confirmation": "<message>"}}.
"""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {"confirmation": {"type": "STRING"}},
    "required": ["confirmation"],
}


class FeedbackService:
    def __init__(self, client: GeminiClient) -> None:
        self.client = client

    @classmethod
    def from_settings(cls) -> "FeedbackService":
        return cls(GeminiClient.from_settings())

    def submit_feedback(self, feedback_type: str, message: str, user_id: str, user_email: str) -> str:
        logger.info("Received %s feedback from user %s (%s): %s", feedback_type, user_id, user_email, message)

        prompt = FEEDBACK_PROMPT.format(
            user_id=user_id,
            user_email=user_email,
            feedback_type=feedback_type,
            message=message,
        )
        try:
            output = self.client.generate_json([text_part(prompt)], RESPONSE_SCHEMA)
        except GeminiClientError as exc:
            logger.warning("Feedback acknowledgement generation failed: %s", exc)
            return FALLBACK_CONFIRMATION

        confirmation = output.get("confirmation") if isinstance(output, dict) else None
        if not isinstance(confirmation, str) or not confirmation.strip():
            return FALLBACK_CONFIRMATION
        return confirmation.strip()
