"""
Gemini AI service - raw text generation and camera-photo OCR
"""
import google.generativeai as genai
import httpx
import logging

from neetquiz.config import settings
from neetquiz.errors import ExternalServiceError

logger = logging.getLogger(__name__)

# Configure Gemini API
genai.configure(api_key=settings.GEMINI_API_KEY)

OCR_PROMPT = """
Transcribe all readable text in this photographed page exactly as written.
Keep formulas, labels and numbering. Return ONLY the transcribed text
(no commentary). If the image has no readable text, return an empty response.
"""


class GeminiService:
    """
    Thin wrapper over the Gemini API.

    Responses are returned as raw text; callers are responsible for parsing.
    Any API error or timeout is raised as ExternalServiceError.
    """

    def __init__(self):
        self.model = genai.GenerativeModel(settings.GEMINI_MODEL)
        self.vision_model = genai.GenerativeModel(settings.GEMINI_VISION_MODEL)
        self.request_options = {"timeout": settings.GEMINI_TIMEOUT_SECONDS}

    def generate(self, prompt: str) -> str:
        """
        Send a single prompt to the text model

        Args:
            prompt: Full prompt text

        Returns:
            The model's raw response text
        """
        try:
            response = self.model.generate_content(prompt, request_options=self.request_options)
            return response.text or ""
        except Exception as e:
            logger.error(f"Gemini generation failed: {str(e)}")
            raise ExternalServiceError(f"Generation failed: {str(e)}") from e

    def extract_text_from_image_url(self, image_url: str) -> str:
        """
        OCR a photographed page stored at a public URL

        The image is downloaded and sent inline to the vision model.
        """
        try:
            with httpx.Client(timeout=settings.GEMINI_TIMEOUT_SECONDS, follow_redirects=True) as client:
                image_response = client.get(image_url)
                image_response.raise_for_status()

            mime_type = image_response.headers.get("content-type", "image/jpeg").split(";")[0]
            response = self.vision_model.generate_content(
                [{"mime_type": mime_type, "data": image_response.content}, OCR_PROMPT],
                request_options=self.request_options,
            )
            text = response.text or ""
            logger.info(f"Camera OCR extracted {len(text)} characters from {image_url}")
            return text
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch image for OCR: {str(e)}")
            raise ExternalServiceError(f"Could not fetch image: {str(e)}") from e
        except Exception as e:
            logger.error(f"Camera OCR failed: {str(e)}")
            raise ExternalServiceError(f"Camera OCR failed: {str(e)}") from e


# Global instance
gemini_service = GeminiService()
