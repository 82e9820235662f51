"""
Text extraction from a batch of quiz images

Each image is classified (screenshot vs. camera photo), routed to the
matching OCR path, and the recovered text is merged in input order.
A failing image is recorded as a diagnostic and never aborts the batch.
"""
import logging
import mimetypes
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import pytesseract
from PIL import Image

from neetquiz.config import settings
from neetquiz.errors import ExtractionFailed, InputValidationError
from neetquiz.services.gemini_service import gemini_service
from neetquiz.services.storage_service import StorageService, storage_service
from neetquiz.utils.temp_files import TempFileGuard

logger = logging.getLogger(__name__)


@dataclass
class StagedImage:
    """An uploaded image written to request-local temporary storage"""
    local_path: str
    original_filename: str


@dataclass
class ExtractionResult:
    text: str
    diagnostics: List[str] = field(default_factory=list)
    processed_count: int = 0
    total: int = 0


class ImageClassifier:
    """
    Screenshot detection by EXIF presence.

    Camera photos carry EXIF metadata, screenshots normally don't. The check
    is unreliable across devices, so it is off unless enabled in settings and
    every image is then treated as a camera photo.
    """

    # JPEG, PNG, GIF
    MAGIC_PREFIXES = (b"\xff\xd8", b"\x89PNG", b"GIF8")

    def __init__(self, enabled: bool = False):
        self.enabled = enabled

    def is_screenshot(self, path: str) -> bool:
        if not self.enabled:
            return False

        try:
            with open(path, "rb") as f:
                header = f.read(12)
            if len(header) < 12 or not header.startswith(self.MAGIC_PREFIXES):
                return False

            with Image.open(path) as img:
                return not img.getexif()
        except Exception as e:
            logger.warning(f"Could not classify {path}: {str(e)}")
            return False


def tesseract_ocr(path: str) -> str:
    """Local OCR for screenshots"""
    with Image.open(path) as img:
        return pytesseract.image_to_string(img, lang=settings.TESSERACT_LANG)


class ExtractionService:
    """Aggregates OCR text from an ordered batch of images"""

    def __init__(
        self,
        classifier: Optional[ImageClassifier] = None,
        storage: Optional[StorageService] = None,
        screenshot_ocr: Optional[Callable[[str], str]] = None,
        camera_ocr: Optional[Callable[[str], str]] = None,
        max_workers: Optional[int] = None,
    ):
        self.classifier = classifier or ImageClassifier(settings.SCREENSHOT_DETECTION_ENABLED)
        self.storage = storage or storage_service
        self.screenshot_ocr = screenshot_ocr or tesseract_ocr
        self.camera_ocr = camera_ocr or gemini_service.extract_text_from_image_url
        self.max_workers = max_workers or settings.EXTRACTION_MAX_WORKERS

    def extract_text(
        self,
        images: Sequence[StagedImage],
        guard: Optional[TempFileGuard] = None
    ) -> ExtractionResult:
        """
        Extract and merge text from all images

        Every local file of the batch is deleted before this returns, on the
        success path and on every error path.

        Raises:
            InputValidationError: empty or oversized batch
            ExtractionFailed: no image produced any text
        """
        guard = guard or TempFileGuard(img.local_path for img in images)

        with guard:
            if not images:
                raise InputValidationError("No images provided")
            if len(images) > settings.MAX_IMAGES_PER_BATCH:
                raise InputValidationError(
                    f"Too many images: {len(images)} (max {settings.MAX_IMAGES_PER_BATCH})"
                )

            workers = max(1, min(self.max_workers, len(images)))
            # map() yields in submission order regardless of completion order
            with ThreadPoolExecutor(max_workers=workers) as executor:
                outcomes = list(executor.map(self._process_image, images))

        blocks = []
        diagnostics = []
        for text, diagnostic in outcomes:
            if diagnostic:
                diagnostics.append(diagnostic)
            else:
                blocks.append(text)

        if not blocks:
            logger.warning(f"No text extracted from {len(images)} images")
            raise ExtractionFailed("Could not extract text from any images", diagnostics)

        combined = "\n".join(blocks)
        logger.info(
            f"Extracted {len(combined)} characters from {len(blocks)}/{len(images)} images"
        )
        return ExtractionResult(
            text=combined,
            diagnostics=diagnostics,
            processed_count=len(blocks),
            total=len(images),
        )

    def _process_image(self, image: StagedImage) -> Tuple[str, Optional[str]]:
        """Returns (text, None) on success or ("", diagnostic) on failure"""
        try:
            logger.info(f"Processing file: {image.original_filename}")

            if self.classifier.is_screenshot(image.local_path):
                text = self.screenshot_ocr(image.local_path)
            else:
                url = self.storage.put(
                    image.local_path,
                    self._destination_key(image.original_filename),
                    content_type=mimetypes.guess_type(image.original_filename)[0],
                )
                text = self.camera_ocr(url)

            text = (text or "").strip()
            if not text:
                return "", f"No text found in {image.original_filename}"
            return text, None

        except Exception as e:
            message = f"Error processing {image.original_filename}: {str(e)}"
            logger.error(message)
            return "", message

    @staticmethod
    def _destination_key(filename: str) -> str:
        safe_name = os.path.basename(filename).replace(" ", "_") or "image"
        return f"{settings.S3_KEY_PREFIX}/{int(time.time() * 1000)}-{safe_name}"


# Global instance
extraction_service = ExtractionService()
