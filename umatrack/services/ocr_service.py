from typing import Optional

import cv2
import numpy as np
import pytesseract
from PIL import Image

from umatrack.services.base_service import IOcrService, IConfigService
from umatrack.logger import logger


class OcrService(IOcrService):
    """pytesseract wrapper used for the event title/type and character name zones."""

    def __init__(self, config_service: IConfigService):
        self.config = config_service
        self.language = "eng"

    def initialize(self) -> bool:
        self.language = self.config.get("ocr_language", "eng")
        tesseract_cmd = self.config.get("tesseract_cmd")
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        try:
            version = pytesseract.get_tesseract_version()
            logger.info(f"OcrService: Tesseract {version} ready (lang={self.language})")
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            logger.error(f"OcrService: Tesseract not available: {e}")
            return False
        return True

    def shutdown(self) -> None:
        pass

    def recognize_text(self, image: np.ndarray, language: Optional[str] = None) -> str:
        if image is None or image.size == 0:
            return ""
        if image.ndim == 3:
            pil_image = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        else:
            pil_image = Image.fromarray(image)
        text = pytesseract.image_to_string(pil_image, lang=language or self.language)
        return text.strip()
