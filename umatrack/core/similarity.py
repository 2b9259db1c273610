import os
from dataclasses import dataclass
from typing import Dict, Optional

import cv2
import numpy as np

from umatrack.config import SIMILARITY_THRESHOLD, PIXEL_TOLERANCE, COMPARISON_SIZE
from umatrack.logger import logger


@dataclass
class ComparisonResult:
    similarity: float
    is_match: bool
    threshold: float


class SimilarityClassifier:
    """
    Cheap, resolution-invariant "does this crop look like the reference" check.

    Both images are squashed to COMPARISON_SIZE x COMPARISON_SIZE, then each pixel
    counts as matching when the summed per-channel absolute difference stays
    within the tolerance. This tolerates anti-aliasing and compression noise
    between a live frame and a stored PNG, it is not exact equality.
    """

    def __init__(self, threshold: float = SIMILARITY_THRESHOLD,
                 tolerance: int = PIXEL_TOLERANCE, size: int = COMPARISON_SIZE):
        self.threshold = threshold
        self.tolerance = tolerance
        self.size = size
        self._references: Dict[str, Optional[np.ndarray]] = {}

    def load_reference(self, path: str) -> Optional[np.ndarray]:
        """Loads (and caches) a BGR reference image. Missing files yield None."""
        if path not in self._references:
            image = None
            if os.path.exists(path):
                image = cv2.imread(path, cv2.IMREAD_COLOR)
            if image is None:
                logger.warning(f"SimilarityClassifier: Reference image unavailable: {path}")
            self._references[path] = image
        return self._references[path]

    def normalize(self, image: np.ndarray) -> np.ndarray:
        # Aspect ratio is not preserved
        return cv2.resize(image, (self.size, self.size), interpolation=cv2.INTER_AREA)

    def similarity(self, reference: np.ndarray, candidate: np.ndarray) -> float:
        a = self.normalize(reference)
        b = self.normalize(candidate)
        if a.shape != b.shape:
            logger.debug(f"SimilarityClassifier: Buffer shapes differ {a.shape} vs {b.shape}")
            return 0.0

        diff = np.abs(a.astype(np.int16) - b.astype(np.int16))
        if diff.ndim == 3:
            diff = diff.sum(axis=2)

        matches = np.count_nonzero(diff <= self.tolerance)
        return matches / float(diff.shape[0] * diff.shape[1])

    def compare_buffers(self, reference: np.ndarray, candidate: np.ndarray,
                        threshold: Optional[float] = None) -> ComparisonResult:
        threshold = self.threshold if threshold is None else threshold
        score = self.similarity(reference, candidate)
        return ComparisonResult(similarity=score, is_match=score > threshold, threshold=threshold)

    def compare(self, reference: Optional[np.ndarray], candidate: Optional[np.ndarray],
                threshold: Optional[float] = None) -> bool:
        """Fails closed: any processing problem is a non-match."""
        if reference is None or candidate is None:
            return False
        try:
            return self.compare_buffers(reference, candidate, threshold).is_match
        except Exception as e:
            logger.error(f"SimilarityClassifier: Error comparing images: {e}")
            return False
