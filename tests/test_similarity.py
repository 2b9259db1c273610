import os
import sys
import tempfile
import unittest

import cv2
import numpy as np

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from umatrack.core.similarity import SimilarityClassifier


class TestSimilarityClassifier(unittest.TestCase):
    def setUp(self):
        self.classifier = SimilarityClassifier()
        self.black = np.zeros((200, 200, 3), dtype=np.uint8)
        self.half = np.zeros((200, 200, 3), dtype=np.uint8)
        self.half[:100, :, :] = 255

    def test_identical_images_match(self):
        noise = np.random.RandomState(7).randint(0, 256, (120, 90, 3)).astype(np.uint8)
        self.assertTrue(self.classifier.compare(noise, noise.copy()))
        self.assertTrue(self.classifier.compare(noise, noise.copy(), threshold=0.99))

    def test_half_matching_pixels(self):
        score = self.classifier.similarity(self.black, self.half)
        self.assertAlmostEqual(score, 0.5)

        # Strictly greater than the threshold
        self.assertFalse(self.classifier.compare(self.black, self.half, threshold=0.5))
        self.assertTrue(self.classifier.compare(self.black, self.half, threshold=0.49))

    def test_default_threshold(self):
        result = self.classifier.compare_buffers(self.black, self.half)
        self.assertEqual(result.threshold, 0.55)
        self.assertFalse(result.is_match)

    def test_small_differences_within_tolerance(self):
        shifted = self.black.copy()
        shifted[:, :, 0] = 10
        shifted[:, :, 1] = 10
        shifted[:, :, 2] = 10
        self.assertAlmostEqual(self.classifier.similarity(self.black, shifted), 1.0)

        shifted[:, :, 2] = 11
        self.assertAlmostEqual(self.classifier.similarity(self.black, shifted), 0.0)

    def test_size_is_normalized(self):
        small = np.full((40, 60, 3), 128, dtype=np.uint8)
        large = np.full((300, 180, 3), 128, dtype=np.uint8)
        self.assertTrue(self.classifier.compare(small, large))

    def test_channel_mismatch_is_not_a_match(self):
        gray = np.zeros((200, 200), dtype=np.uint8)
        self.assertEqual(self.classifier.similarity(gray, self.black), 0.0)
        self.assertFalse(self.classifier.compare(gray, self.black))

    def test_missing_inputs_fail_closed(self):
        self.assertFalse(self.classifier.compare(None, self.black))
        self.assertFalse(self.classifier.compare(self.black, None))

    def test_empty_image_fails_closed(self):
        empty = np.zeros((0, 0, 3), dtype=np.uint8)
        self.assertFalse(self.classifier.compare(self.black, empty))


class TestReferenceLoading(unittest.TestCase):
    def test_missing_reference_is_none(self):
        classifier = SimilarityClassifier()
        self.assertIsNone(classifier.load_reference("/nonexistent/career_profile_icon.png"))

    def test_reference_is_cached(self):
        classifier = SimilarityClassifier()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "icon.png")
            cv2.imwrite(path, np.full((20, 20, 3), 200, dtype=np.uint8))

            first = classifier.load_reference(path)
            os.remove(path)
            second = classifier.load_reference(path)

        self.assertIsNotNone(first)
        self.assertIs(first, second)
        self.assertEqual(first.shape, (20, 20, 3))


if __name__ == '__main__':
    unittest.main()
