"""Unit tests for feature utils.
"""
import unittest

import cv2 as cv
import numpy as np

import gtfeat.utils.features as feature_utils


class TestFeatureUtils(unittest.TestCase):
    """Class containing all unit tests for feature utils."""

    def test_cast_to_gtfeat_keypoints(self):
        """Tests conversion of OpenCV keypoints, with orientations converted to radians."""
        cv_keypoints = [
            cv.KeyPoint(x=12.0, y=15.0, size=3.0, angle=90.0, response=0.5),
            cv.KeyPoint(x=3.5, y=7.25, size=8.0, angle=-1, response=0.25),
        ]

        keypoints = feature_utils.cast_to_gtfeat_keypoints(cv_keypoints)

        np.testing.assert_allclose(keypoints.coordinates, [[12.0, 15.0], [3.5, 7.25]])
        np.testing.assert_allclose(keypoints.scales, [3.0, 8.0])
        np.testing.assert_allclose(keypoints.oris, [np.pi / 2, 0.0], rtol=1e-6)
        np.testing.assert_allclose(keypoints.responses, [0.5, 0.25])

    def test_cast_empty_list(self):
        """Tests conversion of an empty list of keypoints."""
        keypoints = feature_utils.cast_to_gtfeat_keypoints([])

        self.assertEqual(len(keypoints), 0)
        self.assertEqual(keypoints.coordinates.shape, (0, 2))

    def test_root_sift(self):
        """Tests that squared RootSIFT descriptors are L1-normalized SIFT descriptors."""
        descriptors = np.random.default_rng(0).uniform(0, 200, size=(5, 128)).astype(np.float32)

        root_sift = feature_utils.root_sift(descriptors) / 512.0

        np.testing.assert_allclose(np.sum(root_sift**2, axis=1), np.ones(5), rtol=1e-5)

    def test_quantize_to_uint8(self):
        """Tests rounding and saturation."""
        quantized = feature_utils.quantize_to_uint8(np.array([[-3.0, 0.4, 0.6, 254.6, 300.0]]))

        np.testing.assert_array_equal(quantized, [[0, 0, 1, 255, 255]])
        self.assertEqual(quantized.dtype, np.uint8)


if __name__ == "__main__":
    unittest.main()
