"""ORB image describer implementation.

The detector was proposed in Rublee et al. and is implemented by wrapping over OpenCV's API.

References:
Ethan Rublee, Vincent Rabaud, Kurt Konolige, Gary Bradski.
ORB: An efficient alternative to SIFT or SURF. ICCV 11.
https://ieeexplore.ieee.org/document/6126544

Authors: John Lambert
"""
from dataclasses import dataclass
from typing import Optional

import cv2 as cv
import numpy as np

import gtfeat.utils.features as feature_utils
from gtfeat.common.exceptions import DetectionError
from gtfeat.common.regions import ORBRegions
from gtfeat.frontend.image_describer.image_describer_base import DescriberPreset, ImageDescriberBase


@dataclass(frozen=True)
class ORBParams:
    """Parameters of OpenCV's ORB.

    Fields:
        num_features: maximum number of features to retain.
        fast_threshold: intensity threshold of the FAST corner test.
    """

    num_features: int
    fast_threshold: int


PRESET_PARAMS = {
    DescriberPreset.NORMAL: ORBParams(num_features=2000, fast_threshold=20),
    DescriberPreset.HIGH: ORBParams(num_features=5000, fast_threshold=10),
    DescriberPreset.ULTRA: ORBParams(num_features=10000, fast_threshold=5),
}


class ORBImageDescriber(ImageDescriberBase):
    """ORB image describer using OpenCV's implementation."""

    def _apply_preset(self, preset: DescriberPreset) -> ORBParams:
        return PRESET_PARAMS[preset]

    def _allocate_impl(self) -> ORBRegions:
        return ORBRegions()

    def _describe_impl(self, gray_array: np.ndarray, mask: Optional[np.ndarray]) -> ORBRegions:
        params: ORBParams = self.params

        opencv_obj = cv.ORB_create(nfeatures=params.num_features, fastThreshold=params.fast_threshold)

        try:
            cv_keypoints, descriptors = opencv_obj.detectAndCompute(gray_array, mask)
        except cv.error as e:
            raise DetectionError(f"OpenCV ORB failed: {e}") from e

        keypoints = feature_utils.cast_to_gtfeat_keypoints(cv_keypoints)
        if len(keypoints) == 0:
            return ORBRegions()

        return ORBRegions(keypoints, descriptors)
