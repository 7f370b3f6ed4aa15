"""AKAZE image describer implementation.

The detector was proposed in 'Fast Explicit Diffusion for Accelerated Features in Nonlinear Scale Spaces' and is
implemented by wrapping over OpenCV's API, with binary MLDB descriptors.

References:
- http://www.bmva.org/bmvc/2013/Papers/paper0013/paper0013.pdf
- https://docs.opencv.org/4.x/d8/d30/classcv_1_1AKAZE.html
"""
from dataclasses import dataclass
from typing import Optional

import cv2 as cv
import numpy as np

import gtfeat.utils.features as feature_utils
from gtfeat.common.exceptions import DetectionError
from gtfeat.common.regions import AKAZEBinaryRegions
from gtfeat.frontend.image_describer.image_describer_base import DescriberPreset, ImageDescriberBase


@dataclass(frozen=True)
class AKAZEParams:
    """Parameters of OpenCV's AKAZE.

    Fields:
        threshold: detector response threshold to accept a point.
        num_octaves: maximum octave evolution of the image.
    """

    threshold: float
    num_octaves: int = 4


PRESET_PARAMS = {
    DescriberPreset.NORMAL: AKAZEParams(threshold=1e-3),
    DescriberPreset.HIGH: AKAZEParams(threshold=1e-4),
    DescriberPreset.ULTRA: AKAZEParams(threshold=1e-5),
}


class AKAZEImageDescriber(ImageDescriberBase):
    """AKAZE image describer using OpenCV's implementation."""

    def _apply_preset(self, preset: DescriberPreset) -> AKAZEParams:
        return PRESET_PARAMS[preset]

    def _allocate_impl(self) -> AKAZEBinaryRegions:
        return AKAZEBinaryRegions()

    def _describe_impl(self, gray_array: np.ndarray, mask: Optional[np.ndarray]) -> AKAZEBinaryRegions:
        params: AKAZEParams = self.params

        opencv_obj = cv.AKAZE_create(
            descriptor_type=cv.AKAZE_DESCRIPTOR_MLDB, threshold=params.threshold, nOctaves=params.num_octaves
        )

        try:
            cv_keypoints, descriptors = opencv_obj.detectAndCompute(gray_array, mask)
        except cv.error as e:
            raise DetectionError(f"OpenCV AKAZE failed: {e}") from e

        keypoints = feature_utils.cast_to_gtfeat_keypoints(cv_keypoints)
        if len(keypoints) == 0:
            return AKAZEBinaryRegions()

        return AKAZEBinaryRegions(keypoints, descriptors)
