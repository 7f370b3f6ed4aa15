"""SIFT image describer implementation.

The detector was proposed in 'Distinctive Image Features from Scale-Invariant Keypoints' and is implemented by wrapping
over OpenCV's API. Descriptors are quantized to uint8, optionally after the RootSIFT mapping.

References:
- https://www.cs.ubc.ca/~lowe/papers/ijcv04.pdf
- https://docs.opencv.org/4.x/d7/d60/classcv_1_1SIFT.html

Authors: Ayush Baid
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2 as cv
import numpy as np

import gtfeat.utils.features as feature_utils
import gtfeat.utils.images as image_utils
from gtfeat.common.exceptions import DetectionError
from gtfeat.common.regions import SIFTRegions
from gtfeat.frontend.image_describer.image_describer_base import DescriberPreset, ImageDescriberBase


@dataclass(frozen=True)
class SIFTParams:
    """Parameters of OpenCV's SIFT.

    Fields:
        contrast_threshold: threshold on the DoG response to filter out weak features in low-contrast regions.
        edge_threshold: threshold on the principal curvature ratio to filter out edge-like features.
        upscale: whether to double the image resolution before detection, to find more small-scale features.
    """

    contrast_threshold: float
    edge_threshold: float = 10.0
    upscale: bool = False


PRESET_PARAMS = {
    DescriberPreset.NORMAL: SIFTParams(contrast_threshold=0.04),
    DescriberPreset.HIGH: SIFTParams(contrast_threshold=0.01),
    DescriberPreset.ULTRA: SIFTParams(contrast_threshold=0.01, upscale=True),
}


class SIFTImageDescriber(ImageDescriberBase):
    """SIFT image describer using OpenCV's implementation."""

    def __init__(
        self,
        max_keypoints: Optional[int] = None,
        preset: Optional[Union[str, DescriberPreset]] = None,
        root_sift: bool = False,
    ) -> None:
        """Initialize the describer.

        Args:
            max_keypoints: Maximum number of regions to return per image.
            preset: Preset to configure the describer with.
            root_sift: Whether to apply the RootSIFT mapping to the descriptors.
        """
        self.root_sift = root_sift
        super().__init__(max_keypoints=max_keypoints, preset=preset)

    def get_init_args(self) -> Dict[str, Any]:
        return {"max_keypoints": self.max_keypoints, "root_sift": self.root_sift}

    def _apply_preset(self, preset: DescriberPreset) -> SIFTParams:
        return PRESET_PARAMS[preset]

    def _allocate_impl(self) -> SIFTRegions:
        return SIFTRegions()

    def _describe_impl(self, gray_array: np.ndarray, mask: Optional[np.ndarray]) -> SIFTRegions:
        params: SIFTParams = self.params

        if params.upscale:
            height, width = gray_array.shape
            gray_array = image_utils.upscale_by_two(gray_array)
            if mask is not None:
                mask = cv.resize(mask, (2 * width, 2 * height), interpolation=cv.INTER_NEAREST)

        # Create OpenCV object.
        opencv_obj = cv.SIFT_create(
            contrastThreshold=params.contrast_threshold, edgeThreshold=params.edge_threshold
        )

        # Run the OpenCV code.
        try:
            cv_keypoints, descriptors = opencv_obj.detectAndCompute(gray_array, mask)
        except cv.error as e:
            raise DetectionError(f"OpenCV SIFT failed: {e}") from e

        # Convert to gtfeat's keypoints.
        keypoints = feature_utils.cast_to_gtfeat_keypoints(cv_keypoints)
        if len(keypoints) == 0:
            return SIFTRegions()

        if params.upscale:
            # Invert the pixel-centre aligned 2x resize: x_up = 2 * x + 0.5.
            keypoints.coordinates = (keypoints.coordinates + 0.5) / 2.0 - 0.5
            keypoints.scales = keypoints.scales / 2.0

        if self.root_sift:
            descriptors = feature_utils.root_sift(descriptors)

        return SIFTRegions(keypoints, feature_utils.quantize_to_uint8(descriptors))
