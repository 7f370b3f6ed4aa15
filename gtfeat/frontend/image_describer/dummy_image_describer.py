"""A dummy image describer which is to be used in testing.

Authors: Ayush Baid
"""
from typing import Optional

import numpy as np

from gtfeat.common.exceptions import DetectionError, PresetNotSupportedError
from gtfeat.common.keypoints import Keypoints
from gtfeat.common.regions import DummyRegions
from gtfeat.frontend.image_describer.image_describer_base import DescriberPreset, ImageDescriberBase

NUM_DETECTIONS_PER_PRESET = {DescriberPreset.NORMAL: 10, DescriberPreset.HIGH: 20}


class DummyImageDescriber(ImageDescriberBase):
    """Assigns random regions to an input image, seeded by the image content.

    Supports the NORMAL and HIGH presets only, and fails on images without any texture.
    """

    def _apply_preset(self, preset: DescriberPreset) -> int:
        if preset not in NUM_DETECTIONS_PER_PRESET:
            raise PresetNotSupportedError(f"{preset.value} is not available for random regions")
        return NUM_DETECTIONS_PER_PRESET[preset]

    def _allocate_impl(self) -> DummyRegions:
        return DummyRegions()

    def _describe_impl(self, gray_array: np.ndarray, mask: Optional[np.ndarray]) -> DummyRegions:
        if gray_array.min() == gray_array.max():
            raise DetectionError("image has no texture")

        # a local generator keeps concurrent calls independent
        rng = np.random.default_rng(int(np.sum(gray_array, dtype=np.uint64)) % (2**32))
        num_detections = self.params
        height, width = gray_array.shape

        coordinates = rng.uniform(low=[0, 0], high=[width - 1, height - 1], size=(num_detections, 2))
        keypoints = Keypoints(
            coordinates=coordinates.astype(np.float32),
            scales=rng.uniform(1.0, 10.0, size=num_detections).astype(np.float32),
            oris=rng.uniform(0.0, 2 * np.pi, size=num_detections).astype(np.float32),
            responses=rng.random(num_detections).astype(np.float32),
        )
        descriptors = rng.random((num_detections, DummyRegions.DESCRIPTOR_LENGTH)).astype(np.float32)

        return DummyRegions(keypoints, descriptors)
