"""Common utilities for feature points.

Authors: Ayush Baid
"""

from typing import Sequence

import cv2 as cv
import numpy as np

from gtfeat.common.keypoints import Keypoints


def cast_to_gtfeat_keypoints(keypoints: Sequence[cv.KeyPoint]) -> Keypoints:
    """Cast list of OpenCV's keypoints to gtfeat's keypoints.

    OpenCV reports orientations in degrees, in [0, 360), or -1 when not applicable; they are converted to radians, with
    -1 mapped to 0.

    Args:
        keypoints: list of OpenCV's keypoints.

    Returns:
        gtfeat's keypoints with the same information as input keypoints.
    """
    if len(keypoints) == 0:
        return Keypoints.empty()

    coordinates = np.array([kp.pt for kp in keypoints], dtype=np.float32)
    scales = np.array([kp.size for kp in keypoints], dtype=np.float32)
    angles = np.array([kp.angle for kp in keypoints], dtype=np.float32)
    responses = np.array([kp.response for kp in keypoints], dtype=np.float32)

    oris = np.where(angles < 0, 0.0, np.deg2rad(angles)).astype(np.float32)

    return Keypoints(coordinates=coordinates, scales=scales, oris=oris, responses=responses)


def root_sift(descriptors: np.ndarray) -> np.ndarray:
    """Applies the RootSIFT mapping (L1 normalization then element-wise square root) to SIFT descriptors.

    Reference: Arandjelovic and Zisserman, "Three things everyone should know to improve object retrieval", CVPR 2012.

    Args:
        descriptors: SIFT descriptors, of shape (N, 128).

    Returns:
        RootSIFT descriptors scaled by 512 for uint8 quantization, of shape (N, 128).
    """
    descriptors = descriptors.astype(np.float32)
    l1_norms = np.maximum(np.abs(descriptors).sum(axis=1, keepdims=True), np.finfo(np.float32).eps)
    return np.sqrt(descriptors / l1_norms) * 512.0


def quantize_to_uint8(descriptors: np.ndarray) -> np.ndarray:
    """Rounds and saturates descriptor values to uint8."""
    return np.clip(np.round(descriptors), 0, 255).astype(np.uint8)
