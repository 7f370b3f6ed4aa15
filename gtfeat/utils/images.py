"""Common utilities for image manipulation.

Authors: Ayush Baid
"""

import cv2 as cv
import numpy as np

from gtfeat.common.image import Image


def rgb_to_gray_cv(image: Image) -> Image:
    """
    RGB to Grayscale conversion using opencv

    Args:
        image: Input gray/RGB/RGBA image.

    Raises:
        ValueError: wrong input dimensions

    Returns:
        grayscale transformed image.
    """

    input_array = image.value_array

    output_array = input_array

    if input_array.ndim == 2:
        pass
    elif input_array.ndim == 3 and input_array.shape[2] == 1:
        output_array = input_array[:, :, 0]
    elif input_array.ndim == 3 and input_array.shape[2] == 4:
        output_array = cv.cvtColor(input_array, cv.COLOR_RGBA2GRAY)
    elif input_array.ndim == 3 and input_array.shape[2] == 3:
        output_array = cv.cvtColor(input_array, cv.COLOR_RGB2GRAY)
    else:
        raise ValueError("Input image dimensions are wrong")

    return Image(output_array, image.file_name, image.mask)


def upscale_by_two(gray_array: np.ndarray) -> np.ndarray:
    """Doubles the resolution of a grayscale image with bilinear interpolation."""
    height, width = gray_array.shape[:2]
    return cv.resize(gray_array, (2 * width, 2 * height), interpolation=cv.INTER_LINEAR)
