"""Class for holding an image and its associated data.

Authors: Ayush Baid
"""

from typing import NamedTuple, Optional, Tuple

import numpy as np


class Image(NamedTuple):
    """Holds the image, an optional region-of-interest mask, and original image file name.

    The mask, when present, has the same (H, W) shape as the image. Zero entries are excluded from detection.
    """

    value_array: np.ndarray
    file_name: Optional[str] = None
    mask: Optional[np.ndarray] = None

    @property
    def height(self) -> int:
        """The height of the image (i.e. number of pixels in the vertical direction)."""
        return self.value_array.shape[0]

    @property
    def width(self) -> int:
        """The width of the image (i.e. number of pixels in the horizontal direction)."""
        return self.value_array.shape[1]

    @property
    def shape(self) -> Tuple[int, ...]:
        """The shape of the image, (H, W) or (H, W, C)."""
        return self.value_array.shape

    @property
    def is_grayscale(self) -> bool:
        """Whether the image has a single channel."""
        return self.value_array.ndim == 2

    def __eq__(self, other: object) -> bool:
        """Checks equality of pixel values, file name and mask."""
        if not isinstance(other, Image):
            return False

        if self.file_name != other.file_name:
            return False

        if not np.array_equal(self.value_array, other.value_array):
            return False

        if self.mask is None or other.mask is None:
            return self.mask is None and other.mask is None

        return np.array_equal(self.mask, other.mask)

    def __ne__(self, other: object) -> bool:
        """Checks that the other object is not equal to the current object."""
        return not self == other
