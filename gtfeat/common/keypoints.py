"""Class to hold coordinates and optional metadata for keypoints, the output of detections on an image.

Authors: Ayush Baid
"""
import copy
from typing import Optional, Tuple

import numpy as np

# Number of columns of the scale-invariant oriented point (SIO) representation: x, y, scale, orientation.
NUM_SIO_FIELDS = 4


class Keypoints:
    """Output of detections in an image.

    Coordinate system convention:
        1. The x coordinate denotes the horizontal direction (+ve direction towards the right).
        2. The y coordinate denotes the vertical direction (+ve direction downwards).
        3. Origin is at the top left corner of the image.

    Orientations are in radians.
    """

    def __init__(
        self,
        coordinates: np.ndarray,
        scales: Optional[np.ndarray] = None,
        oris: Optional[np.ndarray] = None,
        responses: Optional[np.ndarray] = None,
    ):
        """Initializes the attributes.

        Args:
            coordinates: The (x, y) coordinates of the features, of shape Nx2.
            scales: Optional scale of the detections, of shape N.
            oris: Optional orientation of the detections (radians), of shape N.
            responses: Optional confidences/responses for each detection, of shape N.
        """
        self.coordinates = np.asarray(coordinates).reshape(-1, 2)
        self.scales = scales
        self.oris = oris
        self.responses = responses

    def __len__(self) -> int:
        """Number of keypoints."""
        return self.coordinates.shape[0]

    def __sizeof__(self) -> int:
        """Functionality required by Dask to avoid warnings."""
        return (
            super().__sizeof__()
            + self.coordinates.__sizeof__()
            + self.scales.__sizeof__()
            + self.oris.__sizeof__()
            + self.responses.__sizeof__()
        )

    def __eq__(self, other: object) -> bool:
        """Checks equality with the other keypoints object."""

        if not isinstance(other, Keypoints):
            return False

        return (
            np.array_equal(self.coordinates, other.coordinates)
            and _optional_array_equal(self.scales, other.scales)
            and _optional_array_equal(self.oris, other.oris)
            and _optional_array_equal(self.responses, other.responses)
        )

    def __ne__(self, other: object) -> bool:
        """Checks that the other object is not equal to the current object."""
        return not self == other

    @classmethod
    def empty(cls) -> "Keypoints":
        """Keypoints with no entries."""
        return cls(coordinates=np.zeros((0, 2), dtype=np.float32))

    @classmethod
    def from_sio_array(cls, sio: np.ndarray) -> "Keypoints":
        """Creates keypoints from an Nx4 array of (x, y, scale, orientation) rows."""
        sio = np.asarray(sio, dtype=np.float32).reshape(-1, NUM_SIO_FIELDS)
        return cls(coordinates=sio[:, :2].copy(), scales=sio[:, 2].copy(), oris=sio[:, 3].copy())

    def to_sio_array(self) -> np.ndarray:
        """Returns an Nx4 float32 array of (x, y, scale, orientation) rows.

        Missing scales are written as 1 and missing orientations as 0.
        """
        num_kps = len(self)
        sio = np.zeros((num_kps, NUM_SIO_FIELDS), dtype=np.float32)
        sio[:, :2] = self.coordinates
        sio[:, 2] = 1.0 if self.scales is None else self.scales
        sio[:, 3] = 0.0 if self.oris is None else self.oris
        return sio

    def get_top_k(self, k: int) -> Tuple["Keypoints", np.ndarray]:
        """Returns the top keypoints by their response values (or just the values from the front in case of missing
        responses.)

        If k keypoints are requested, and only n < k are available, then returning n keypoints is the expected behavior.

        Args:
            k: Maximum number of keypoints to return.

        Returns:
            Subset of current keypoints.
            Indices of the selected keypoints in the current object.
        """
        if k >= len(self):
            return copy.deepcopy(self), np.arange(self.__len__())

        if self.responses is None:
            selection_idxs = np.arange(k, dtype=np.uint32)
        else:
            # stable sort keeps the selection deterministic for tied responses
            selection_idxs = np.sort(np.argsort(-self.responses, kind="stable")[:k])

        return self.extract_indices(selection_idxs), selection_idxs

    def filter_by_mask(self, mask: np.ndarray) -> Tuple["Keypoints", np.ndarray]:
        """Filter features with respect to a region-of-interest mask of the image.

        Args:
            mask: (H, W) array where non-zero entries denote valid portions of the original image.

        Returns:
            N <= M keypoints whose (rounded) coordinates fall inside the image on a non-zero entry of the mask.
            Indices of the retained keypoints in the current object.
        """
        if len(self) == 0:
            return Keypoints.empty(), np.zeros((0,), dtype=np.int64)

        height, width = mask.shape[:2]
        rounded_coordinates = np.round(self.coordinates).astype(int)
        x = rounded_coordinates[:, 0]
        y = rounded_coordinates[:, 1]
        in_bounds = (x >= 0) & (x < width) & (y >= 0) & (y < height)

        valid = np.zeros(len(self), dtype=bool)
        valid[in_bounds] = mask[y[in_bounds], x[in_bounds]] != 0
        valid_idxs = np.flatnonzero(valid)

        return self.extract_indices(valid_idxs), valid_idxs

    def extract_indices(self, indices: np.ndarray) -> "Keypoints":
        """Form subset with the given indices.

        Args:
            indices: Indices to extract, as a 1-D vector.

        Returns:
            Subset of data at the given indices.
        """
        if indices.size == 0:
            return Keypoints.empty()

        return Keypoints(
            self.coordinates[indices],
            None if self.scales is None else self.scales[indices],
            None if self.oris is None else self.oris[indices],
            None if self.responses is None else self.responses[indices],
        )


def _optional_array_equal(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return np.array_equal(a, b)
