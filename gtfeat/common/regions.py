"""Containers for the regions (keypoints + descriptors) detected on a single image.

A Regions object owns the SIO keypoint geometry (x, y, scale, orientation) and an (N, D) descriptor array, and knows how
to persist itself to a pair of artifacts: a features file with the geometry and a descriptors file with the payloads.
The concrete subclass fixes the descriptor length and dtype, so that a describer can allocate an empty container of the
right type before loading persisted data into it.
"""
import abc
from typing import Optional, Tuple

import numpy as np

import gtfeat.utils.io as io_utils
import gtfeat.utils.logger as logger_utils
from gtfeat.common.exceptions import RegionsIOError
from gtfeat.common.keypoints import Keypoints

logger = logger_utils.get_logger()


class Regions(metaclass=abc.ABCMeta):
    """Base class for the keypoints and descriptors detected on one image."""

    DESCRIPTOR_LENGTH: int = 0
    DESCRIPTOR_DTYPE: np.dtype = np.dtype(np.float32)

    def __init__(self, keypoints: Optional[Keypoints] = None, descriptors: Optional[np.ndarray] = None) -> None:
        """Initializes the container, empty by default.

        Args:
            keypoints: Detected keypoints, of length N.
            descriptors: Corr. descriptors, of shape (N, D) where D is the descriptor length of the concrete class.

        Raises:
            ValueError: if the number or the width of the descriptors does not match.
        """
        keypoints = Keypoints.empty() if keypoints is None else keypoints
        descriptors = self._empty_descriptors() if descriptors is None else descriptors
        self._keypoints, self._descriptors = self._validate(keypoints, descriptors)

    @classmethod
    def _empty_descriptors(cls) -> np.ndarray:
        return np.zeros((0, cls.DESCRIPTOR_LENGTH), dtype=cls.DESCRIPTOR_DTYPE)

    @classmethod
    def _validate(cls, keypoints: Keypoints, descriptors: np.ndarray) -> Tuple[Keypoints, np.ndarray]:
        descriptors = np.asarray(descriptors)
        if descriptors.size == 0:
            descriptors = cls._empty_descriptors()
        if descriptors.ndim != 2 or descriptors.shape[1] != cls.DESCRIPTOR_LENGTH:
            raise ValueError(
                f"{cls.__name__} expects descriptors of shape (N, {cls.DESCRIPTOR_LENGTH}), got {descriptors.shape}"
            )
        if descriptors.shape[0] != len(keypoints):
            raise ValueError(f"Got {descriptors.shape[0]} descriptors for {len(keypoints)} keypoints")

        return keypoints, descriptors.astype(cls.DESCRIPTOR_DTYPE, copy=False)

    @property
    def keypoints(self) -> Keypoints:
        return self._keypoints

    @property
    def descriptors(self) -> np.ndarray:
        return self._descriptors

    def __len__(self) -> int:
        """Number of regions."""
        return len(self._keypoints)

    def region_count(self) -> int:
        return len(self)

    def is_empty(self) -> bool:
        return len(self) == 0

    def positions(self) -> np.ndarray:
        """The (x, y) coordinates of the regions, of shape Nx2."""
        return self._keypoints.coordinates

    @classmethod
    def descriptor_length(cls) -> int:
        return cls.DESCRIPTOR_LENGTH

    @classmethod
    def type_name(cls) -> str:
        return cls.__name__

    @abc.abstractmethod
    def is_scalar(self) -> bool:
        """Whether descriptors are compared with the (squared) L2 distance."""

    def is_binary(self) -> bool:
        """Whether descriptors are packed bit strings compared with the Hamming distance."""
        return not self.is_scalar()

    @abc.abstractmethod
    def squared_descriptor_distance(self, i: int, other: "Regions", j: int) -> float:
        """Distance between the i-th descriptor of this object and the j-th descriptor of `other`."""

    def empty_clone(self) -> "Regions":
        """Returns a new, empty container of the same concrete type."""
        return type(self)()

    def extract_indices(self, indices: np.ndarray) -> "Regions":
        """Returns a new container of the same type holding the regions at the given indices."""
        return type(self)(self._keypoints.extract_indices(indices), self._descriptors[indices])

    def filter_by_mask(self, mask: np.ndarray) -> "Regions":
        """Returns the regions whose rounded coordinates fall on a non-zero entry of the (H, W) mask."""
        _, valid_idxs = self._keypoints.filter_by_mask(mask)
        return self.extract_indices(valid_idxs)

    def get_top_k(self, k: int) -> "Regions":
        """Returns at most k regions, picking the highest responses when available."""
        _, selection_idxs = self._keypoints.get_top_k(k)
        return self.extract_indices(selection_idxs)

    def __eq__(self, other: object) -> bool:
        """Checks equality of the concrete type, the SIO geometry and the descriptors."""
        if type(other) is not type(self):
            return False

        return np.array_equal(self._keypoints.to_sio_array(), other.keypoints.to_sio_array()) and np.array_equal(
            self._descriptors, other.descriptors
        )

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __repr__(self) -> str:
        return f"{self.type_name()}(num_regions={len(self)})"

    # --
    # IO - one file for region features, one file for region descriptors
    # --

    def load(self, features_path: str, descriptors_path: str) -> bool:
        """Reads both artifacts and replaces the content of this object.

        The object is left untouched if either artifact is missing or malformed.

        Returns:
            True if both artifacts were read successfully.
        """
        try:
            keypoints = Keypoints.from_sio_array(io_utils.read_features_file(features_path))
            descriptors = io_utils.read_descriptors_file(descriptors_path, dtype=self.DESCRIPTOR_DTYPE)
            keypoints, descriptors = self._validate(keypoints, descriptors)
        except (RegionsIOError, ValueError) as e:
            logger.error("Could not load %s from %s and %s: %s", self.type_name(), features_path, descriptors_path, e)
            return False

        self._keypoints, self._descriptors = keypoints, descriptors
        return True

    def save(self, features_path: str, descriptors_path: str) -> bool:
        """Writes the features and the descriptors artifacts."""
        return self.save_features(features_path) and self.save_descriptors(descriptors_path)

    def load_features(self, features_path: str) -> bool:
        """Reads only the features artifact. Descriptors are reset to an empty (0, D) array."""
        try:
            keypoints = Keypoints.from_sio_array(io_utils.read_features_file(features_path))
        except RegionsIOError as e:
            logger.error("Could not load features of %s from %s: %s", self.type_name(), features_path, e)
            return False

        self._keypoints, self._descriptors = keypoints, self._empty_descriptors()
        return True

    def load_descriptors(self, descriptors_path: str) -> bool:
        """Reads only the descriptors artifact, which must hold one row per current keypoint."""
        try:
            descriptors = io_utils.read_descriptors_file(descriptors_path, dtype=self.DESCRIPTOR_DTYPE)
            _, descriptors = self._validate(self._keypoints, descriptors)
        except (RegionsIOError, ValueError) as e:
            logger.error("Could not load descriptors of %s from %s: %s", self.type_name(), descriptors_path, e)
            return False

        self._descriptors = descriptors
        return True

    def save_features(self, features_path: str) -> bool:
        try:
            io_utils.write_features_file(features_path, self._keypoints.to_sio_array())
        except RegionsIOError as e:
            logger.error("Could not save features of %s to %s: %s", self.type_name(), features_path, e)
            return False
        return True

    def save_descriptors(self, descriptors_path: str) -> bool:
        try:
            io_utils.write_descriptors_file(descriptors_path, self._descriptors)
        except RegionsIOError as e:
            logger.error("Could not save descriptors of %s to %s: %s", self.type_name(), descriptors_path, e)
            return False
        return True


class ScalarRegions(Regions):
    """Regions with real-valued (or quantized) descriptors, compared with the squared L2 distance."""

    def is_scalar(self) -> bool:
        return True

    def squared_descriptor_distance(self, i: int, other: Regions, j: int) -> float:
        if type(other) is not type(self):
            raise TypeError(f"Cannot compare {self.type_name()} with {other.type_name()}")
        diff = self._descriptors[i].astype(np.float64) - other.descriptors[j].astype(np.float64)
        return float(np.dot(diff, diff))


class BinaryRegions(Regions):
    """Regions with packed binary descriptors, compared with the Hamming distance."""

    DESCRIPTOR_DTYPE: np.dtype = np.dtype(np.uint8)

    def is_scalar(self) -> bool:
        return False

    def squared_descriptor_distance(self, i: int, other: Regions, j: int) -> float:
        if type(other) is not type(self):
            raise TypeError(f"Cannot compare {self.type_name()} with {other.type_name()}")
        return float(np.unpackbits(np.bitwise_xor(self._descriptors[i], other.descriptors[j])).sum())


class SIFTRegions(ScalarRegions):
    """SIFT regions: 128 bins quantized to uint8."""

    DESCRIPTOR_LENGTH = 128
    DESCRIPTOR_DTYPE = np.dtype(np.uint8)


class AKAZEBinaryRegions(BinaryRegions):
    """AKAZE regions with full-size MLDB descriptors (486 bits packed in 61 bytes)."""

    DESCRIPTOR_LENGTH = 61


class ORBRegions(BinaryRegions):
    """ORB regions with 256 bit rBRIEF descriptors (32 bytes)."""

    DESCRIPTOR_LENGTH = 32


class DummyRegions(ScalarRegions):
    """Regions with random float descriptors, to be used in testing."""

    DESCRIPTOR_LENGTH = 16
    DESCRIPTOR_DTYPE = np.dtype(np.float32)
