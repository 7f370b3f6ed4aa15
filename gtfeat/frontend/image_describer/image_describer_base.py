"""Base class for image describers: joint detection and description of regions on a single image.

A concrete describer supplies three variation points:
    - `_apply_preset`: maps a `DescriberPreset` to its own algorithm parameters (or rejects the preset).
    - `_allocate_impl`: creates an empty `Regions` of the concrete type the describer produces.
    - `_describe_impl`: runs detection + description on a grayscale uint8 image with an optional binary mask.

Everything callers use (configuration, describe, allocate, I/O) is implemented once here. Input validation, mask
filtering and the keypoint budget are applied here as well, so every describer honors them.

A describer instance may be shared by concurrent `describe` calls, since it keeps no per-call state. Calls to
`set_configuration_preset` must not run concurrently with other calls on the same instance.

Authors: Ayush Baid
"""
import abc
from enum import Enum, unique
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

import numpy as np

import gtfeat.utils.images as image_utils
import gtfeat.utils.io as io_utils
import gtfeat.utils.logger as logger_utils
from gtfeat.common.exceptions import DetectionError, PresetNotSupportedError
from gtfeat.common.image import Image
from gtfeat.common.regions import Regions
from gtfeat.utils.registry import AbstractableRegistryHolder

logger = logger_utils.get_logger()


@unique
class DescriberPreset(str, Enum):
    """Quality/performance tiers, in order of increasing region density and decreasing speed."""

    NORMAL: str = "NORMAL"
    HIGH: str = "HIGH"
    ULTRA: str = "ULTRA"

    @classmethod
    def from_name(cls, name: Union[str, "DescriberPreset"]) -> "DescriberPreset":
        """Parses a preset name, case-insensitively.

        Raises:
            ValueError: if the name is not one of NORMAL, HIGH or ULTRA.
        """
        if isinstance(name, DescriberPreset):
            return name
        try:
            return cls(str(name).upper())
        except ValueError:
            raise ValueError(f"Unknown preset {name}, expected one of {[p.value for p in cls]}") from None


class DescribeResult(NamedTuple):
    """Outcome of describing one image.

    On success, `regions` holds a (possibly empty) container and `error` is None. On failure, `regions` is None and
    `error` explains why. "Nothing found" is therefore a success with zero regions, never a failure.
    """

    regions: Optional[Regions]
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, regions: Regions) -> "DescribeResult":
        return cls(regions=regions, error=None)

    @classmethod
    def failure(cls, reason: str) -> "DescribeResult":
        return cls(regions=None, error=reason)


class ImageDescriberBase(metaclass=AbstractableRegistryHolder):
    """Base class for all methods which provide a joint detector-descriptor to work on a single image."""

    def __init__(
        self, max_keypoints: Optional[int] = None, preset: Optional[Union[str, DescriberPreset]] = None
    ) -> None:
        """Initialize the describer.

        Args:
            max_keypoints: Maximum number of regions to return per image, keeping the strongest responses. No limit
                if None.
            preset: Preset to configure the describer with. The describer stays unconfigured (and uses its NORMAL
                parameters) if None.

        Raises:
            PresetNotSupportedError: if the describer cannot honor the given preset.
        """
        self.max_keypoints = max_keypoints
        self._preset: Optional[DescriberPreset] = None
        self._params = self._apply_preset(DescriberPreset.NORMAL)

        if preset is not None and not self.set_configuration_preset(preset):
            raise PresetNotSupportedError(f"{type(self).__name__} does not support preset {preset}")

    @property
    def params(self) -> Any:
        """Algorithm parameters currently in effect."""
        return self._params

    @property
    def preset(self) -> Optional[DescriberPreset]:
        """Last successfully applied preset, None while unconfigured."""
        return self._preset

    @property
    def is_configured(self) -> bool:
        return self._preset is not None

    def set_configuration_preset(self, preset: Union[str, DescriberPreset]) -> bool:
        """Use a preset to control the number of detected regions.

        The change is atomic: on failure, the previous configuration stays in effect.

        Args:
            preset: The preset configuration.

        Returns:
            True if configuration succeeded.

        Raises:
            ValueError: if `preset` does not name a preset.
        """
        preset = DescriberPreset.from_name(preset)
        try:
            params = self._apply_preset(preset)
        except PresetNotSupportedError as e:
            logger.warning("%s rejected preset %s: %s", type(self).__name__, preset.value, e)
            return False

        self._params = params
        self._preset = preset
        return True

    def describe(self, image: Union[Image, np.ndarray], mask: Optional[np.ndarray] = None) -> DescribeResult:
        """Detect regions on the image and compute their attributes (description).

        Args:
            image: 8-bit image, grayscale or RGB(A). RGB(A) images are converted to grayscale.
            mask: 8-bit (H, W) mask for keypoint filtering (optional). Non-zero values depict the region of interest.
                Defaults to the mask attached to `image`, if any.

        Returns:
            Outcome holding the detected regions and their descriptors on success. No region lies on a zero pixel of
            the mask. An all-zero mask yields success with zero regions.
        """
        if image is None:
            return self._fail(image, "no image given")
        if isinstance(image, np.ndarray):
            image = Image(value_array=image)
        if mask is None:
            mask = image.mask

        # cv.cvtColor rejects these with cv.error, so check before the gray conversion.
        raw_array = np.asarray(image.value_array)
        if raw_array.dtype != np.uint8:
            return self._fail(image, f"expected 8-bit samples, got {raw_array.dtype}")
        if raw_array.size == 0:
            return self._fail(image, "image is empty")

        try:
            gray_array = image_utils.rgb_to_gray_cv(image).value_array
        except ValueError as e:
            return self._fail(image, str(e))

        binary_mask = None
        if mask is not None:
            mask = np.asarray(mask)
            if mask.shape != gray_array.shape:
                return self._fail(image, f"mask shape {mask.shape} does not match image shape {gray_array.shape}")
            binary_mask = (mask != 0).astype(np.uint8)
            if not binary_mask.any():
                return DescribeResult.ok(self.allocate())

        try:
            regions = self._describe_impl(gray_array, binary_mask)
        except DetectionError as e:
            return self._fail(image, str(e))

        if regions is None:
            return self._fail(image, "no valid regions")

        expected_type = type(self._allocate_impl())
        if type(regions) is not expected_type:
            return self._fail(image, f"produced {type(regions).__name__} instead of {expected_type.__name__}")

        if binary_mask is not None:
            regions = regions.filter_by_mask(binary_mask)
        if self.max_keypoints is not None:
            regions = regions.get_top_k(self.max_keypoints)

        return DescribeResult.ok(regions)

    def try_describe(
        self, image: Union[Image, np.ndarray], mask: Optional[np.ndarray] = None
    ) -> Tuple[bool, Optional[Regions]]:
        """Flag-returning form of `describe()`.

        Returns:
            Whether description succeeded.
            The detected regions, or None on failure.
        """
        result = self.describe(image, mask)
        return result.success, result.regions

    def allocate(self) -> Regions:
        """Allocate empty regions of the type this describer produces."""
        return self._allocate_impl()

    # --
    # IO - one file for region features, one file for region descriptors
    # --

    def load(self, regions: Regions, features_path: str, descriptors_path: str) -> bool:
        self._check_regions_type(regions)
        return regions.load(features_path, descriptors_path)

    def save(self, regions: Regions, features_path: str, descriptors_path: str) -> bool:
        self._check_regions_type(regions)
        return regions.save(features_path, descriptors_path)

    def load_features(self, regions: Regions, features_path: str) -> bool:
        self._check_regions_type(regions)
        return regions.load_features(features_path)

    def _check_regions_type(self, regions: Regions) -> None:
        """Raises TypeError if `regions` is not of the type this describer allocates."""
        expected_type = type(self.allocate())
        if type(regions) is not expected_type:
            raise TypeError(f"{type(self).__name__} works on {expected_type.__name__}, got {type(regions).__name__}")

    # --
    # Describer persistence
    # --

    def get_init_args(self) -> Dict[str, Any]:
        """Constructor arguments, other than the preset, needed to re-create this describer."""
        return {"max_keypoints": self.max_keypoints}

    def to_config(self) -> Dict[str, Any]:
        """Serializable description of this describer (type, preset, constructor arguments)."""
        return {
            "describer_type": type(self).__name__,
            "preset": None if self._preset is None else self._preset.value,
            "init_args": self.get_init_args(),
            "regions_type": self.allocate().type_name(),
        }

    @staticmethod
    def from_config(config: Dict[str, Any]) -> "ImageDescriberBase":
        """Re-creates a describer from the output of `to_config()`.

        Raises:
            KeyError: if the describer type is not known.
        """
        describer_cls = AbstractableRegistryHolder.lookup(config["describer_type"])
        return describer_cls(preset=config.get("preset"), **config.get("init_args", {}))

    def save_config(self, json_fpath: Union[str, Path]) -> None:
        io_utils.save_json_file(str(json_fpath), self.to_config())

    @staticmethod
    def load_config(json_fpath: Union[str, Path]) -> "ImageDescriberBase":
        return ImageDescriberBase.from_config(io_utils.read_json_file(json_fpath))

    def _fail(self, image: Optional[Image], reason: str) -> DescribeResult:
        file_name = None if image is None else image.file_name
        logger.warning("%s could not describe image %s: %s", type(self).__name__, file_name, reason)
        return DescribeResult.failure(reason)

    # --
    # Variation points
    # --

    @abc.abstractmethod
    def _apply_preset(self, preset: DescriberPreset) -> Any:
        """Maps the preset to algorithm parameters.

        Must not modify the describer; the returned object is swapped in by the caller.

        Raises:
            PresetNotSupportedError: if the preset cannot be honored.
        """

    @abc.abstractmethod
    def _allocate_impl(self) -> Regions:
        """Creates a new, empty regions container of the concrete type produced by `_describe_impl`."""

    @abc.abstractmethod
    def _describe_impl(self, gray_array: np.ndarray, mask: Optional[np.ndarray]) -> Optional[Regions]:
        """Detect and describe regions.

        Args:
            gray_array: (H, W) uint8 image. Must not be modified.
            mask: (H, W) uint8 array of 0's and 1's, or None.

        Returns:
            Newly created regions, or None if no valid regions could be produced.

        Raises:
            DetectionError: if detection failed.
        """
