"""Cacher for any image describer, which caches the output on disk in the top level folder `cache`.

This class provides the caching functionality to a gtfeat image describer. To use this cacher, initialize it with
the describer you want to apply the cache on.

Example: To cache output of `SIFTImageDescriber`, use
`ImageDescriberCacher(image_describer_obj=SIFTImageDescriber())`.

Authors: Ayush Baid
"""
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np

import gtfeat.utils.cache as cache_utils
import gtfeat.utils.io as io_utils
import gtfeat.utils.logger as logger_utils
from gtfeat.common.image import Image
from gtfeat.common.regions import Regions
from gtfeat.frontend.image_describer.image_describer_base import (
    DescriberPreset,
    DescribeResult,
    ImageDescriberBase,
)

logger = logger_utils.get_logger()

CACHE_ROOT_PATH = Path(__file__).resolve().parent.parent.parent.parent / "cache"


class ImageDescriberCacher(ImageDescriberBase):
    """Cacher for image describer output on disk, keyed on the input image, the mask and the describer settings."""

    def __init__(self, image_describer_obj: ImageDescriberBase, cache_root: Optional[Path] = None) -> None:
        """Initializes the cacher with the actual describer object.

        Args:
            image_describer_obj: describer to use in case of cache miss.
            cache_root: root folder of the cache. Defaults to the `cache` folder at the repository root.
        """
        self._image_describer = image_describer_obj
        self._cache_root = CACHE_ROOT_PATH if cache_root is None else Path(cache_root)
        super().__init__(max_keypoints=image_describer_obj.max_keypoints)

    @property
    def params(self) -> Any:
        return self._image_describer.params

    @property
    def preset(self) -> Optional[DescriberPreset]:
        return self._image_describer.preset

    @property
    def is_configured(self) -> bool:
        return self._image_describer.is_configured

    def set_configuration_preset(self, preset: Union[str, DescriberPreset]) -> bool:
        return self._image_describer.set_configuration_preset(preset)

    def to_config(self) -> Dict[str, Any]:
        return self._image_describer.to_config()

    def __get_cache_path(self, cache_key: str) -> Path:
        """Gets the file path to the cache bz2 file from the cache key."""
        return self._cache_root / "image_describer" / "{}.pbz2".format(cache_key)

    def __generate_cache_key(self, image: Image, mask: Optional[np.ndarray]) -> str:
        """Generates the cache key from the inputs and the underlying describer's type and settings."""
        describer_key = "{}_{}".format(
            type(self._image_describer).__name__, cache_utils.generate_hash_for_config(self.to_config())
        )
        input_key = cache_utils.generate_hash_for_image(image) + cache_utils.generate_hash_for_mask(mask)
        return "{}_{}".format(describer_key, input_key)

    def describe(self, image: Union[Image, np.ndarray], mask: Optional[np.ndarray] = None) -> DescribeResult:
        """Detect and describe regions, with caching.

        If the results are in the cache, they are fetched and returned. Otherwise, `describe` of the underlying
        describer is called and successful results are cached.
        """
        if image is None:
            return self._image_describer.describe(image, mask)
        if isinstance(image, np.ndarray):
            image = Image(value_array=image)
        if mask is None:
            mask = image.mask

        cache_path = self.__get_cache_path(cache_key=self.__generate_cache_key(image, mask))
        cached_regions = io_utils.read_from_bz2_file(cache_path)
        if isinstance(cached_regions, Regions):
            return DescribeResult.ok(cached_regions)

        result = self._image_describer.describe(image, mask)
        if result.success:
            io_utils.write_to_bz2_file(result.regions, cache_path)

        return result

    def load(self, regions: Regions, features_path: str, descriptors_path: str) -> bool:
        return self._image_describer.load(regions, features_path, descriptors_path)

    def save(self, regions: Regions, features_path: str, descriptors_path: str) -> bool:
        return self._image_describer.save(regions, features_path, descriptors_path)

    def load_features(self, regions: Regions, features_path: str) -> bool:
        return self._image_describer.load_features(regions, features_path)

    def _apply_preset(self, preset: DescriberPreset) -> None:
        # Presets are applied on the underlying describer.
        return None

    def _allocate_impl(self) -> Regions:
        return self._image_describer.allocate()

    def _describe_impl(self, gray_array: np.ndarray, mask: Optional[np.ndarray]) -> Optional[Regions]:
        return self._image_describer.describe(gray_array, mask).regions
