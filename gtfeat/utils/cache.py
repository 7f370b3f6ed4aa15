"""Utility function for caching.

Authors: Ayush Baid
"""

import hashlib
from typing import Any, Dict, Optional

import numpy as np
import simplejson as json

from gtfeat.common.image import Image


def generate_hash_for_image(image: Image) -> str:
    """Hash the image using image name, content, and image shape."""
    return hashlib.sha1(
        "{}_{}_{}".format(image.file_name, image.width, image.height).encode()
    ).hexdigest() + generate_hash_for_numpy_array(image.value_array)


def generate_hash_for_numpy_array(input: np.ndarray) -> str:
    """Hash the numpy array."""
    return hashlib.sha1(np.ascontiguousarray(input).tobytes()).hexdigest()


def generate_hash_for_mask(mask: Optional[np.ndarray]) -> str:
    """Hash an optional mask; a missing mask has a fixed key."""
    if mask is None:
        return "nomask"
    return generate_hash_for_numpy_array(mask)


def generate_hash_for_config(config: Dict[str, Any]) -> str:
    """Hash a JSON-serializable config, independent of the key order."""
    return hashlib.sha1(json.dumps(config, sort_keys=True).encode()).hexdigest()
