"""Functions to provide I/O APIs for all the modules.

Authors: Ayush Baid, John Lambert
"""
import glob
import os
import pickle
from bz2 import BZ2File
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import simplejson as json
from PIL import Image as PILImage

import gtfeat.utils.logger as logger_utils
from gtfeat.common.exceptions import RegionsIOError
from gtfeat.common.image import Image
from gtfeat.common.keypoints import NUM_SIO_FIELDS

logger = logger_utils.get_logger()


IMG_EXTENSIONS = ["png", "PNG", "jpg", "JPG"]
MASK_SUFFIX = "_mask"
GLOBAL_MASK_FNAME = "mask.png"

# 9 significant digits round-trip float32 values exactly.
FEATURES_FLOAT_FMT = "%.9g"


def load_image(img_path: Union[str, Path]) -> Image:
    """Load the image from disk as an 8-bit grayscale image.

    Args:
        img_path: The path of image to load.

    Returns:
        Loaded image, with value_array of shape (H, W) and dtype uint8.
    """
    original_image = PILImage.open(img_path)
    gray_image = original_image.convert("L") if original_image.mode != "L" else original_image
    return Image(value_array=np.asarray(gray_image), file_name=Path(img_path).name)


def load_mask(mask_path: Union[str, Path]) -> np.ndarray:
    """Load a region-of-interest mask from disk.

    Args:
        mask_path: The path of the 8-bit mask image. Non-zero pixels denote the region of interest.

    Returns:
        Mask of shape (H, W) and dtype uint8.
    """
    return np.asarray(PILImage.open(mask_path).convert("L"))


def save_image(image: Image, img_path: str) -> None:
    """Saves the image to disk

    Args:
        image: Image.
        img_path: The path on disk to save the image to.
    """
    im = PILImage.fromarray(image.value_array)
    im.save(img_path)


def save_json_file(
    json_fpath: str,
    data: Union[Dict[Any, Any], List[Any]],
) -> None:
    """Save a Python dictionary or list to a JSON file.
    Args:
        json_fpath: Path to file to create.
        data: Python dictionary or list to be serialized.
    """
    os.makedirs(os.path.dirname(os.path.abspath(json_fpath)), exist_ok=True)
    with open(json_fpath, "w") as f:
        json.dump(data, f, indent=4, ignore_nan=True)


def read_json_file(fpath: Union[str, Path]) -> Any:
    """Load dictionary from JSON file.

    Args:
        fpath: Path to JSON file.

    Returns:
        Deserialized Python dictionary or list.
    """
    with open(fpath, "r") as f:
        return json.load(f)


def write_features_file(file_path: Union[str, Path], sio: np.ndarray) -> None:
    """Writes keypoint geometry as text, one `x y scale orientation` row per keypoint.

    Args:
        file_path: Path of the features artifact.
        sio: Array of shape (N, 4).

    Raises:
        RegionsIOError: if the file cannot be written.
    """
    try:
        Path(file_path).parent.mkdir(exist_ok=True, parents=True)
        with open(file_path, "w") as f:
            np.savetxt(f, np.asarray(sio, dtype=np.float32).reshape(-1, NUM_SIO_FIELDS), fmt=FEATURES_FLOAT_FMT)
    except OSError as e:
        raise RegionsIOError(f"Could not write features file {file_path}") from e


def read_features_file(file_path: Union[str, Path]) -> np.ndarray:
    """Reads keypoint geometry written by `write_features_file`.

    Args:
        file_path: Path of the features artifact.

    Returns:
        Array of shape (N, 4) and dtype float32. An empty file yields N = 0.

    Raises:
        RegionsIOError: if the file is missing, unreadable or malformed.
    """
    try:
        with open(file_path, "r") as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise RegionsIOError(f"Could not read features file {file_path}") from e

    rows = []
    for line_idx, line in enumerate(lines):
        fields = line.split()
        if not fields:
            continue
        if len(fields) != NUM_SIO_FIELDS:
            raise RegionsIOError(
                f"Line {line_idx + 1} of {file_path} has {len(fields)} fields, expected {NUM_SIO_FIELDS}"
            )
        try:
            rows.append([float(field) for field in fields])
        except ValueError as e:
            raise RegionsIOError(f"Line {line_idx + 1} of {file_path} is not numeric") from e

    return np.array(rows, dtype=np.float32).reshape(-1, NUM_SIO_FIELDS)


def write_descriptors_file(file_path: Union[str, Path], descriptors: np.ndarray) -> None:
    """Writes the (N, D) descriptor array in numpy's binary format, at exactly the given path.

    Raises:
        RegionsIOError: if the file cannot be written.
    """
    try:
        Path(file_path).parent.mkdir(exist_ok=True, parents=True)
        with open(file_path, "wb") as f:
            np.save(f, descriptors, allow_pickle=False)
    except OSError as e:
        raise RegionsIOError(f"Could not write descriptors file {file_path}") from e


def read_descriptors_file(file_path: Union[str, Path], dtype: np.dtype) -> np.ndarray:
    """Reads a descriptor array written by `write_descriptors_file`.

    Args:
        file_path: Path of the descriptors artifact.
        dtype: Expected dtype of the descriptors.

    Returns:
        Descriptor array of shape (N, D).

    Raises:
        RegionsIOError: if the file is missing, malformed, or does not hold a 2D array of the expected dtype.
    """
    try:
        with open(file_path, "rb") as f:
            descriptors = np.load(f, allow_pickle=False)
    except (OSError, ValueError, EOFError) as e:
        raise RegionsIOError(f"Could not read descriptors file {file_path}") from e

    if descriptors.ndim != 2:
        raise RegionsIOError(f"Descriptors in {file_path} have {descriptors.ndim} dimensions, expected 2")
    if descriptors.dtype != np.dtype(dtype):
        raise RegionsIOError(f"Descriptors in {file_path} have dtype {descriptors.dtype}, expected {np.dtype(dtype)}")

    return descriptors


def read_from_bz2_file(file_path: Path) -> Optional[Any]:
    """Reads data using pickle from a compressed file, if it exists."""
    if not file_path.exists():
        return None

    try:
        with BZ2File(file_path, "rb") as f:
            data = pickle.load(f)
    except Exception:
        logger.exception("Cache file was corrupted, removing it...")
        os.remove(file_path)
        data = None

    return data


def write_to_bz2_file(data: Any, file_path: Path) -> None:
    """Writes data using pickle to a compressed file."""
    file_path.parent.mkdir(exist_ok=True, parents=True)
    with BZ2File(file_path, "wb") as f:
        pickle.dump(data, f)
    if not file_path.exists():
        logger.debug("Cache file could not be written!")


def get_sorted_image_names_in_dir(dir_path: str) -> List[str]:
    """Finds all jpg and png images in directory and returns their names in sorted order.

    Mask images (`mask.png` and `<name>_mask.<ext>`) are not returned.

    Args:
        dir_path: Path to directory containing images.

    Returns:
        image_paths: List of image names in sorted order.
    """
    image_paths = set()
    for extension in IMG_EXTENSIONS:
        search_path = os.path.join(dir_path, f"*.{extension}")
        image_paths.update(glob.glob(search_path))

    return sorted(
        path
        for path in image_paths
        if Path(path).name != GLOBAL_MASK_FNAME and not Path(path).stem.endswith(MASK_SUFFIX)
    )


def find_mask_for_image(img_path: Union[str, Path]) -> Optional[Path]:
    """Finds the mask to use for an image: `<stem>_mask.png` next to it, else `mask.png` in the same directory."""
    img_path = Path(img_path)
    candidates = [img_path.parent / f"{img_path.stem}{MASK_SUFFIX}.png", img_path.parent / GLOBAL_MASK_FNAME]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None
