"""Computes regions (features + descriptors) for every image of a directory and saves them to disk.

For each image `<stem>.<ext>`, the output directory receives `<stem>.feat` (keypoint geometry) and `<stem>.desc`
(descriptors). The describer used is saved as `image_describer.json`, so that later stages can allocate regions of the
right type to load these artifacts.

Example:
    python gtfeat/runner/run_compute_features.py --images_dir images/ --output_dir matches/ --config_name sift --preset HIGH
"""

import argparse
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import dask
import hydra
from hydra.utils import instantiate
from omegaconf import OmegaConf

import gtfeat.utils.io as io_utils
import gtfeat.utils.logger as logger_utils
from gtfeat.frontend.image_describer.image_describer_base import DescriberPreset, ImageDescriberBase

logger = logger_utils.get_logger()

DESCRIBER_CONFIG_FNAME = "image_describer.json"
FEATURES_EXTENSION = ".feat"
DESCRIPTORS_EXTENSION = ".desc"


def get_artifact_paths(output_dir: Path, img_path: Path) -> Dict[str, Path]:
    """Paths of the features and descriptors artifacts of an image."""
    return {
        "features": output_dir / f"{img_path.stem}{FEATURES_EXTENSION}",
        "descriptors": output_dir / f"{img_path.stem}{DESCRIPTORS_EXTENSION}",
    }


def describe_and_save(describer_config: Dict[str, Any], img_path: Path, output_dir: Path) -> Optional[int]:
    """Describes one image with a describer of its own, and saves the regions.

    Args:
        describer_config: output of `ImageDescriberBase.to_config()`.
        img_path: path of the image.
        output_dir: directory to write the artifacts to.

    Returns:
        Number of regions saved, or None if the image was skipped.
    """
    image_describer = ImageDescriberBase.from_config(describer_config)

    try:
        image = io_utils.load_image(img_path)
        mask_path = io_utils.find_mask_for_image(img_path)
        mask = None if mask_path is None else io_utils.load_mask(mask_path)
    except OSError as e:
        logger.warning("Skipping %s: could not read the image or its mask: %s", img_path.name, e)
        return None

    result = image_describer.describe(image, mask)
    if not result.success:
        logger.warning("Skipping %s: %s", img_path.name, result.error)
        return None

    paths = get_artifact_paths(output_dir, img_path)
    if not image_describer.save(result.regions, str(paths["features"]), str(paths["descriptors"])):
        logger.error("Could not save the regions of %s", img_path.name)
        return None

    return len(result.regions)


class ComputeFeaturesRunner:
    """Runs an image describer over a directory of images."""

    tag = "gtfeat feature computation"

    def __init__(self, override_args: Optional[List[str]] = None) -> None:
        argparser: argparse.ArgumentParser = self.construct_argparser()
        self.parsed_args: argparse.Namespace = argparser.parse_args(args=override_args)

        # Configure the logging system
        log_level = getattr(logging, self.parsed_args.log.upper(), None)
        if log_level is not None:
            logger.setLevel(log_level)

        self.images_dir = Path(self.parsed_args.images_dir)
        self.output_dir = Path(self.parsed_args.output_dir)
        self.image_describer: ImageDescriberBase = self.construct_image_describer()

    def construct_argparser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description=self.tag)

        parser.add_argument("--images_dir", type=str, required=True, help="Directory with the input images.")
        parser.add_argument(
            "--output_dir", type=str, required=True, help="Directory where features and descriptors are written."
        )
        parser.add_argument(
            "--config_name",
            type=str,
            default="sift",
            help="Describer config, choose from among gtfeat/configs/describer (e.g. `sift`, `akaze`, `orb`).",
        )
        parser.add_argument(
            "--preset",
            type=str,
            default=None,
            choices=[p.value for p in DescriberPreset],
            help="Override flag for the describer preset.",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Recompute regions even if the artifacts of an image already exist.",
        )
        parser.add_argument(
            "--num_workers",
            type=int,
            default=1,
            help="Number of threads describing images in parallel.",
        )
        parser.add_argument(
            "--log",
            type=str,
            default="info",
            help="Log level, e.g. `debug`, `info` or `warning`.",
        )
        return parser

    def construct_image_describer(self) -> ImageDescriberBase:
        """Creates the describer, reusing the one persisted in the output directory unless `--force` is given."""
        describer_config_path = self.output_dir / DESCRIBER_CONFIG_FNAME
        if describer_config_path.exists() and not self.parsed_args.force:
            logger.info("Reusing the describer saved in %s", describer_config_path)
            return ImageDescriberBase.load_config(describer_config_path)

        overrides = []
        if self.parsed_args.preset is not None:
            overrides.append(f"image_describer.preset={self.parsed_args.preset}")

        with hydra.initialize_config_module(config_module="gtfeat.configs.describer", version_base=None):
            cfg = hydra.compose(config_name=self.parsed_args.config_name, overrides=overrides)
            logger.info("Using describer config:\n%s", OmegaConf.to_yaml(cfg.image_describer))
            return instantiate(cfg.image_describer)

    def run(self) -> Dict[str, Optional[int]]:
        """Describes all images, in parallel.

        Returns:
            Number of regions saved per image described in this run; None for images skipped because of a failure.
            Images whose artifacts already exist are not described again and are not listed, unless `--force`.
        """
        start_time = time.time()

        self.image_describer.save_config(self.output_dir / DESCRIBER_CONFIG_FNAME)
        describer_config = self.image_describer.to_config()

        img_paths = [Path(p) for p in io_utils.get_sorted_image_names_in_dir(str(self.images_dir))]
        logger.info("Found %d images in %s", len(img_paths), self.images_dir)

        summary: Dict[str, Optional[int]] = {}
        delayed_results = {}
        for img_path in img_paths:
            paths = get_artifact_paths(self.output_dir, img_path)
            if not self.parsed_args.force and paths["features"].exists() and paths["descriptors"].exists():
                logger.debug("Regions of %s already computed", img_path.name)
                continue
            delayed_results[img_path.name] = dask.delayed(describe_and_save)(
                describer_config, img_path, self.output_dir
            )

        if delayed_results:
            computed = dask.compute(
                delayed_results, scheduler="threads", num_workers=max(1, self.parsed_args.num_workers)
            )[0]
            summary.update(computed)

        num_failed = sum(1 for num_regions in summary.values() if num_regions is None)
        logger.info(
            "Described %d images (%d skipped on failure) in %.2f sec",
            len(summary),
            num_failed,
            time.time() - start_time,
        )
        return summary


if __name__ == "__main__":
    runner = ComputeFeaturesRunner()
    runner.run()
