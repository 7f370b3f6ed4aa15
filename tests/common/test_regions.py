"""Unit tests for the regions containers and their two-artifact persistence.
"""
import tempfile
import unittest
from pathlib import Path

import numpy as np

from gtfeat.common.keypoints import Keypoints
from gtfeat.common.regions import AKAZEBinaryRegions, DummyRegions, ORBRegions, SIFTRegions

NUM_REGIONS = 12


def generate_sift_regions(num_regions: int = NUM_REGIONS, seed: int = 0) -> SIFTRegions:
    rng = np.random.default_rng(seed)
    keypoints = Keypoints(
        coordinates=rng.uniform(0, 100, size=(num_regions, 2)),
        scales=rng.uniform(1, 5, size=num_regions),
        oris=rng.uniform(0, 6, size=num_regions),
        responses=rng.random(num_regions),
    )
    descriptors = rng.integers(0, 256, size=(num_regions, 128), dtype=np.uint8)
    return SIFTRegions(keypoints, descriptors)


def generate_orb_regions(num_regions: int = NUM_REGIONS, seed: int = 0) -> ORBRegions:
    rng = np.random.default_rng(seed)
    keypoints = Keypoints(coordinates=rng.uniform(0, 100, size=(num_regions, 2)).astype(np.float32))
    descriptors = rng.integers(0, 256, size=(num_regions, 32), dtype=np.uint8)
    return ORBRegions(keypoints, descriptors)


class TestRegions(unittest.TestCase):
    """Unit tests for Regions."""

    def setUp(self) -> None:
        super().setUp()
        self._tmp_dir = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp_dir.name)

    def tearDown(self) -> None:
        self._tmp_dir.cleanup()
        super().tearDown()

    def test_empty_by_default(self):
        """Tests that a default-constructed container is empty, with correctly shaped descriptors."""
        regions = SIFTRegions()

        self.assertTrue(regions.is_empty())
        self.assertEqual(regions.region_count(), 0)
        self.assertEqual(regions.descriptors.shape, (0, 128))
        self.assertEqual(regions.descriptors.dtype, np.uint8)

    def test_descriptor_count_mismatch(self):
        """Tests that the number of descriptors has to match the number of keypoints."""
        keypoints = Keypoints(coordinates=np.zeros((3, 2)))
        with self.assertRaises(ValueError):
            SIFTRegions(keypoints, np.zeros((2, 128), dtype=np.uint8))

    def test_descriptor_length_mismatch(self):
        """Tests that the descriptor width has to match the concrete type."""
        keypoints = Keypoints(coordinates=np.zeros((3, 2)))
        with self.assertRaises(ValueError):
            ORBRegions(keypoints, np.zeros((3, 61), dtype=np.uint8))

    def test_type_properties(self):
        """Tests the scalar/binary flags and descriptor lengths of the concrete types."""
        self.assertTrue(SIFTRegions().is_scalar())
        self.assertTrue(DummyRegions().is_scalar())
        self.assertTrue(ORBRegions().is_binary())
        self.assertTrue(AKAZEBinaryRegions().is_binary())
        self.assertEqual(AKAZEBinaryRegions.descriptor_length(), 61)
        self.assertEqual(ORBRegions().type_name(), "ORBRegions")

    def test_empty_clone(self):
        """Tests that the clone is empty and of the same concrete type."""
        clone = generate_sift_regions().empty_clone()

        self.assertIs(type(clone), SIFTRegions)
        self.assertTrue(clone.is_empty())

    def test_equality_depends_on_type(self):
        """Tests that empty containers of different types are not equal."""
        self.assertEqual(SIFTRegions(), SIFTRegions())
        self.assertNotEqual(ORBRegions(), AKAZEBinaryRegions())

    def test_filter_by_mask(self):
        """Tests that descriptors follow the keypoints retained by the mask."""
        regions = generate_sift_regions()
        mask = np.zeros((101, 101), dtype=np.uint8)
        mask[:, :50] = 1

        filtered = regions.filter_by_mask(mask)

        expected_idxs = np.flatnonzero(np.round(regions.positions()[:, 0]) < 50)
        np.testing.assert_array_equal(filtered.descriptors, regions.descriptors[expected_idxs])
        self.assertIs(type(filtered), SIFTRegions)

    def test_get_top_k(self):
        """Tests that the strongest responses are kept."""
        regions = generate_sift_regions()

        top = regions.get_top_k(3)

        expected_idxs = np.sort(np.argsort(-regions.keypoints.responses)[:3])
        np.testing.assert_array_equal(top.descriptors, regions.descriptors[expected_idxs])

    def test_scalar_distance(self):
        """Tests the squared L2 distance between scalar descriptors."""
        keypoints = Keypoints(coordinates=np.zeros((2, 2)))
        descriptors = np.zeros((2, 16), dtype=np.float32)
        descriptors[1, :2] = [3.0, 4.0]
        regions = DummyRegions(keypoints, descriptors)

        self.assertAlmostEqual(regions.squared_descriptor_distance(0, regions, 1), 25.0)
        self.assertAlmostEqual(regions.squared_descriptor_distance(1, regions, 1), 0.0)

    def test_binary_distance(self):
        """Tests the Hamming distance between binary descriptors."""
        keypoints = Keypoints(coordinates=np.zeros((2, 2)))
        descriptors = np.zeros((2, 32), dtype=np.uint8)
        descriptors[1, 0] = 0b10110000
        descriptors[1, 5] = 0b00000001
        regions = ORBRegions(keypoints, descriptors)

        self.assertEqual(regions.squared_descriptor_distance(0, regions, 1), 4.0)

    def test_distance_between_different_types(self):
        """Tests that descriptors of different types cannot be compared."""
        with self.assertRaises(TypeError):
            generate_orb_regions().squared_descriptor_distance(0, AKAZEBinaryRegions(), 0)

    def test_save_load_round_trip(self):
        """Tests that saving and loading into a fresh container yields equal regions."""
        for regions in [generate_sift_regions(), generate_orb_regions()]:
            features_path = self.tmp_path / f"{regions.type_name()}.feat"
            descriptors_path = self.tmp_path / f"{regions.type_name()}.desc"

            self.assertTrue(regions.save(str(features_path), str(descriptors_path)))

            loaded = regions.empty_clone()
            self.assertTrue(loaded.load(str(features_path), str(descriptors_path)))

            self.assertEqual(loaded, regions)
            self.assertEqual(len(loaded), len(regions))
            np.testing.assert_array_equal(loaded.descriptors, regions.descriptors)

    def test_save_load_empty(self):
        """Tests persistence of regions without any entry."""
        features_path = str(self.tmp_path / "empty.feat")
        descriptors_path = str(self.tmp_path / "empty.desc")

        self.assertTrue(SIFTRegions().save(features_path, descriptors_path))

        loaded = generate_sift_regions()
        self.assertTrue(loaded.load(features_path, descriptors_path))
        self.assertTrue(loaded.is_empty())

    def test_save_creates_directories(self):
        """Tests that missing parent directories are created."""
        regions = generate_orb_regions()
        features_path = self.tmp_path / "a" / "b" / "img.feat"
        descriptors_path = self.tmp_path / "c" / "img.desc"

        self.assertTrue(regions.save(str(features_path), str(descriptors_path)))
        self.assertTrue(features_path.exists())
        self.assertTrue(descriptors_path.exists())

    def test_load_features_only(self):
        """Tests that only the geometry is loaded, with empty descriptors."""
        regions = generate_sift_regions()
        features_path = str(self.tmp_path / "img.feat")
        descriptors_path = str(self.tmp_path / "img.desc")
        regions.save(features_path, descriptors_path)

        fully_loaded = SIFTRegions()
        fully_loaded.load(features_path, descriptors_path)
        features_only = SIFTRegions()

        self.assertTrue(features_only.load_features(features_path))

        np.testing.assert_array_equal(
            features_only.keypoints.to_sio_array(), fully_loaded.keypoints.to_sio_array()
        )
        self.assertEqual(features_only.descriptors.shape, (0, 128))

    def test_load_missing_features(self):
        """Tests that loading a non-existent features artifact fails without modifying the container."""
        regions = generate_sift_regions()
        descriptors_path = str(self.tmp_path / "img.desc")
        regions.save(str(self.tmp_path / "img.feat"), descriptors_path)

        target = generate_sift_regions(seed=1)
        expected = generate_sift_regions(seed=1)

        self.assertFalse(target.load(str(self.tmp_path / "missing.feat"), descriptors_path))
        self.assertFalse(target.load_features(str(self.tmp_path / "missing.feat")))
        self.assertEqual(target, expected)

    def test_load_malformed_features(self):
        """Tests that a features artifact with a wrong number of fields is rejected."""
        features_path = self.tmp_path / "bad.feat"
        features_path.write_text("1.0 2.0 3.0\n")
        descriptors_path = str(self.tmp_path / "img.desc")
        generate_sift_regions(num_regions=1).save_descriptors(descriptors_path)

        target = SIFTRegions()
        self.assertFalse(target.load(str(features_path), descriptors_path))
        self.assertTrue(target.is_empty())

    def test_load_mismatched_artifacts(self):
        """Tests that artifacts with different numbers of entries are rejected."""
        features_path = str(self.tmp_path / "img.feat")
        descriptors_path = str(self.tmp_path / "img.desc")
        generate_sift_regions(num_regions=5).save_features(features_path)
        generate_sift_regions(num_regions=6).save_descriptors(descriptors_path)

        self.assertFalse(SIFTRegions().load(features_path, descriptors_path))

    def test_load_descriptors_of_other_type(self):
        """Tests that descriptors of a different concrete type are rejected."""
        features_path = str(self.tmp_path / "img.feat")
        descriptors_path = str(self.tmp_path / "img.desc")
        generate_orb_regions().save(features_path, descriptors_path)

        self.assertFalse(SIFTRegions().load(features_path, descriptors_path))
        self.assertFalse(AKAZEBinaryRegions().load(features_path, descriptors_path))

    def test_load_descriptors_after_features(self):
        """Tests that descriptors are loaded on top of previously loaded features."""
        regions = generate_sift_regions()
        features_path = str(self.tmp_path / "img.feat")
        descriptors_path = str(self.tmp_path / "img.desc")
        regions.save(features_path, descriptors_path)

        target = SIFTRegions()
        self.assertTrue(target.load_features(features_path))
        self.assertTrue(target.load_descriptors(descriptors_path))

        np.testing.assert_array_equal(target.descriptors, regions.descriptors)
        self.assertEqual(len(target), NUM_REGIONS)

    def test_load_descriptors_count_mismatch(self):
        """Tests that descriptors not matching the current keypoints are rejected without modifying the container."""
        descriptors_path = str(self.tmp_path / "img.desc")
        generate_sift_regions(num_regions=5).save_descriptors(descriptors_path)

        target = generate_sift_regions(seed=1)
        expected = generate_sift_regions(seed=1)

        self.assertFalse(target.load_descriptors(descriptors_path))
        self.assertFalse(target.load_descriptors(str(self.tmp_path / "missing.desc")))
        self.assertEqual(target, expected)


if __name__ == "__main__":
    unittest.main()
