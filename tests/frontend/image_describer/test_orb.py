"""Tests for the ORB image describer.
"""
import unittest

import tests.frontend.image_describer.opencv_describer_test_base as test_base
from gtfeat.common.regions import ORBRegions
from gtfeat.frontend.image_describer.image_describer_base import DescriberPreset
from gtfeat.frontend.image_describer.orb import ORBImageDescriber


class TestORBImageDescriber(test_base.OpenCVImageDescriberTestBase):
    """Unit tests for ORBImageDescriber."""

    def setUp(self):
        super().setUp()
        self.image_describer = ORBImageDescriber()
        self.regions_type = ORBRegions

    def test_preset_feature_budget(self):
        """Tests that the number of regions stays within the feature budget of the preset."""
        for preset in DescriberPreset:
            describer = self.describer_with_preset(preset)
            regions = describer.describe(self.image_array).regions

            self.assertLessEqual(len(regions), describer.params.num_features)


if __name__ == "__main__":
    unittest.main()
