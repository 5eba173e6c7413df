"""Unit tests for location models."""

import unittest

import pydantic

from travelmap.app.locations import models


class TestLocation(unittest.TestCase):
    """Tests for the Location table model."""

    def test_has_image(self) -> None:
        """Either image column counts as an image."""
        location = models.Location(title='Oslo', latitude=59.9, longitude=10.7)
        self.assertFalse(location.has_image)
        location.image_data = b'x'
        self.assertTrue(location.has_image)
        location.image_data = None
        location.image_path = 'a.jpg'
        self.assertTrue(location.has_image)

    def test_created_at_defaults(self) -> None:
        """New locations get a creation timestamp."""
        location = models.Location(title='Oslo', latitude=59.9, longitude=10.7)
        self.assertIsNotNone(location.created_at)


class TestLocationFields(unittest.TestCase):
    """Tests for LocationFields validation."""

    def test_range_checked(self) -> None:
        """Coordinates outside the valid range are rejected."""
        with self.assertRaises(pydantic.ValidationError):
            models.LocationFields(title='X', latitude=90.5, longitude=0)
        with self.assertRaises(pydantic.ValidationError):
            models.LocationFields(title='X', latitude=0, longitude=180.5)


class TestLocationSummary(unittest.TestCase):
    """Tests for LocationSummary.from_location."""

    def test_excludes_image_bytes(self) -> None:
        """The API view reports image presence but not the bytes."""
        location = models.Location(
            id=3,
            title='Oslo',
            latitude=59.9,
            longitude=10.7,
            image_data=b'abc',
            image_type='image/png',
        )
        summary = models.LocationSummary.from_location(location)
        dumped = summary.model_dump()
        self.assertEqual(dumped['id'], 3)
        self.assertTrue(dumped['has_image'])
        self.assertFalse(dumped['has_thumbnail'])
        self.assertEqual(dumped['image_type'], 'image/png')
        self.assertNotIn('image_data', dumped)
        self.assertNotIn('thumbnail_data', dumped)


if __name__ == '__main__':
    unittest.main()
