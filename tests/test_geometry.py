import json
import os
import sys
import tempfile
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from umatrack.core.geometry import load_zones, calculate_capture_zones, build_window_info
from umatrack.core.models import CaptureZone, WindowSnapshot


class TestCaptureZones(unittest.TestCase):
    def test_fractions_map_inside_padding(self):
        zone = CaptureZone("event_title", left=0.1, width=0.5, top=0.2, bottom=0.3)
        [area] = calculate_capture_zones(1000, 832, [zone], {"top": 32, "bottom": 0})

        # available height = 800
        self.assertEqual(area.x, 100)
        self.assertEqual(area.width, 500)
        self.assertEqual(area.y, 32 + 160)
        self.assertEqual(area.height, 400)

    def test_values_are_floored(self):
        zone = CaptureZone("umamusume", left=0.333, width=0.333, top=0.1, bottom=0.1)
        [area] = calculate_capture_zones(101, 101, [zone], {})

        self.assertEqual(area.x, 33)
        self.assertEqual(area.width, 33)
        self.assertEqual(area.y, 10)
        self.assertEqual(area.height, 80)

    def test_bottom_padding_shrinks_available_height(self):
        zone = CaptureZone("event_type", left=0.0, width=1.0, top=0.0, bottom=0.0)
        [area] = calculate_capture_zones(200, 300, [zone], {"top": 30, "bottom": 20})

        self.assertEqual(area.y, 30)
        self.assertEqual(area.height, 250)

    def test_order_is_preserved(self):
        zones = [CaptureZone(name, 0.0, 1.0, 0.0, 0.0) for name in ("c", "a", "b")]
        areas = calculate_capture_zones(10, 10, zones, {})
        self.assertEqual([a.name for a in areas], ["c", "a", "b"])

    def test_window_info_adds_absolute_offsets(self):
        snapshot = WindowSnapshot(x=50, y=70, width=400, height=400, title="Umamusume", app_name="uma.exe")
        zone = CaptureZone("career_profile_icon", left=0.5, width=0.25, top=0.5, bottom=0.25)
        info = build_window_info(snapshot, [zone], {"top": 0, "bottom": 0})

        area = info.zone("career_profile_icon")
        self.assertEqual((area.x, area.y), (200, 200))
        self.assertEqual((area.absolute_x, area.absolute_y), (250, 270))
        self.assertIsNone(info.zone("missing"))


class TestLoadZones(unittest.TestCase):
    def test_load_zones_reads_ordered_definitions(self):
        data = [
            {"name": "event_title", "left": 0.1, "width": 0.8, "top": 0.2, "bottom": 0.7},
            {"name": "event_type", "left": 0, "width": 0.5, "top": 0.1, "bottom": 0.85},
        ]
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "zones.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f)
            zones = load_zones(path)

        self.assertEqual([z.name for z in zones], ["event_title", "event_type"])
        self.assertAlmostEqual(zones[0].bottom, 0.7)
        self.assertIsInstance(zones[1].left, float)

    def test_bundled_zones_file_is_valid(self):
        path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'data', 'zones.json'))
        names = {z.name for z in load_zones(path)}
        self.assertTrue({"career_profile_icon", "umamusume", "event_type", "event_title"} <= names)


if __name__ == '__main__':
    unittest.main()
