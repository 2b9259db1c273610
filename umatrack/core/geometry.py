import json
import math
from typing import Dict, Iterable, List

from umatrack.core.models import CaptureZone, CropArea, WindowInfo, WindowSnapshot


def load_zones(path: str) -> List[CaptureZone]:
    """Reads the ordered zone definitions ({name, left, width, top, bottom})."""
    with open(path, "r", encoding="utf-8") as f:
        return [CaptureZone.from_dict(z) for z in json.load(f)]


def calculate_capture_zones(window_width: int, window_height: int,
                            zones: Iterable[CaptureZone], padding: Dict[str, int]) -> List[CropArea]:
    """
    Maps zone fractions onto local window pixels.
    top/bottom fractions are measured inside the area left after removing
    the title bar (padding top) and bottom chrome (padding bottom).
    """
    pad_top = int(padding.get("top", 0))
    pad_bottom = int(padding.get("bottom", 0))
    available_height = window_height - pad_top - pad_bottom

    captures = []
    for zone in zones:
        captures.append(CropArea(
            name=zone.name,
            x=math.floor(window_width * zone.left),
            y=pad_top + math.floor(available_height * zone.top),
            width=math.floor(window_width * zone.width),
            height=math.floor(available_height * (1 - zone.top - zone.bottom)),
        ))
    return captures


def with_window_offset(captures: List[CropArea], window_x: int, window_y: int) -> List[CropArea]:
    for capture in captures:
        capture.absolute_x = window_x + capture.x
        capture.absolute_y = window_y + capture.y
    return captures


def build_window_info(snapshot: WindowSnapshot, zones: Iterable[CaptureZone],
                      padding: Dict[str, int]) -> WindowInfo:
    captures = calculate_capture_zones(snapshot.width, snapshot.height, zones, padding)
    return WindowInfo(window=snapshot, captures=with_window_offset(captures, snapshot.x, snapshot.y))
