import os
import sys
import threading

import numpy as np

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from umatrack.core.geometry import build_window_info
from umatrack.core.models import CaptureZone, WindowHandle
from umatrack.services.base_service import IWindowService, IOcrService, IRemoteService

ZONES = [
    CaptureZone("career_profile_icon", left=0.0, width=0.25, top=0.0, bottom=0.75),
    CaptureZone("umamusume", left=0.25, width=0.5, top=0.25, bottom=0.5),
    CaptureZone("event_type", left=0.0, width=0.5, top=0.5, bottom=0.25),
    CaptureZone("event_title", left=0.0, width=1.0, top=0.75, bottom=0.0),
]

# Fake captures are filled with a per-zone code so the fake OCR knows what it is reading
ZONE_CODES = {"career_profile_icon": 1, "umamusume": 2, "event_type": 3, "event_title": 4}


def make_handle(x=100, y=50, width=400, height=400, title="Umamusume", app_name="UmamusumePrettyDerby.exe"):
    return WindowHandle(hwnd=42, title=title, app_name=app_name, x=x, y=y, width=width, height=height)


class FakeWindowService(IWindowService):
    def __init__(self, handle=None, padding=None):
        self.handle = handle
        self.padding = padding or {"top": 0, "bottom": 0}
        self.image = np.zeros((400, 400, 3), dtype=np.uint8)
        self.capture_error = None
        self.capture_count = 0
        self.zones = list(ZONES)

    def initialize(self):
        return True

    def shutdown(self):
        pass

    def locate_window(self, title_filter):
        return self.handle

    def window_info(self, handle):
        return build_window_info(handle.snapshot(), self.zones, self.padding)

    def capture_image(self, handle):
        self.capture_count += 1
        if self.capture_error is not None:
            raise self.capture_error
        return self.image

    def crop(self, image, area):
        return image[area.y:area.y + area.height, area.x:area.x + area.width].copy()

    def capture_zone(self, handle, zone_name):
        if zone_name not in ZONE_CODES:
            return None
        return np.full((8, 8, 3), ZONE_CODES[zone_name], dtype=np.uint8)


class FakeOcrService(IOcrService):
    """Returns scripted text per zone. A list value is consumed one read at a time."""

    def __init__(self, texts):
        self.texts = dict(texts)
        self.reads = {name: 0 for name in ZONE_CODES}

    def initialize(self):
        return True

    def shutdown(self):
        pass

    def recognize_text(self, image, language=None):
        code = int(image[0, 0, 0])
        zone = next(name for name, c in ZONE_CODES.items() if c == code)
        self.reads[zone] += 1
        value = self.texts.get(zone, "")
        if isinstance(value, list):
            return value.pop(0) if len(value) > 1 else value[0]
        return value


class FakeRemoteService(IRemoteService):
    def __init__(self, choices=None, error=None, block=False):
        self.choices = choices or []
        self.error = error
        self.calls = []
        self.started = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()

    def initialize(self):
        return True

    def shutdown(self):
        pass

    def fetch_choices(self, archive_id):
        self.calls.append(archive_id)
        self.started.set()
        self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.choices


class EventRecorder:
    def __init__(self, event_bus, *event_types):
        self.events = []
        for event_type in event_types:
            event_bus.subscribe(event_type, self.events.append)

    def of(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]
