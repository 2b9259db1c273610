import sys
import threading
from typing import List, Optional

import cv2
import mss
import numpy as np
import psutil

from umatrack.core.geometry import build_window_info, load_zones
from umatrack.core.models import CaptureZone, CropArea, WindowHandle, WindowInfo
from umatrack.services.base_service import IWindowService, IConfigService
from umatrack.logger import logger


class WindowService(IWindowService):
    """
    Win32 window lookup (ctypes) + mss capture of the window rectangle.
    Only the first visible, non-minimized window whose title contains the
    filter is tracked.
    """

    def __init__(self, config_service: IConfigService, zones: Optional[List[CaptureZone]] = None):
        self.config = config_service
        self.zones: List[CaptureZone] = zones or []
        self._thread_local = threading.local()
        self._user32 = None
        self._warned_unsupported = False

    def initialize(self) -> bool:
        if not self.zones:
            zones_path = self.config.get("zones_path")
            try:
                self.zones = load_zones(zones_path)
                logger.info(f"WindowService: Loaded {len(self.zones)} capture zones from {zones_path}")
            except (OSError, ValueError, KeyError) as e:
                logger.error(f"WindowService: Failed to load zones from {zones_path}: {e}")
                return False

        if sys.platform.startswith("win"):
            import ctypes
            self._user32 = ctypes.windll.user32
        return True

    def shutdown(self) -> None:
        sct = getattr(self._thread_local, "sct", None)
        if sct is not None:
            sct.close()
            self._thread_local.sct = None

    @property
    def sct(self):
        """Thread-safe mss instance."""
        if getattr(self._thread_local, "sct", None) is None:
            self._thread_local.sct = mss.mss()
        return self._thread_local.sct

    # --- Enumeration -------------------------------------------------------

    def locate_window(self, title_filter: str) -> Optional[WindowHandle]:
        if self._user32 is None:
            if not self._warned_unsupported:
                logger.warning("WindowService: Window enumeration requires Windows; target window will never be found.")
                self._warned_unsupported = True
            return None

        try:
            for hwnd, title in self._enum_windows():
                if title_filter in title:
                    return self._describe(hwnd, title)
        except (OSError, ValueError) as e:
            logger.debug(f"WindowService: Window lookup failed: {e}")
        return None

    def _enum_windows(self):
        import ctypes

        user32 = self._user32
        EnumWindowsProc = ctypes.WINFUNCTYPE(ctypes.c_bool, ctypes.c_void_p, ctypes.c_void_p)
        found = []

        def foreach_window(hwnd, lParam):
            if user32.IsWindowVisible(hwnd) and not user32.IsIconic(hwnd):
                length = user32.GetWindowTextLengthW(hwnd)
                if length > 0:
                    buff = ctypes.create_unicode_buffer(length + 1)
                    user32.GetWindowTextW(hwnd, buff, length + 1)
                    found.append((hwnd, buff.value))
            return True

        user32.EnumWindows(EnumWindowsProc(foreach_window), 0)
        return found

    def _describe(self, hwnd, title: str) -> WindowHandle:
        import ctypes
        from ctypes import wintypes

        rect = wintypes.RECT()
        self._user32.GetWindowRect(hwnd, ctypes.byref(rect))

        pid = wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))

        return WindowHandle(
            hwnd=int(hwnd),
            title=title,
            app_name=self._process_name(int(pid.value)),
            x=rect.left,
            y=rect.top,
            width=rect.right - rect.left,
            height=rect.bottom - rect.top,
        )

    @staticmethod
    def _process_name(pid: int) -> str:
        if pid <= 0:
            return ""
        try:
            return psutil.Process(pid).name()
        except (psutil.AccessDenied, psutil.NoSuchProcess, psutil.ZombieProcess):
            return ""

    # --- Capture -----------------------------------------------------------

    def window_info(self, handle: WindowHandle) -> WindowInfo:
        return build_window_info(handle.snapshot(), self.zones, self.config.get("padding") or {})

    def capture_image(self, handle: WindowHandle) -> np.ndarray:
        monitor = {
            "top": handle.y,
            "left": handle.x,
            "width": handle.width,
            "height": handle.height,
        }
        sct_img = self.sct.grab(monitor)
        return cv2.cvtColor(np.array(sct_img), cv2.COLOR_BGRA2BGR)

    def crop(self, image: np.ndarray, area: CropArea) -> np.ndarray:
        h, w = image.shape[:2]
        left = max(0, area.x)
        top = max(0, area.y)
        right = min(w, area.x + area.width)
        bottom = min(h, area.y + area.height)
        if right <= left or bottom <= top:
            raise ValueError(f"Zone '{area.name}' is outside the captured image ({w}x{h})")
        return image[top:bottom, left:right].copy()

