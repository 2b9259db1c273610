import argparse
import asyncio
import ctypes
import sys

import keyboard

from umatrack.config import CONFIG_FILE
from umatrack.core.events import (
    bus, WindowFoundEvent, WindowMovedEvent, WindowHiddenEvent, CareerProfileEvent, MenuEvent,
    AnalysisStartedEvent, AnalysisCompleteEvent, AnalysisErrorEvent,
    UmamusumeDetectedEvent, UmamusumeDetectionErrorEvent
)
from umatrack.service_container import ServiceContainer
from umatrack.services.base_service import (
    IConfigService, IWindowService, IOcrService, ICatalogService, IRemoteService, ITrackerService, IAnalysisService
)
from umatrack.services.analysis_service import AnalysisService
from umatrack.services.catalog_service import CatalogService
from umatrack.services.config_service import ConfigService
from umatrack.services.ocr_service import OcrService
from umatrack.services.remote_service import RemoteService
from umatrack.services.tracker_service import TrackerService
from umatrack.services.window_service import WindowService
from umatrack.logger import logger

# Window geometry must be in physical pixels for mss
if sys.platform.startswith("win"):
    try:
        ctypes.windll.shcore.SetProcessDpiAwareness(1) # PROCESS_SYSTEM_DPI_AWARE
    except Exception:
        try:
            ctypes.windll.user32.SetProcessDPIAware()
        except Exception:
            logger.warning("Could not set DPI awareness")


def to_keyboard_combo(hotkey: str) -> str:
    """'Ctrl + Shift + E' -> 'ctrl+shift+e'"""
    return "+".join(part.strip().lower() for part in hotkey.split("+") if part.strip())


class Launcher:
    def __init__(self, config_path: str = CONFIG_FILE, debug: bool = False):
        self.container = ServiceContainer()
        self.config_path = config_path
        self.debug = debug
        self.loop = None
        self._tasks = set()
        self._hotkey_registered = False

    def setup_services(self):
        config = ConfigService(self.config_path)
        window = WindowService(config)
        catalog = CatalogService(config)
        remote = RemoteService(config)
        ocr = OcrService(config)

        self.container.register(IConfigService, config)
        self.container.register(IWindowService, window)
        self.container.register(ICatalogService, catalog)
        self.container.register(IRemoteService, remote)
        self.container.register(IOcrService, ocr)
        self.container.register(ITrackerService, TrackerService(config, window))
        self.container.register(IAnalysisService, AnalysisService(config, window, ocr, catalog, remote))

        # Registration order is initialization order: config first
        failed = self.container.initialize_all()
        if failed:
            logger.warning(f"Launcher: Running with degraded services: {', '.join(failed)}")
        if self.debug:
            config.set("debug", True)

    def setup_event_listeners(self):
        bus.subscribe(WindowFoundEvent, lambda e: logger.info(
            f"Window found: {e.info.window.title} ({e.info.window.app_name})"))
        bus.subscribe(WindowMovedEvent, lambda e: logger.debug(
            f"Window moved: {e.info.window.x},{e.info.window.y} {e.info.window.width}x{e.info.window.height}"))
        bus.subscribe(WindowHiddenEvent, lambda e: logger.info("Window hidden"))
        bus.subscribe(CareerProfileEvent, self.on_career_profile)
        bus.subscribe(MenuEvent, lambda e: logger.info(f"Menu blur: {e.blur}"))

        bus.subscribe(AnalysisStartedEvent, lambda e: logger.info("Event analysis started..."))
        bus.subscribe(AnalysisCompleteEvent, self.on_analysis_complete)
        bus.subscribe(AnalysisErrorEvent, lambda e: logger.error(f"Analysis failed: {e.error}"))
        bus.subscribe(UmamusumeDetectedEvent, lambda e: logger.info(f"Umamusume updated to: {e.name}"))
        bus.subscribe(UmamusumeDetectionErrorEvent, lambda e: logger.error(f"Umamusume detection failed: {e.error}"))

    def setup_hotkey(self):
        config = self.container.resolve(IConfigService)
        hotkey = config.get("hotkey", "")
        if not hotkey:
            return
        try:
            keyboard.add_hotkey(to_keyboard_combo(hotkey), self._on_hotkey)
            self._hotkey_registered = True
            logger.info(f"Press {hotkey} to analyze the current event.")
        except Exception as e:
            logger.error(f"Failed to register hotkey '{hotkey}': {e}")

    # --- Orchestration -------------------------------------------------------

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_hotkey(self):
        # Called from the keyboard hook thread
        if self.loop is not None:
            self.loop.call_soon_threadsafe(self.request_analysis)

    def request_analysis(self):
        logger.info("Capture hotkey pressed")
        self._spawn(self.container.resolve(IAnalysisService).analyze_event())

    def on_career_profile(self, event: CareerProfileEvent):
        logger.info(f"Career profile page is {'active' if event.active else 'inactive'}")
        if event.active:
            self._spawn(self.container.resolve(IAnalysisService).detect_umamusume())

    def on_analysis_complete(self, event: AnalysisCompleteEvent):
        for choice in event.choices:
            label = f" ({choice.label})" if choice.label else ""
            logger.info(f"Choice {choice.number}{label}: "
                        f"success={choice.success_outcomes} failure={choice.failure_outcomes}")

    async def run(self):
        self.loop = asyncio.get_running_loop()
        tracker = self.container.resolve(ITrackerService)
        tracker.start()
        logger.info("All systems active")
        try:
            await tracker.wait_closed()
        finally:
            self.container.shutdown_all()
            if self._hotkey_registered:
                keyboard.unhook_all_hotkeys()


def main():
    parser = argparse.ArgumentParser(description="Umamusume event helper")
    parser.add_argument("--config", default=CONFIG_FILE, help="Path to config.json")
    parser.add_argument("--debug", action="store_true", help="Save OCR crops to debug_images/")
    args = parser.parse_args()

    launcher = Launcher(args.config, debug=args.debug)
    launcher.setup_services()
    launcher.setup_event_listeners()
    launcher.setup_hotkey()

    logger.info("Starting application...")
    try:
        asyncio.run(launcher.run())
    except KeyboardInterrupt:
        logger.info("Shutting down.")


if __name__ == "__main__":
    main()
