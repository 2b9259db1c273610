import asyncio
import dataclasses
import os
import time
from typing import Callable, Optional, Set

from umatrack.config import POLL_INTERVAL, CAREER_PROFILE_CHECK_INTERVAL, ZONE_CAREER_PROFILE_ICON
from umatrack.core.events import (
    EventBus, bus, WindowFoundEvent, WindowMovedEvent, WindowHiddenEvent, CareerProfileEvent, MenuEvent
)
from umatrack.core.models import TrackerState, WindowHandle, WindowInfo
from umatrack.core.similarity import SimilarityClassifier
from umatrack.services.base_service import ITrackerService, IConfigService, IWindowService
from umatrack.logger import logger

BLURRED_ICON = "career_profile_icon_blurred.png"
ACTIVE_ICON = "career_profile_icon.png"


class TrackerService(ITrackerService):
    """
    Polls the game window at ~30 Hz.

    Geometry (found / moved / hidden) is evaluated on every tick. The career
    profile icon check is throttled to one run per CAREER_PROFILE_CHECK_INTERVAL
    and only publishes when a flag actually flips.

    Known limitation: the blurred icon template counts as "active" as well as
    "menu open". An alternate icon skin is not recognised by either template.
    """

    def __init__(self, config_service: IConfigService, window_service: IWindowService,
                 classifier: Optional[SimilarityClassifier] = None,
                 event_bus: Optional[EventBus] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config_service
        self.window = window_service
        self.classifier = classifier or SimilarityClassifier()
        self.bus = event_bus or bus
        self.clock = clock

        self.poll_interval = POLL_INTERVAL
        self.check_interval = CAREER_PROFILE_CHECK_INTERVAL

        self.last_window_info: Optional[WindowInfo] = None
        self.state = TrackerState()
        self.blur_reference = None
        self.icon_reference = None

        self.running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()
        self._tick_seq = 0
        self._applied_seq = 0

    def initialize(self) -> bool:
        ref_dir = self.config.get("reference_images_dir", "")
        self.blur_reference = self.classifier.load_reference(os.path.join(ref_dir, BLURRED_ICON))
        self.icon_reference = self.classifier.load_reference(os.path.join(ref_dir, ACTIVE_ICON))
        return True

    def shutdown(self) -> None:
        self.stop()

    # --- Loop ----------------------------------------------------------------

    def start(self) -> None:
        """Schedules the polling loop on the running event loop."""
        if self.running:
            return
        self.running = True
        self._loop_task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("TrackerService: Window tracker started (30 FPS)")

    def stop(self) -> None:
        self.running = False
        if self._loop_task is not None:
            self._loop_task.cancel()
        for task in list(self._ticks):
            task.cancel()

    async def wait_closed(self) -> None:
        if self._loop_task is not None:
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass

    async def _loop(self):
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while self.running:
            # Interval-timer semantics: a slow tick does not delay the next one
            task = loop.create_task(self.tick())
            self._ticks.add(task)
            task.add_done_callback(self._on_tick_done)

            next_tick += self.poll_interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    def _on_tick_done(self, task: asyncio.Task) -> None:
        self._ticks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"TrackerService: Tick failed: {exc}", exc_info=exc)

    # --- Tick ----------------------------------------------------------------

    def _locate(self) -> Optional[WindowHandle]:
        try:
            return self.window.locate_window(self.config.get("window_title", "Umamusume"))
        except Exception as e:
            logger.debug(f"TrackerService: Window lookup failed: {e}")
            return None

    async def tick(self) -> None:
        self._tick_seq += 1
        seq = self._tick_seq
        handle = await asyncio.to_thread(self._locate)

        # A lookup that finished after a newer tick's lookup is stale
        if seq < self._applied_seq:
            return
        self._applied_seq = seq

        if handle is None:
            if self.last_window_info is not None and self.last_window_info.window.visible:
                logger.info("TrackerService: Window hidden")
                logger.update_context("window", None)
                self.bus.publish(WindowHiddenEvent())
            self.last_window_info = None
            return

        current = self.window.window_info(handle)

        if self.last_window_info is None:
            self.last_window_info = current
            logger.info(f"TrackerService: Window found '{current.window.title}' "
                        f"{current.window.width}x{current.window.height} @ ({current.window.x}, {current.window.y})")
            logger.update_context("window", current.window.title)
            self.bus.publish(WindowFoundEvent(current))
        elif current.window.differs_from(self.last_window_info.window):
            self.last_window_info = current
            logger.debug(f"TrackerService: Window moved to ({current.window.x}, {current.window.y}) "
                         f"{current.window.width}x{current.window.height}")
            self.bus.publish(WindowMovedEvent(current))

        await self.check_career_profile(handle, current)

    async def check_career_profile(self, handle: WindowHandle, info: WindowInfo) -> bool:
        now = self.clock()
        if now - self.state.last_check_at < self.check_interval:
            return self.state.career_profile_active

        zone = info.zone(ZONE_CAREER_PROFILE_ICON)
        if zone is None:
            return False

        try:
            image = await asyncio.to_thread(self.window.capture_image, handle)
            icon = self.window.crop(image, zone)
            blur_match = self.classifier.compare(self.blur_reference, icon)
            icon_match = self.classifier.compare(self.icon_reference, icon)
        except Exception as e:
            logger.error(f"TrackerService: Error checking career profile page: {e}")
            return self.state.career_profile_active

        # Results from an older overlapping check are dropped
        if now < self.state.last_check_at:
            return self.state.career_profile_active

        active = icon_match or blur_match
        self._apply(active, blur_match, now)
        return active

    def _apply(self, active: bool, blurred: bool, now: float) -> None:
        was_active = self.state.career_profile_active
        was_blurred = self.state.menu_blurred
        self.state = TrackerState(career_profile_active=active, menu_blurred=blurred, last_check_at=now)

        if active != was_active:
            logger.info(f"TrackerService: Career profile {'active' if active else 'inactive'}")
            self.bus.publish(CareerProfileEvent(active=active))
        if blurred != was_blurred:
            logger.info(f"TrackerService: Menu {'opened (blur)' if blurred else 'closed'}")
            self.bus.publish(MenuEvent(blur=blurred))

    # --- Accessors -------------------------------------------------------------

    def get_current_window(self) -> Optional[WindowInfo]:
        return self.last_window_info

    def get_state(self) -> TrackerState:
        return dataclasses.replace(self.state)
