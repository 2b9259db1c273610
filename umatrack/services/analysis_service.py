import asyncio
import copy
import os
import time
from typing import List, Optional

import cv2
import numpy as np
from fuzzywuzzy import process

from umatrack.config import PROJECT_ROOT, ZONE_EVENT_TITLE, ZONE_EVENT_TYPE, ZONE_UMAMUSUME
from umatrack.core.errors import ExtractionError, PersistenceError, UmaTrackError
from umatrack.core.events import (
    EventBus, bus, AnalysisStartedEvent, AnalysisCompleteEvent, AnalysisErrorEvent,
    UmamusumeDetectionStartedEvent, UmamusumeDetectedEvent, UmamusumeDetectionErrorEvent
)
from umatrack.core.models import Choice, EventType
from umatrack.services.base_service import (
    IAnalysisService, IConfigService, IWindowService, IOcrService, ICatalogService, IRemoteService
)
from umatrack.logger import logger


def parse_event_type(raw_text: str) -> EventType:
    text = raw_text.lower()
    if "trainee" in text:
        return EventType.TRAINEE
    if "support" in text:
        return EventType.SUPPORT
    if "scenario" in text:
        return EventType.SCENARIO
    return EventType.SCENARIO


class AnalysisService(IAnalysisService):
    """
    Resolves what is on screen into data.

    Two flows share one busy flag: character detection (umamusume zone vs the
    roster) and event resolution (title/type zones -> catalog -> remote
    archive). A request made while either flow runs is dropped, not queued.
    Every failure ends up as an *ErrorEvent; nothing is raised to the caller.
    """

    def __init__(self, config_service: IConfigService, window_service: IWindowService,
                 ocr_service: IOcrService, catalog_service: ICatalogService,
                 remote_service: IRemoteService, event_bus: Optional[EventBus] = None):
        self.config = config_service
        self.window = window_service
        self.ocr = ocr_service
        self.catalog = catalog_service
        self.remote = remote_service
        self.bus = event_bus or bus
        self._processing = False
        self.debug_dir = os.path.join(PROJECT_ROOT, "debug_images")

    def initialize(self) -> bool:
        logger.info("AnalysisService: Analysis manager ready")
        return True

    def shutdown(self) -> None:
        pass

    def is_processing(self) -> bool:
        return self._processing

    # --- OCR -----------------------------------------------------------------

    async def extract_text_from_zone(self, zone_name: str) -> str:
        handle = await asyncio.to_thread(self.window.locate_window, self.config.get("window_title", "Umamusume"))
        if handle is None:
            raise ExtractionError(zone_name, "target window not found")

        image = await asyncio.to_thread(self.window.capture_zone, handle, zone_name)
        if image is None:
            raise ExtractionError(zone_name, "capture zone not defined")
        if self.config.get("debug", False):
            self._save_debug_image(zone_name, image)

        text = await asyncio.to_thread(self.ocr.recognize_text, image, self.config.get("ocr_language"))
        text = (text or "").strip()
        if not text:
            raise ExtractionError(zone_name)
        return text

    def _save_debug_image(self, zone_name: str, image: np.ndarray) -> None:
        try:
            os.makedirs(self.debug_dir, exist_ok=True)
            path = os.path.join(self.debug_dir, f"{zone_name}_{int(time.time() * 1000)}.png")
            cv2.imwrite(path, image)
        except (OSError, cv2.error) as e:
            logger.warning(f"AnalysisService: Could not save debug image for {zone_name}: {e}")

    # --- Event resolution ------------------------------------------------------

    async def analyze_event(self) -> Optional[List[Choice]]:
        if self._processing:
            logger.info("AnalysisService: Analysis already in progress, skipping...")
            return None

        self._processing = True
        logger.update_context("flow", "analysis")
        self.bus.publish(AnalysisStartedEvent())
        try:
            choices = await self._resolve_event()
        except Exception as e:
            logger.error(f"AnalysisService: Analysis error: {e}")
            self.bus.publish(AnalysisErrorEvent(error=e))
            return None
        finally:
            self._processing = False
            logger.update_context("flow", "idle")

        self.bus.publish(AnalysisCompleteEvent(choices=choices))
        return choices

    async def _resolve_event(self) -> List[Choice]:
        title = await self.extract_text_from_zone(ZONE_EVENT_TITLE)
        type_text = await self.extract_text_from_zone(ZONE_EVENT_TYPE)

        event_type = parse_event_type(type_text)
        character = self.config.get("umamusume", "")
        logger.info(f"AnalysisService: Event Type: {event_type.value} Uma: {character} Title: {title}",
                    extra={'data': {"title": title, "type": event_type.value, "raw_type": type_text, "uma": character}})

        record = self.catalog.find_event(title, event_type, character)
        if record.has_choices:
            logger.debug(f"AnalysisService: Cache hit for event #{record.index} '{record.title}'")
            return copy.deepcopy(record.choices)

        choices = await asyncio.to_thread(self.remote.fetch_choices, record.archive_id)
        # Runs in a worker thread; the busy flag keeps every other catalog access out
        await asyncio.to_thread(self.catalog.store_choices, record, choices)
        return copy.deepcopy(choices)

    # --- Character detection ---------------------------------------------------

    async def detect_umamusume(self) -> Optional[str]:
        if self._processing:
            logger.info("AnalysisService: Resolution in progress, skipping umamusume detection")
            return None

        self._processing = True
        logger.update_context("flow", "umamusume_detection")
        self.bus.publish(UmamusumeDetectionStartedEvent())
        try:
            name = await self._read_character_name()
            previous = self.config.get("umamusume", "")
            self.config.set("umamusume", name)
            if not await asyncio.to_thread(self.config.save):
                self.config.set("umamusume", previous)
                raise PersistenceError("Failed to persist detected umamusume to config")
        except Exception as e:
            logger.error(f"AnalysisService: Umamusume detection error: {e}")
            self.bus.publish(UmamusumeDetectionErrorEvent(error=e))
            return None
        finally:
            self._processing = False
            logger.update_context("flow", "idle")

        logger.info(f"AnalysisService: Umamusume updated to: {name}")
        logger.update_context("umamusume", name)
        self.bus.publish(UmamusumeDetectedEvent(name=name))
        return name

    async def _read_character_name(self) -> str:
        roster = self.catalog.roster()
        if not roster:
            raise UmaTrackError("Umamusume roster is empty")

        # An unknown name is OCR noise: read again until it matches the roster.
        # Cancelling the task is the only way out besides a match or an OCR failure.
        attempt = 0
        while True:
            attempt += 1
            text = await self.extract_text_from_zone(ZONE_UMAMUSUME)
            if text in roster:
                return text

            closest, score = process.extractOne(text, roster)
            logger.info(f"AnalysisService: Failed to find Umamusume '{text}' "
                        f"(closest '{closest}' {score}%), attempting again. [#{attempt}]")
            await asyncio.sleep(0)
