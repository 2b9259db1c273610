import json
import os
from typing import List, Optional

from umatrack.config import ALL_UMAMUSUME
from umatrack.core.errors import EventNotFoundError, PersistenceError
from umatrack.core.models import CatalogRecord, Choice, EventType
from umatrack.services.base_service import ICatalogService, IConfigService
from umatrack.logger import logger


class CatalogService(ICatalogService):
    """
    Flat-file record store for the character roster (names.json) and the event
    catalog (events.json). Both are read and written wholesale.

    Not safe for concurrent writers: callers serialize find -> fetch -> store
    (the analysis pipeline's single-flight guard does this).
    """

    def __init__(self, config_service: IConfigService,
                 catalog_path: Optional[str] = None, roster_path: Optional[str] = None):
        self.config = config_service
        self.catalog_path = catalog_path
        self.roster_path = roster_path
        self._records: List[CatalogRecord] = []
        self._roster: List[str] = []

    def initialize(self) -> bool:
        self.catalog_path = self.catalog_path or self.config.get("catalog_path")
        self.roster_path = self.roster_path or self.config.get("roster_path")
        try:
            self.load()
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"CatalogService: Failed to load data files: {e}")
            return False
        logger.info(f"CatalogService: {len(self._records)} events, {len(self._roster)} umamusume loaded")
        return True

    def shutdown(self) -> None:
        pass

    def load(self) -> None:
        self._roster = [str(name) for name in self._read_json(self.roster_path)]
        self._records = [CatalogRecord.from_dict(item) for item in self._read_json(self.catalog_path)]

    @staticmethod
    def _read_json(path: Optional[str]) -> list:
        if not path or not os.path.exists(path):
            logger.warning(f"CatalogService: Data file missing: {path}")
            return []
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self) -> None:
        try:
            with open(self.catalog_path, "w", encoding="utf-8") as f:
                json.dump([r.to_dict() for r in self._records], f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as e:
            raise PersistenceError(f"Failed to write catalog {self.catalog_path}: {e}") from e

    # --- Queries -------------------------------------------------------------

    def roster(self) -> List[str]:
        return list(self._roster)

    def records(self) -> List[CatalogRecord]:
        return list(self._records)

    def candidates(self, event_type: str, character: str) -> List[CatalogRecord]:
        wanted = getattr(event_type, "value", event_type).lower()
        if wanted != EventType.TRAINEE.value.lower():
            return [r for r in self._records if r.type.lower() == wanted]

        owners = {(character or "").lower(), ALL_UMAMUSUME.lower()}
        return [r for r in self._records if r.owning_character.lower() in owners]

    def find_event(self, title: str, event_type: str, character: str) -> CatalogRecord:
        ocr_title = title.lower()
        for record in self.candidates(event_type, character):
            if record.title and ocr_title.startswith(record.title.lower()):
                return record
        raise EventNotFoundError(title, getattr(event_type, "value", event_type), character)

    # --- Mutation ------------------------------------------------------------

    def store_choices(self, record: CatalogRecord, choices: List[Choice]) -> None:
        if record.has_choices:
            logger.warning(f"CatalogService: Event #{record.index} already has choices, keeping cached data")
            return
        record.choices = choices
        try:
            self.save()
        except PersistenceError:
            # Keep memory in line with disk so the next lookup fetches again
            record.choices = None
            raise
        logger.info(f"CatalogService: Cached {len(choices)} choices for event #{record.index} '{record.title}'")
