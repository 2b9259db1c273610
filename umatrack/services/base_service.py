from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

import numpy as np

from umatrack.core.models import CatalogRecord, Choice, CropArea, WindowHandle, WindowInfo, TrackerState


class IService(ABC):
    """Base interface for all services."""
    @abstractmethod
    def initialize(self) -> bool:
        """Initialize the service. Returns True if successful."""
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """Cleanup resources."""
        pass

class IConfigService(IService):
    """Interface for runtime configuration management."""
    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Updates the in-memory value only. Call save() to persist."""
        pass

    @abstractmethod
    def save(self) -> bool:
        pass

    @abstractmethod
    def add_observer(self, callback: Callable[[], None]) -> None:
        """Register a callback to be notified after a successful save."""
        pass

class IWindowService(IService):
    """Interface for window enumeration, capture and cropping."""
    @abstractmethod
    def locate_window(self, title_filter: str) -> Optional[WindowHandle]:
        pass

    @abstractmethod
    def capture_image(self, handle: WindowHandle) -> np.ndarray:
        """Full window capture as a BGR image."""
        pass

    @abstractmethod
    def crop(self, image: np.ndarray, area: CropArea) -> np.ndarray:
        """Copy of the local-coordinate rectangle. Never mutates the source."""
        pass

    @abstractmethod
    def window_info(self, handle: WindowHandle) -> WindowInfo:
        """Snapshot plus capture zones computed from the handle's current geometry."""
        pass

    def capture_zone(self, handle: WindowHandle, zone_name: str) -> Optional[np.ndarray]:
        """Captures the window and crops one named zone from freshly computed geometry."""
        area = self.window_info(handle).zone(zone_name)
        if area is None:
            return None
        return self.crop(self.capture_image(handle), area)

class IOcrService(IService):
    """Interface for text recognition."""
    @abstractmethod
    def recognize_text(self, image: np.ndarray, language: Optional[str] = None) -> str:
        pass

class ICatalogService(IService):
    """Interface for the persisted roster and event catalog."""
    @abstractmethod
    def roster(self) -> List[str]:
        pass

    @abstractmethod
    def records(self) -> List[CatalogRecord]:
        pass

    @abstractmethod
    def find_event(self, title: str, event_type: str, character: str) -> CatalogRecord:
        """Raises EventNotFoundError when nothing matches."""
        pass

    @abstractmethod
    def store_choices(self, record: CatalogRecord, choices: List[Choice]) -> None:
        """Writes choices into the record and persists the whole catalog."""
        pass

class IRemoteService(IService):
    """Interface for the remote archive lookup."""
    @abstractmethod
    def fetch_choices(self, archive_id: str) -> List[Choice]:
        pass

class ITrackerService(IService):
    """Interface for the window/screen state tracker."""
    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    async def wait_closed(self) -> None:
        """Returns once the polling loop has stopped."""
        pass

    @abstractmethod
    def get_current_window(self) -> Optional[WindowInfo]:
        pass

    @abstractmethod
    def get_state(self) -> TrackerState:
        pass

class IAnalysisService(IService):
    """Interface for the single-flight resolution pipeline."""
    @abstractmethod
    async def analyze_event(self) -> Optional[List[Choice]]:
        pass

    @abstractmethod
    async def detect_umamusume(self) -> Optional[str]:
        pass

    @abstractmethod
    def is_processing(self) -> bool:
        pass
