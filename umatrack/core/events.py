from typing import List, Dict, Any, Callable, Type
from dataclasses import dataclass, field
import time
from umatrack.core.models import WindowInfo, Choice
from umatrack.logger import logger

# --- EVENT BUS ---
class EventBus:
    def __init__(self):
        self._listeners: Dict[Type, List[Callable]] = {}

    def subscribe(self, event_type: Type, callback: Callable):
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        self._listeners[event_type].append(callback)
        logger.debug(f"EventBus: Subscribed to {event_type.__name__}")

    def unsubscribe(self, event_type: Type, callback: Callable):
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def publish(self, event: Any):
        event_type = type(event)
        if event_type in self._listeners:
            for callback in list(self._listeners[event_type]):
                try:
                    callback(event)
                except Exception as e:
                    logger.error(f"EventBus Error processing {event_type.__name__}: {e}")

# Global Accessor
bus = EventBus()

# --- WINDOW TRACKER EVENTS ---

@dataclass
class WindowFoundEvent:
    info: WindowInfo
    timestamp: float = field(default_factory=time.time)

@dataclass
class WindowMovedEvent:
    info: WindowInfo
    timestamp: float = field(default_factory=time.time)

@dataclass
class WindowHiddenEvent:
    timestamp: float = field(default_factory=time.time)

@dataclass
class CareerProfileEvent:
    active: bool
    timestamp: float = field(default_factory=time.time)

@dataclass
class MenuEvent:
    blur: bool
    timestamp: float = field(default_factory=time.time)

# --- ANALYSIS EVENTS ---

@dataclass
class AnalysisStartedEvent:
    timestamp: float = field(default_factory=time.time)

@dataclass
class AnalysisCompleteEvent:
    choices: List[Choice]
    timestamp: float = field(default_factory=time.time)

@dataclass
class AnalysisErrorEvent:
    error: Exception
    timestamp: float = field(default_factory=time.time)

@dataclass
class UmamusumeDetectionStartedEvent:
    timestamp: float = field(default_factory=time.time)

@dataclass
class UmamusumeDetectedEvent:
    name: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class UmamusumeDetectionErrorEvent:
    error: Exception
    timestamp: float = field(default_factory=time.time)
