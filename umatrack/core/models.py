from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class EventType(str, Enum):
    TRAINEE = "Trainee"
    SUPPORT = "Support"
    SCENARIO = "Scenario"


@dataclass
class WindowSnapshot:
    x: int
    y: int
    width: int
    height: int
    title: str
    app_name: str
    visible: bool = True

    def differs_from(self, other: "WindowSnapshot") -> bool:
        return (
            self.x != other.x or
            self.y != other.y or
            self.width != other.width or
            self.height != other.height or
            self.visible != other.visible
        )


@dataclass
class WindowHandle:
    """Native window reference plus the geometry read at enumeration time."""
    hwnd: int
    title: str
    app_name: str
    x: int
    y: int
    width: int
    height: int

    def snapshot(self) -> WindowSnapshot:
        return WindowSnapshot(
            x=self.x, y=self.y, width=self.width, height=self.height,
            title=self.title, app_name=self.app_name, visible=True
        )


@dataclass
class CaptureZone:
    name: str
    left: float
    width: float
    top: float
    bottom: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaptureZone":
        return cls(
            name=data["name"],
            left=float(data["left"]),
            width=float(data["width"]),
            top=float(data["top"]),
            bottom=float(data["bottom"]),
        )


@dataclass
class CropArea:
    name: str
    x: int
    y: int
    width: int
    height: int
    absolute_x: int = 0
    absolute_y: int = 0


@dataclass
class WindowInfo:
    window: WindowSnapshot
    captures: List[CropArea] = field(default_factory=list)

    def zone(self, name: str) -> Optional[CropArea]:
        for capture in self.captures:
            if capture.name == name:
                return capture
        return None


@dataclass
class TrackerState:
    career_profile_active: bool = False
    menu_blurred: bool = False
    last_check_at: float = 0.0


@dataclass
class Choice:
    number: int
    label: Optional[str] = None
    success_outcomes: List[str] = field(default_factory=list)
    failure_outcomes: List[str] = field(default_factory=list)

    # Persisted with the data file keys: {choice, text, success, failure}
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Choice":
        return cls(
            number=int(data["choice"]),
            label=data.get("text") or None,
            success_outcomes=list(data.get("success") or []),
            failure_outcomes=list(data.get("failure") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "choice": self.number,
            "text": self.label or "",
            "success": list(self.success_outcomes),
            "failure": list(self.failure_outcomes),
        }


@dataclass
class CatalogRecord:
    index: int
    archive_id: str
    title: str
    type: str
    owning_character: str
    alias: Optional[str] = None
    choices: Optional[List[Choice]] = None

    @property
    def has_choices(self) -> bool:
        return bool(self.choices)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogRecord":
        raw_choices = data.get("choices")
        return cls(
            index=int(data["index"]),
            archive_id=str(data["archive_id"]),
            title=data["title"],
            type=data["type"],
            owning_character=data.get("uma", ""),
            alias=data.get("alias"),
            choices=[Choice.from_dict(c) for c in raw_choices] if raw_choices is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "index": self.index,
            "archive_id": self.archive_id,
            "title": self.title,
            "type": self.type,
            "uma": self.owning_character,
        }
        if self.alias is not None:
            data["alias"] = self.alias
        if self.choices is not None:
            data["choices"] = [c.to_dict() for c in self.choices]
        return data
