class UmaTrackError(Exception):
    """Base class for failures raised inside the tracking/resolution core."""


class ExtractionError(UmaTrackError):
    """OCR produced no usable text for a zone (or the zone could not be captured)."""

    def __init__(self, zone_name: str, message: str = "no text extracted"):
        super().__init__(f"{zone_name}: {message}")
        self.zone_name = zone_name


class EventNotFoundError(UmaTrackError):
    """No catalog record matches the OCR'd event title/type."""

    def __init__(self, title: str, event_type: str, character: str = ""):
        super().__init__(f"No catalog event matches title={title!r} type={event_type!r} uma={character!r}")
        self.title = title
        self.event_type = event_type
        self.character = character


class RemoteFetchError(UmaTrackError):
    """Network failure while retrieving an archive page."""


class TableParseError(RemoteFetchError):
    """Archive page structure could not be parsed into choices."""


class PersistenceError(UmaTrackError):
    """Writing the catalog, roster or config to disk failed."""
