import os

CONFIG_FILE = "config.json"

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.path.join(PROJECT_ROOT, "data")

# Tracker timing (seconds)
POLL_INTERVAL = 1 / 30
CAREER_PROFILE_CHECK_INTERVAL = 0.1

# Similarity heuristic
SIMILARITY_THRESHOLD = 0.55
PIXEL_TOLERANCE = 30
COMPARISON_SIZE = 200

# Zone names the core depends on
ZONE_CAREER_PROFILE_ICON = "career_profile_icon"
ZONE_EVENT_TITLE = "event_title"
ZONE_EVENT_TYPE = "event_type"
ZONE_UMAMUSUME = "umamusume"

ALL_UMAMUSUME = "All Umamusume"

DEFAULT_CONFIG = {
    "hotkey": "ctrl + shift + e",
    "umamusume": "",
    "debug": False,
    "padding": {"top": 32, "bottom": 0},
    "window_title": "Umamusume",
    "tesseract_cmd": None,
    "ocr_language": "eng",
    "archive_base_url": "https://game8.co/games/Umamusume-Pretty-Derby/archives",
    "request_timeout": None,
    "zones_path": os.path.join(DATA_DIR, "zones.json"),
    "catalog_path": os.path.join(DATA_DIR, "events.json"),
    "roster_path": os.path.join(DATA_DIR, "names.json"),
    "reference_images_dir": os.path.join(PROJECT_ROOT, "images", "umamusume", "ui"),
}
