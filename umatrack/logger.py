import logging
import os
import json
from logging.handlers import RotatingFileHandler
from typing import Dict, Any

# Global Context Store (single event loop, no need for contextvars)
_LOG_CONTEXT: Dict[str, Any] = {
    "window": None,
    "umamusume": "",
    "flow": "idle"
}

def update_log_context(key: str, value: Any):
    """Update a specific field in the global log context."""
    _LOG_CONTEXT[key] = value

def get_log_context() -> Dict[str, Any]:
    return _LOG_CONTEXT.copy()

class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs JSON messages.
    Includes global context and extra fields passed in the log record.
    """
    def format(self, record):
        log_obj = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "context": _LOG_CONTEXT.copy()
        }

        # logger.info(..., extra={'data': {...}})
        if hasattr(record, 'data'):
            log_obj['data'] = record.data

        if record.levelno >= logging.ERROR:
            log_obj["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "func": record.funcName
            }
            if record.exc_info:
                log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)

def setup_logger():
    """
    Sets up the unified logger.
    Logs INFO to console (Human Readable) and DEBUG to 'umatrack.jsonl' (Machine Readable).
    """
    logger = logging.getLogger("UmaTrack")
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    console_formatter = logging.Formatter('%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s')
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    log_dir = os.environ.get("UMATRACK_LOG_DIR") or os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    log_file = os.path.join(log_dir, "umatrack.jsonl")

    try:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=10*1024*1024, backupCount=5, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"File logging disabled ({log_file}): {e}")

    return logger

# Singleton access
logger = setup_logger()
# Expose context updater
logger.update_context = update_log_context
