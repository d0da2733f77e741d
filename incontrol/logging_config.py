import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO


def is_valid_level(level: object) -> bool:
    """True if `level` names a standard logging level (case-insensitive)."""
    if not isinstance(level, str) or not level.strip():
        return False
    return isinstance(logging.getLevelName(level.strip().upper()), int)


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    stream: Optional[TextIO] = None,
) -> Optional[Path]:
    """Configure root logger with console and optional file handlers.

    Args:
        level: Log level (INFO, DEBUG, etc.)
        log_dir: If provided, create a timestamped log file in this directory.
        stream: Console stream, stdout unless given.

    Returns:
        Path of the log file, or None when logging to the console only.
    """
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    # Console handler (always present)
    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if not log_dir:
        return None

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d__%H_%M_%S")
        log_file = log_dir / f"incontrol-log_{timestamp}.log"
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        root.info("Logging to file: %s", log_file)
        return log_file
    except OSError as exc:
        root.error(
            "File logging disabled (could not create log file under %s): %s",
            str(log_dir),
            exc,
        )
        return None
