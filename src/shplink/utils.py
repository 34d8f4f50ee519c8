"""Logging setup and the file-name helpers used by the extractor and exporter."""

import functools
import logging
import re
import sys
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Optional

# GDAL bindings are chatty at INFO
NOISY_LOGGERS = ("fiona", "pyogrio", "pyproj")


def setup_logging(
    verbose: bool,
    target_name: Optional[str] = None,
    mode: Optional[str] = None,
    enable_file_logging: bool = False
) -> None:
    """
    Configure console logging, plus a timestamped file under logs/ when asked.

    Args:
        verbose: Enable debug-level logging if True
        target_name: Upload name for log file naming
        mode: CLI command for log file naming
        enable_file_logging: Create timestamped log files when True
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if enable_file_logging and target_name and mode:
        logs_dir = ensure_directory(Path("logs"))
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = logs_dir / f"shplink_{clean_filename(target_name)}_{mode}_{timestamp}.log"
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        print(f"Logging to: {log_file}")

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def timer(func: Callable) -> Callable:
    """Log how long the wrapped call took."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        logging.info(f"{func.__name__} completed in {time.time() - start_time:.2f} seconds")
        return result
    return wrapper


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def clean_filename(filename: str) -> str:
    """Replace characters that are invalid in file or table names with underscores."""
    cleaned = re.sub(r'[<>:"/\\|?*]', '_', filename)
    cleaned = re.sub(r'_+', '_', cleaned)
    return cleaned.strip('_')


def leaf_name(entry_name: str) -> str:
    """Last path component of an archive entry, accepting either separator."""
    return PurePosixPath(entry_name.replace("\\", "/")).name


def split_extension(name: str) -> tuple[str, str]:
    """
    Split a file name into (base, lowercase extension).

    Only the final suffix is split off: "roads.v2.shp" -> ("roads.v2", ".shp").
    """
    leaf = leaf_name(name)
    dot = leaf.rfind(".")
    if dot <= 0:
        return leaf, ""
    return leaf[:dot], leaf[dot:].lower()


def load_yaml_file(file_path: Path) -> dict[str, Any]:
    """
    Load a YAML projection file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file is not valid YAML
    """
    import yaml

    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    try:
        with open(file_path, encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {file_path}: {e}") from e
