"""Helper functions for aimindmap"""

import datetime
import logging
import os
from typing import Any, Dict, Optional

from flask.logging import default_handler


def load_file(path, default=None, type: str = "r"):
    """Load a file or: raise an exception/return default"""
    try:
        with open(path, type, encoding="utf-8" if type == "r" else None) as fp:
            return fp.read()
    except FileNotFoundError as e:
        if default is None:
            raise e
        return default


def ensure_directories_exist(path: str) -> None:
    """Checks if the directories in the provided path exist and creates them if not"""
    abs_path = os.path.expanduser(os.path.dirname(path))

    if abs_path and not os.path.exists(abs_path):
        os.makedirs(abs_path)


def merge_dicts(base: Optional[Dict[str, Any]], override: Optional[Dict[str, Any]]):
    """Return a new dict with override's keys on top of base (recursive for dicts)"""
    merged = dict(base or {})
    for key, val in (override or {}).items():
        if isinstance(val, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], val)
        else:
            merged[key] = val
    return merged


def get_logger(name: str, config=None) -> logging.Logger:
    """Named logger attached to Flask's default handler"""
    logger = logging.getLogger(name)
    if default_handler not in logger.handlers:
        logger.addHandler(default_handler)
    level = config.get("logging.loglevel", default=logging.INFO) if config else logging.INFO
    logger.setLevel(level)
    return logger


def utc_now() -> datetime.datetime:
    """Current UTC time truncated to milliseconds (the precision stored on disk)"""
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)
