"""
Logging configuration for HiveBox services.

Both processes (hive API, kiosks) log to stdout with the component tag in
every line, optionally mirrored to a file.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    component_name: str,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
):
    """
    Configure the root logger for one HiveBox process and return its logger.

    ``level`` takes a number or a name such as ``"debug"`` (unknown names fall
    back to INFO). Calling it again replaces the previous handlers.
    """
    level = _resolve_level(level)
    if format_string is None:
        format_string = f'[%(asctime)s] [{component_name.upper()}] %(levelname)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    # paramiko logs every channel event at INFO
    logging.getLogger("paramiko").setLevel(max(level, logging.WARNING))

    logger = logging.getLogger(component_name)
    logger.info("%s logging initialized (level=%s)", component_name.upper(), logging.getLevelName(level))
    return logger
