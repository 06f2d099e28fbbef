#!/usr/bin/env python3
"""
file_operations.py: Filesystem actions a caller can take on scanned files.
"""

import os
import subprocess
import sys
from pathlib import Path
from typing import List, Union

from ..errors import DeleteError
from ..utils.log_utils import get_logger

logger = get_logger(__name__)


def delete_file(path: Union[str, Path]) -> None:
    """Permanently delete a file.

    Raises:
        DeleteError: The file could not be removed; `cause` holds the OSError.
    """
    path = Path(path)
    try:
        path.unlink()
    except OSError as e:
        raise DeleteError(path.name, e) from e
    logger.info("Deleted %s", path)


def build_reveal_command(path: Path, platform: str = sys.platform) -> List[str]:
    """Build the command that shows `path` in the platform file viewer."""
    if platform.startswith("win"):
        return ["explorer", "/select,", str(path)]
    if platform == "darwin":
        return ["open", "-R", str(path)]
    return ["xdg-open", str(path.parent)]


def reveal_in_file_viewer(path: Union[str, Path]) -> None:
    """Show a file in the system file viewer. Fire and forget."""
    cmd = build_reveal_command(Path(path))
    logger.debug("Revealing %s", path)
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL,
                         start_new_session=(os.name != "nt"))
    except OSError as e:
        logger.warning("Could not open file viewer for %s: %s", path, e)
