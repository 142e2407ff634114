"""Small filesystem helpers used by step actions."""

import datetime
import logging
import shutil
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def timestamped(path: Path) -> Path:
    timestamp = datetime.datetime.now().strftime("%Y%m%d%H%M%S")
    return path.with_name(f"{path.name}.{timestamp}.bak")


def backup_path(path: Union[str, Path]) -> Optional[Path]:
    """
    Move a file or directory aside to a timestamped backup.

    Args:
        path: File or directory to back up

    Returns:
        Path to the backup, or None if nothing existed at path
    """
    path = Path(path).expanduser()
    if not (path.exists() or path.is_symlink()):
        return None
    backup = timestamped(path)
    shutil.move(str(path), str(backup))
    logger.info(f"Backed up {path} to {backup}")
    return backup


def copy_file(source: Union[str, Path], dest: Union[str, Path]) -> Path:
    """Copy a file, creating parent directories and backing up a differing target."""
    source, dest = Path(source).expanduser(), Path(dest).expanduser()
    dest.parent.mkdir(parents=True, exist_ok=True)
    if dest.exists():
        backup_path(dest)
    shutil.copy2(source, dest)
    logger.info(f"Copied {source} to {dest}")
    return dest
