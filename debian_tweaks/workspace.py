"""Temporary directory tracking, guaranteed cleanup and the single-run lock."""

import atexit
import fcntl
import logging
import os
import shutil
import signal
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from debian_tweaks.errors import RunLockedError
from debian_tweaks.ui import print_error

logger = logging.getLogger(__name__)

TEMP_PREFIX = "debian_tweaks_"
HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


class Workspace:
    """
    Owner of every temporary directory a run creates.

    cleanup() runs on normal completion (context manager or an explicit call),
    at interpreter exit (atexit) and on SIGINT/SIGTERM/SIGHUP, after which the
    process exits with 128 + signum.
    """

    def __init__(self, root: Union[str, Path], prefix: str = TEMP_PREFIX):
        self.root = Path(root)
        self.prefix = prefix
        self.temp_dirs: List[Path] = []
        self._handlers_installed = False
        self._previous_handlers = {}

    def make_temp_dir(self, label: str = "") -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        prefix = f"{self.prefix}{label}_" if label else self.prefix
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=self.root))
        self.temp_dirs.append(path)
        logger.debug(f"Created temporary directory {path}")
        return path

    def remove(self, path: Path) -> None:
        """Remove one tracked directory now instead of at exit."""
        shutil.rmtree(path, ignore_errors=True)
        if path in self.temp_dirs:
            self.temp_dirs.remove(path)

    def cleanup(self) -> None:
        """Remove tracked directories and any leftovers with the workspace prefix."""
        leftovers = list(self.root.glob(f"{self.prefix}*")) if self.root.is_dir() else []
        targets = self.temp_dirs + [p for p in leftovers if p not in self.temp_dirs]
        if not targets:
            return
        logger.info("Cleaning up temporary files.")
        for item in targets:
            try:
                if item.is_dir():
                    shutil.rmtree(item)
                elif item.exists():
                    item.unlink()
            except OSError as e:
                logger.warning(f"Could not remove {item}: {e}")
        self.temp_dirs.clear()

    # ------------------------------------------------------------
    # Exit paths
    # ------------------------------------------------------------
    def install_handlers(self) -> None:
        if self._handlers_installed:
            return
        for sig in HANDLED_SIGNALS:
            self._previous_handlers[sig] = signal.getsignal(sig)
            signal.signal(sig, self._handle_signal)
        atexit.register(self.cleanup)
        self._handlers_installed = True

    def uninstall_handlers(self) -> None:
        if not self._handlers_installed:
            return
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
        self._previous_handlers.clear()
        atexit.unregister(self.cleanup)
        self._handlers_installed = False

    def _handle_signal(self, signum, frame) -> None:
        """
        Gracefully handle termination signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        sig_name = signal.Signals(signum).name
        logger.error(f"Run interrupted by {sig_name}. Initiating cleanup.")
        print_error(f"Run interrupted by {sig_name}. Cleaning up...")
        self.cleanup()
        sys.exit(128 + signum)

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


class RunLock:
    """Exclusive, non-blocking flock held for the duration of a run."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fd: Optional[int] = None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.path), os.O_RDWR | os.O_CREAT, 0o600)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            os.close(fd)
            raise RunLockedError(
                f"Another provisioning run holds the lock {self.path}"
            ) from e
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        logger.debug(f"Acquired run lock {self.path}")

    def release(self) -> None:
        if self._fd is None:
            return
        fcntl.flock(self._fd, fcntl.LOCK_UN)
        os.close(self._fd)
        self._fd = None

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
