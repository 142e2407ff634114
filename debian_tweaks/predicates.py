"""
Idempotency predicates.

Each factory returns a callable taking the StepContext and answering "is the
goal state already reached?". Predicates only read: they never change the
system and never ask for privilege.
"""

import filecmp
import glob
import grp
import logging
import pwd
import re
import shutil
from pathlib import Path
from typing import Iterable, List, Union, TYPE_CHECKING

from debian_tweaks.models import Predicate

if TYPE_CHECKING:
    from debian_tweaks.context import StepContext

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def package_installed(*names: str) -> Predicate:
    """True when every named package is installed, whatever its version."""

    def check(ctx: "StepContext") -> bool:
        return all(ctx.apt.is_installed(name) for name in names)

    check.__name__ = f"package_installed({', '.join(names)})"
    return check


def path_exists(path: PathLike) -> Predicate:
    def check(ctx: "StepContext") -> bool:
        return Path(path).expanduser().exists()

    check.__name__ = f"path_exists({path})"
    return check


def _expand(paths: Iterable[PathLike]) -> List[Path]:
    found: List[Path] = []
    for p in paths:
        text = str(Path(p).expanduser())
        if any(c in text for c in "*?["):
            found.extend(Path(m) for m in sorted(glob.glob(text)))
        else:
            found.append(Path(text))
    return found


def file_contains(paths: Union[PathLike, Iterable[PathLike]], pattern: str) -> Predicate:
    """
    True when a non-comment line of any of the files matches the regex.

    Args:
        paths: A file, a glob, or a list of files/globs
        pattern: Regular expression searched in each line

    Returns:
        Predicate callable
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]
    paths = list(paths)
    regex = re.compile(pattern)

    def check(ctx: "StepContext") -> bool:
        for path in _expand(paths):
            if not path.is_file():
                continue
            with open(path, encoding="utf-8", errors="replace") as f:
                for line in f:
                    stripped = line.strip()
                    if not stripped or stripped.startswith("#"):
                        continue
                    if regex.search(stripped):
                        return True
        return False

    check.__name__ = f"file_contains({pattern})"
    return check


def command_available(name: str) -> Predicate:
    def check(ctx: "StepContext") -> bool:
        return shutil.which(name) is not None

    check.__name__ = f"command_available({name})"
    return check


def user_shell_is(shell: str) -> Predicate:
    """True when the login shell of the configured user ends with the shell name."""

    def check(ctx: "StepContext") -> bool:
        entry = pwd.getpwnam(ctx.config.USERNAME)
        return Path(entry.pw_shell).name == shell

    check.__name__ = f"user_shell_is({shell})"
    return check


def user_in_groups(*groups: str) -> Predicate:
    def check(ctx: "StepContext") -> bool:
        user = ctx.config.USERNAME
        primary = pwd.getpwnam(user).pw_gid
        for name in groups:
            group = grp.getgrnam(name)
            if user not in group.gr_mem and group.gr_gid != primary:
                return False
        return True

    check.__name__ = f"user_in_groups({', '.join(groups)})"
    return check


def files_identical(source: PathLike, dest: PathLike) -> Predicate:
    def check(ctx: "StepContext") -> bool:
        src, dst = Path(source).expanduser(), Path(dest).expanduser()
        if not (src.is_file() and dst.is_file()):
            return False
        return filecmp.cmp(src, dst, shallow=False)

    check.__name__ = f"files_identical({source}, {dest})"
    return check


def all_of(*predicates: Predicate) -> Predicate:
    def check(ctx: "StepContext") -> bool:
        return all(p(ctx) for p in predicates)

    check.__name__ = f"all_of({', '.join(p.__name__ for p in predicates)})"
    return check


def evaluate(predicate: Predicate, ctx: "StepContext") -> bool:
    """Evaluate a predicate, treating any exception as 'not satisfied'."""
    try:
        return bool(predicate(ctx))
    except Exception as e:
        name = getattr(predicate, "__name__", repr(predicate))
        logger.debug(f"Predicate {name} raised {type(e).__name__}: {e}; treating as not satisfied")
        return False
