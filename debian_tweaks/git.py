"""Clone-if-absent wrapper around the git command line."""

import logging
from pathlib import Path
from typing import Optional, Union

from debian_tweaks.process import CommandRunner

logger = logging.getLogger(__name__)


class GitClient:
    def __init__(self, commands: CommandRunner):
        self.commands = commands

    def clone(
        self,
        url: str,
        dest: Union[str, Path],
        depth: Optional[int] = None,
        branch: Optional[str] = None,
    ) -> bool:
        """
        Clone a repository unless the destination already exists.

        Args:
            url: Repository URL
            dest: Target directory
            depth: Shallow clone depth
            branch: Branch or tag to check out

        Returns:
            True if a clone was made, False if the destination was already present
        """
        dest = Path(dest).expanduser()
        if dest.exists():
            logger.info(f"{dest} already exists, skipping clone of {url}")
            return False

        dest.parent.mkdir(parents=True, exist_ok=True)
        argv = ["git", "clone"]
        if depth:
            argv += ["--depth", str(depth)]
        if branch:
            argv += ["--branch", branch]
        argv += [url, str(dest)]
        self.commands.run(argv, timeout=1800)
        logger.info(f"Cloned {url} into {dest}")
        return True
