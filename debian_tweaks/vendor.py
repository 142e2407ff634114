"""Declared third-party installer scripts, downloaded and run explicitly."""

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from debian_tweaks.errors import StepActionError
from debian_tweaks.net import Downloader
from debian_tweaks.process import CommandResult, CommandRunner
from debian_tweaks.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VendorScript:
    """
    A vendor-supplied installer script.

    Attributes:
        name: Short identifier used in step names and logs
        url: Where the script is downloaded from
        interpreter: Program that runs the script (sh, bash)
        args: Arguments passed after the script path
        env: Extra environment for the script
        privileged: Run the script through sudo
        sha256: Optional pinned digest; a mismatch aborts before execution
    """

    name: str
    url: str
    interpreter: str = "sh"
    args: Tuple[str, ...] = ()
    env: Dict[str, str] = field(default_factory=dict)
    privileged: bool = False
    sha256: Optional[str] = None


VENDOR_SCRIPTS: Dict[str, VendorScript] = {
    "tailscale": VendorScript(
        name="tailscale",
        url="https://tailscale.com/install.sh",
        interpreter="sh",
        privileged=True,
    ),
    "netbird": VendorScript(
        name="netbird",
        url="https://pkgs.netbird.io/install.sh",
        interpreter="sh",
        privileged=True,
    ),
    "eve-ng-integration": VendorScript(
        name="eve-ng-integration",
        url="https://raw.githubusercontent.com/SmartFinn/eve-ng-integration/master/install.sh",
        interpreter="sh",
        privileged=True,
    ),
    "starship": VendorScript(
        name="starship",
        url="https://starship.rs/install.sh",
        interpreter="sh",
        args=("--yes",),
    ),
    "oh-my-zsh": VendorScript(
        name="oh-my-zsh",
        url="https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh",
        interpreter="sh",
        args=("--unattended",),
        env={"RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"},
    ),
}


def sha256sum(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(65536), b""):
            digest.update(block)
    return digest.hexdigest()


class VendorInstaller:
    def __init__(self, downloader: Downloader, commands: CommandRunner, workspace: Workspace):
        self.downloader = downloader
        self.commands = commands
        self.workspace = workspace

    def run(self, script: VendorScript) -> CommandResult:
        """
        Download a vendor installer into a temporary directory and execute it.

        Args:
            script: The declared installer

        Returns:
            Result of the installer process

        Raises:
            NetworkFetchError: If the script cannot be downloaded
            StepActionError: If the digest does not match or the script fails
        """
        tmp_dir = self.workspace.make_temp_dir(script.name)
        try:
            path = self.downloader.fetch(script.url, tmp_dir / f"{script.name}-install.sh")
            digest = sha256sum(path)
            logger.info(f"Running vendor installer {script.name} from {script.url} (sha256 {digest})")
            if script.sha256 and digest != script.sha256.lower():
                raise StepActionError(
                    f"Checksum mismatch for {script.name} installer: expected {script.sha256}, got {digest}"
                )
            return self.commands.run(
                [script.interpreter, str(path), *script.args],
                privileged=script.privileged,
                env=script.env or None,
                timeout=1800,
            )
        finally:
            self.workspace.remove(tmp_dir)
