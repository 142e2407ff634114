"""APT/dpkg operations driven through their command-line tools."""

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from debian_tweaks.errors import StepActionError
from debian_tweaks.process import CommandRunner

logger = logging.getLogger(__name__)

APT_ENV: Dict[str, str] = {"DEBIAN_FRONTEND": "noninteractive"}
ARMOR_HEADER = b"-----BEGIN PGP PUBLIC KEY BLOCK-----"


@dataclass(frozen=True)
class AptRepository:
    """
    A third-party APT source with its signing key.

    Attributes:
        name: Base name of the keyring and .list files
        uri: Repository URI
        suite: Distribution suite, e.g. "stable" or "bookworm"
        components: Repository components, e.g. ["main"]
        key_url: URL of the signing key (armored or binary)
        arch: Architecture restriction
    """

    name: str
    uri: str
    suite: str
    components: List[str] = field(default_factory=lambda: ["main"])
    key_url: Optional[str] = None
    arch: str = "amd64"
    keyring_dir: Path = Path("/etc/apt/keyrings")
    sources_dir: Path = Path("/etc/apt/sources.list.d")

    @property
    def list_file(self) -> Path:
        return self.sources_dir / f"{self.name}.list"

    @property
    def keyring(self) -> Path:
        return self.keyring_dir / f"{self.name}.gpg"

    def line(self) -> str:
        options = [f"arch={self.arch}"]
        if self.key_url:
            options.append(f"signed-by={self.keyring}")
        return (
            f"deb [{' '.join(options)}] {self.uri} {self.suite} "
            f"{' '.join(self.components)}"
        )


def status_installed(status: str) -> bool:
    """True for a dpkg status whose state is installed, whatever the selection (install, hold)."""
    return status.strip().endswith(" ok installed")


class AptPackageManager:
    """Query and change installed packages with dpkg-query and apt-get."""

    def __init__(self, commands: CommandRunner):
        self.commands = commands

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------
    def is_installed(self, name: str) -> bool:
        result = self.commands.run(
            ["dpkg-query", "-W", "-f=${Status}", name], check=False
        )
        return result.ok and status_installed(result.stdout)

    def installed_matching(self, pattern: str) -> List[str]:
        """Return installed package names matching a dpkg glob such as 'thunderbird*'."""
        result = self.commands.run(
            ["dpkg-query", "-W", "-f=${Package} ${Status}\n", pattern], check=False
        )
        if not result.ok:
            return []
        names = []
        for line in result.stdout.splitlines():
            package, _, status = line.partition(" ")
            if package and status_installed(status):
                names.append(package)
        return names

    def missing(self, names: Sequence[str]) -> List[str]:
        return [name for name in names if not self.is_installed(name)]

    # ------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------
    def update_index(self) -> None:
        logger.info("Updating package lists...")
        self.commands.run(["apt-get", "update"], privileged=True, env=APT_ENV)

    def install(
        self, names: Sequence[str], target_release: Optional[str] = None
    ) -> None:
        if not names:
            return
        argv = ["apt-get", "install", "-y"]
        if target_release:
            argv += ["-t", target_release]
        logger.info(f"Installing: {', '.join(names)}")
        self.commands.run(argv + list(names), privileged=True, env=APT_ENV)

    def remove(self, names: Sequence[str], purge: bool = False) -> None:
        if not names:
            return
        argv = ["apt-get", "purge" if purge else "remove", "-y"]
        logger.info(f"Removing: {', '.join(names)}")
        self.commands.run(argv + list(names), privileged=True, env=APT_ENV)

    def autoremove(self) -> None:
        self.commands.run(["apt-get", "autoremove", "-y"], privileged=True, env=APT_ENV)

    def autoclean(self) -> None:
        self.commands.run(["apt-get", "autoclean", "-y"], privileged=True, env=APT_ENV)

    def clean(self) -> None:
        self.commands.run(["apt-get", "clean"], privileged=True, env=APT_ENV)

    def fix_broken(self) -> None:
        self.commands.run(
            ["apt-get", "--fix-broken", "install", "-y"], privileged=True, env=APT_ENV
        )

    def install_deb(self, path: Path) -> None:
        """
        Install a local .deb file, resolving its dependencies.

        A first failure triggers one `apt-get --fix-broken install` and one retry.

        Args:
            path: Local .deb file

        Raises:
            StepActionError: If the retry also fails
        """
        argv = ["apt-get", "install", "-y", str(Path(path).resolve())]
        try:
            self.commands.run(argv, privileged=True, env=APT_ENV)
        except StepActionError as e:
            logger.warning(f"Installing {path} failed, fixing broken dependencies: {e}")
            self.fix_broken()
            self.commands.run(argv, privileged=True, env=APT_ENV)

    def add_repository(self, repo: AptRepository, key_file: Optional[Path] = None) -> None:
        """
        Install a repository keyring and its one-line .list file.

        Args:
            repo: The repository to add
            key_file: Downloaded signing key; required when repo.key_url is set

        Raises:
            StepActionError: If writing the keyring or the list file fails
        """
        self.commands.run(
            ["install", "-d", "-m", "0755", str(repo.keyring_dir), str(repo.sources_dir)],
            privileged=True,
        )

        if repo.key_url:
            if key_file is None:
                raise StepActionError(f"Repository {repo.name} needs a downloaded key file")
            with open(key_file, "rb") as f:
                armored = ARMOR_HEADER in f.read()
            if armored:
                self.commands.run(
                    ["gpg", "--batch", "--yes", "--dearmor", "-o", str(repo.keyring), str(key_file)],
                    privileged=True,
                )
                self.commands.run(["chmod", "0644", str(repo.keyring)], privileged=True)
            else:
                self.commands.run(
                    ["install", "-m", "0644", str(key_file), str(repo.keyring)],
                    privileged=True,
                )

        with tempfile.NamedTemporaryFile(
            "w", suffix=".list", dir=key_file.parent if key_file else None, delete=False
        ) as tmp:
            tmp.write(repo.line() + "\n")
            tmp_path = Path(tmp.name)
        try:
            self.commands.run(
                ["install", "-m", "0644", str(tmp_path), str(repo.list_file)],
                privileged=True,
            )
        finally:
            tmp_path.unlink(missing_ok=True)
        logger.info(f"Added APT repository {repo.name}: {repo.line()}")
