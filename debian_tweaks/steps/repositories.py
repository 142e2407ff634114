"""Third-party APT repositories, backports and the Liquorix kernel."""

import re
from typing import Any, Dict, List, Optional

from debian_tweaks.apt import AptRepository
from debian_tweaks.config import Config
from debian_tweaks.context import StepContext
from debian_tweaks.errors import StepSkipped
from debian_tweaks.models import Step
from debian_tweaks.predicates import all_of, file_contains, package_installed, path_exists

BACKPORTS_COMPONENTS = ["main", "contrib", "non-free", "non-free-firmware"]


def make_repository(config: Config, name: str, data: Dict[str, Any]) -> AptRepository:
    return AptRepository(
        name=name,
        uri=data["uri"],
        suite=data.get("suite", "stable").format(codename=config.CODENAME),
        components=list(data.get("components", ["main"])),
        key_url=data.get("key_url"),
        arch=data.get("arch", config.ARCH),
        keyring_dir=config.KEYRINGS_DIR,
        sources_dir=config.SOURCES_DIR,
    )


def source_files(config: Config) -> List[str]:
    return [str(config.SOURCES_LIST), str(config.SOURCES_DIR / "*.list")]


def repository_configured(config: Config, repo: AptRepository):
    """The repository URI and suite appear in an active deb line of any APT source file."""
    pattern = rf"^deb\s.*{re.escape(repo.uri.rstrip('/'))}/?\s+{re.escape(repo.suite)}(\s|$)"
    checks = [file_contains(source_files(config), pattern)]
    if repo.key_url:
        checks.append(path_exists(repo.keyring))
    return all_of(*checks)


def add_repository_action(repo: AptRepository):
    def action(ctx: StepContext) -> Optional[str]:
        key_file = None
        tmp_dir = ctx.workspace.make_temp_dir(repo.name)
        try:
            if repo.key_url:
                key_file = ctx.downloader.fetch(repo.key_url, tmp_dir / f"{repo.name}.key")
            ctx.apt.add_repository(repo, key_file)
        finally:
            ctx.workspace.remove(tmp_dir)
        ctx.apt.update_index()
        return f"added {repo.list_file}"

    return action


def require_debian(ctx: StepContext) -> None:
    """Backports and Liquorix publish Debian suites only."""
    if ctx.config.DISTRO_ID != "debian":
        raise StepSkipped(f"Debian-only repository, this system is {ctx.config.DISTRO_ID}")


def debian_only(action):
    def wrapped(ctx: StepContext) -> Optional[str]:
        require_debian(ctx)
        return action(ctx)

    return wrapped


def install_packages_action(packages: List[str]):
    def action(ctx: StepContext) -> Optional[str]:
        missing = ctx.apt.missing(packages)
        ctx.apt.install(missing)
        return f"installed {', '.join(missing)}" if missing else None

    return action


# ----------------------------------------------------------------
# Backports
# ----------------------------------------------------------------
def backports_repository(config: Config) -> AptRepository:
    return AptRepository(
        name=config.BACKPORTS_SUITE,
        uri=config.DEBIAN_MIRROR,
        suite=config.BACKPORTS_SUITE,
        components=BACKPORTS_COMPONENTS,
        arch=config.ARCH,
        keyring_dir=config.KEYRINGS_DIR,
        sources_dir=config.SOURCES_DIR,
    )


def backports_step(config: Config) -> Step:
    repo = backports_repository(config)
    return Step(
        name="enable-backports",
        description=f"Enable {config.BACKPORTS_SUITE}",
        action=debian_only(add_repository_action(repo)),
        predicate=file_contains(
            source_files(config), rf"^deb\s.*\s{re.escape(config.BACKPORTS_SUITE)}\s"
        ),
        stage="repositories",
    )


# ----------------------------------------------------------------
# Vendor repositories
# ----------------------------------------------------------------
def third_party_steps(config: Config) -> List[Step]:
    steps = []
    for name, data in config.THIRD_PARTY_REPOS.items():
        repo = make_repository(config, name, data)
        packages = list(data.get("packages", []))
        steps.append(
            Step(
                name=f"add-repo-{name}",
                description=f"Add the {name} APT repository",
                action=add_repository_action(repo),
                predicate=repository_configured(config, repo),
                stage="repositories",
            )
        )
        if packages:
            steps.append(
                Step(
                    name=f"install-{name}",
                    description=f"Install {', '.join(packages)}",
                    action=install_packages_action(packages),
                    predicate=package_installed(*packages),
                    stage="repositories",
                )
            )
    return steps


# ----------------------------------------------------------------
# Liquorix kernel
# ----------------------------------------------------------------
def kernel_steps(config: Config) -> List[Step]:
    repo = make_repository(config, "liquorix", config.LIQUORIX_REPO)
    return [
        Step(
            name="add-repo-liquorix",
            description="Add the Liquorix kernel repository",
            action=debian_only(add_repository_action(repo)),
            predicate=repository_configured(config, repo),
            stage="kernel",
        ),
        Step(
            name="install-liquorix-kernel",
            description="Install the Liquorix kernel",
            action=debian_only(install_packages_action(config.KERNEL_PACKAGES)),
            predicate=package_installed(*config.KERNEL_PACKAGES),
            stage="kernel",
            follow_up="Reboot to start the Liquorix kernel",
        ),
    ]
