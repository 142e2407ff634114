"""The collaborators handed to every predicate and action."""

import logging
from dataclasses import dataclass
from typing import Optional

from debian_tweaks.apt import AptPackageManager
from debian_tweaks.config import Config
from debian_tweaks.git import GitClient
from debian_tweaks.net import Downloader, GitHubReleases
from debian_tweaks.process import CommandRunner
from debian_tweaks.vendor import VendorInstaller
from debian_tweaks.workspace import Workspace


@dataclass
class StepContext:
    config: Config
    commands: CommandRunner
    apt: AptPackageManager
    git: GitClient
    downloader: Downloader
    releases: GitHubReleases
    vendors: VendorInstaller
    workspace: Workspace
    logger: logging.Logger


def build_context(
    config: Config,
    logger: logging.Logger,
    workspace: Optional[Workspace] = None,
    commands: Optional[CommandRunner] = None,
    downloader: Optional[Downloader] = None,
    releases: Optional[GitHubReleases] = None,
) -> StepContext:
    """
    Wire the default collaborators for a run from the configuration.

    Args:
        config: Run configuration
        logger: Package logger
        workspace: Temporary directory tracker; one under DOWNLOADS_DIR by default
        commands: Process runner; tests pass a fake
        downloader: HTTP downloader
        releases: GitHub release resolver

    Returns:
        A ready StepContext
    """
    commands = commands or CommandRunner()
    workspace = workspace or Workspace(config.DOWNLOADS_DIR)
    downloader = downloader or Downloader(
        timeout=config.DOWNLOAD_TIMEOUT,
        retries=config.DOWNLOAD_RETRIES,
        backoff=config.DOWNLOAD_BACKOFF,
    )
    releases = releases or GitHubReleases(
        session=downloader.session,
        token=config.GITHUB_TOKEN,
        timeout=config.DOWNLOAD_TIMEOUT,
    )
    return StepContext(
        config=config,
        commands=commands,
        apt=AptPackageManager(commands),
        git=GitClient(commands),
        downloader=downloader,
        releases=releases,
        vendors=VendorInstaller(downloader, commands, workspace),
        workspace=workspace,
        logger=logger,
    )
