"""HTTP downloads and GitHub release lookups using requests."""

import logging
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
)

from debian_tweaks import APP_NAME, VERSION
from debian_tweaks.errors import AmbiguousAsset, NetworkFetchError, NoMatchingAsset
from debian_tweaks.ui import NordColors, console

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192
USER_AGENT = f"{APP_NAME.lower().replace(' ', '-')}/{VERSION}"
GITHUB_API = "https://api.github.com"

Asset = Dict[str, Any]


def _make_session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    return session


class Downloader:
    """
    Stream URLs to local files with a timeout and bounded retries.

    Failed attempts are retried with exponential backoff. An empty body counts
    as a failure, and a partially written file is never left behind.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
        retries: int = 3,
        backoff: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        show_progress: bool = True,
    ):
        self.session = session or _make_session()
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff = backoff
        self.sleep = sleep
        self.show_progress = show_progress

    def fetch(self, url: str, dest: Union[str, Path]) -> Path:
        """
        Download a URL to a local path.

        Args:
            url: URL to download from
            dest: Local path to save the file to

        Returns:
            The destination path

        Raises:
            NetworkFetchError: If every attempt failed or the body was empty
        """
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)

        last_error = ""
        for attempt in range(1, self.retries + 1):
            try:
                size = self._download(url, dest)
                if size == 0:
                    raise NetworkFetchError(f"Empty response body from {url}", url=url)
                logger.info(f"Downloaded {url} -> {dest} ({size} bytes)")
                return dest
            except (requests.RequestException, OSError, NetworkFetchError) as e:
                dest.unlink(missing_ok=True)
                last_error = str(e)
                logger.warning(
                    f"Download attempt {attempt}/{self.retries} for {url} failed: {e}"
                )
                if attempt < self.retries:
                    self.sleep(self.backoff ** (attempt - 1))

        raise NetworkFetchError(
            f"Failed to download {url} after {self.retries} attempts: {last_error}",
            url=url,
        )

    def _download(self, url: str, dest: Path) -> int:
        written = 0
        with self.session.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            total = int(response.headers.get("content-length", 0) or 0)
            with open(dest, "wb") as f:
                if self.show_progress:
                    with Progress(
                        TextColumn(f"[{NordColors.FROST_2}]{dest.name}"),
                        BarColumn(),
                        DownloadColumn(),
                        TimeRemainingColumn(),
                        console=console,
                        transient=True,
                    ) as progress:
                        task = progress.add_task("Downloading", total=total or None)
                        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                            if chunk:
                                f.write(chunk)
                                written += len(chunk)
                                progress.update(task, advance=len(chunk))
                else:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)
        return written


# ----------------------------------------------------------------
# GitHub Releases
# ----------------------------------------------------------------
def select_first(assets: List[Asset]) -> Asset:
    return assets[0]


def select_newest(assets: List[Asset]) -> Asset:
    # ISO-8601 timestamps sort lexically
    return max(assets, key=lambda a: a.get("updated_at") or "")


SELECTORS: Dict[str, Callable[[List[Asset]], Asset]] = {
    "first": select_first,
    "newest": select_newest,
}


class GitHubReleases:
    """Resolve download URLs from the latest release of a GitHub repository."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
        api_url: str = GITHUB_API,
    ):
        self.session = session or _make_session()
        self.token = token
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def latest_release_assets(self, repo: str) -> List[Asset]:
        url = f"{self.api_url}/repos/{repo}/releases/latest"
        logger.debug(f"Querying {url}")
        try:
            response = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkFetchError(f"GitHub API request for {repo} failed: {e}", url=url) from e

        if response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
            raise NetworkFetchError(
                f"GitHub API rate limit exceeded for {repo}; set GITHUB_TOKEN", url=url
            )
        try:
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise NetworkFetchError(f"GitHub API request for {repo} failed: {e}", url=url) from e

        return list(data.get("assets") or [])

    def latest_release_asset(
        self, repo: str, pattern: str, selector: Optional[str] = None
    ) -> str:
        """
        Return the download URL of the single latest-release asset matching a pattern.

        Args:
            repo: GitHub "owner/name"
            pattern: Regex searched in asset names
            selector: How to choose among several matches ("first" or "newest");
                None means several matches are an error

        Returns:
            The asset's browser_download_url

        Raises:
            NoMatchingAsset: If no asset matches
            AmbiguousAsset: If several assets match and no selector is given
            NetworkFetchError: If the API request fails
        """
        if selector is not None and selector not in SELECTORS:
            raise ValueError(
                f"Unknown asset selector {selector!r}; expected one of {', '.join(SELECTORS)}"
            )
        regex = re.compile(pattern)
        matches = [a for a in self.latest_release_assets(repo) if regex.search(a.get("name", ""))]

        if not matches:
            raise NoMatchingAsset(
                f"No asset in the latest {repo} release matches {pattern}",
                repo=repo,
                pattern=pattern,
            )
        if len(matches) > 1:
            if selector is None:
                names = [a.get("name", "") for a in matches]
                raise AmbiguousAsset(
                    f"{len(matches)} assets in the latest {repo} release match {pattern}: "
                    f"{', '.join(names)}; choose one with --asset-selector",
                    repo=repo,
                    pattern=pattern,
                    candidates=names,
                )
            chosen = SELECTORS[selector](matches)
        else:
            chosen = matches[0]

        logger.info(f"Resolved {repo} asset {chosen.get('name')}")
        return chosen["browser_download_url"]
