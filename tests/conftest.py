"""
Pytest configuration and fixtures for Debian Tweaks tests.

Nothing here touches the real system: commands go through FakeCommandRunner,
which simulates a small dpkg database, and HTTP goes through FakeSession.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import pytest
import requests

from debian_tweaks.config import Config
from debian_tweaks.context import StepContext, build_context
from debian_tweaks.logging_setup import LOGGER_NAME
from debian_tweaks.net import Downloader, GitHubReleases
from debian_tweaks.process import CommandRunner
from debian_tweaks.workspace import Workspace

Response = Union[Tuple[int, str, str], Callable[[List[str]], Tuple[int, str, str]], BaseException]


# ============================================================================
# Fake process runner
# ============================================================================


class FakeCommandRunner(CommandRunner):
    """
    CommandRunner whose processes are scripted.

    dpkg-query and apt-get install/remove/purge are simulated against the
    `installed` set; anything else returns success unless a response was
    registered with `on()`.
    """

    def __init__(self, installed: Sequence[str] = ()):
        super().__init__(use_sudo=False)
        self.installed = set(installed)
        self.calls: List[List[str]] = []
        self.call_kwargs: List[Dict] = []
        self._responses: List[Tuple[Tuple[str, ...], Response]] = []

    def on(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "",
           response: Optional[Response] = None) -> None:
        self._responses.insert(0, (prefix, response if response is not None else (returncode, stdout, stderr)))

    def ran(self, *prefix: str) -> bool:
        return any(tuple(c[: len(prefix)]) == prefix for c in self.calls)

    def calls_to(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]

    def _spawn(self, argv, *, env, cwd, input_text, timeout, capture):
        self.calls.append(list(argv))
        self.call_kwargs.append({"env": env, "cwd": cwd, "input_text": input_text, "timeout": timeout})
        for prefix, response in self._responses:
            if tuple(argv[: len(prefix)]) == prefix:
                if isinstance(response, BaseException):
                    raise response
                if callable(response):
                    return response(list(argv))
                return response
        return self._simulate(list(argv))

    def _simulate(self, argv: List[str]) -> Tuple[int, str, str]:
        if argv[:2] == ["dpkg-query", "-W"]:
            fmt, name = argv[2], argv[3]
            if "${Package}" in fmt:
                prefix = name.rstrip("*")
                lines = [f"{p} install ok installed" for p in sorted(self.installed) if p.startswith(prefix)]
                return (0, "\n".join(lines), "") if lines else (1, "", f"no packages found matching {name}")
            if name in self.installed:
                return 0, "install ok installed", ""
            return 1, "", f"dpkg-query: no packages found matching {name}"
        if argv[:1] == ["apt-get"]:
            args = argv[2:]
            packages = [
                a for i, a in enumerate(args)
                if not a.startswith("-") and (i == 0 or args[i - 1] != "-t")
            ]
            if argv[1] == "install":
                self.installed.update(Path(p).stem if p.endswith(".deb") else p for p in packages)
            elif argv[1] in ("remove", "purge"):
                self.installed.difference_update(packages)
        return 0, "", ""


# ============================================================================
# Fake HTTP session
# ============================================================================


class FakeResponse:
    def __init__(self, body: bytes = b"", status_code: int = 200, json_data=None,
                 headers: Optional[Dict[str, str]] = None):
        self.body = body
        self.status_code = status_code
        self.json_data = json_data
        self.headers = headers or {"content-length": str(len(body))}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size: int = 8192):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i : i + chunk_size]

    def json(self):
        if self.json_data is None:
            raise ValueError("No JSON body")
        return self.json_data

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """Routes GET requests by URL; a list of responses is consumed in order."""

    def __init__(self):
        self.routes: Dict[str, list] = {}
        self.calls: List[Tuple[str, Dict]] = []
        self.headers: Dict[str, str] = {}

    def add(self, url: str, *responses) -> None:
        self.routes.setdefault(url, []).extend(responses)

    def get(self, url: str, **kwargs):
        self.calls.append((url, kwargs))
        queue = self.routes.get(url)
        if not queue:
            raise requests.ConnectionError(f"No route for {url}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, BaseException):
            raise response
        return response


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logger between tests so caplog sees package records."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path: Path, home: Path) -> Config:
    etc = tmp_path / "etc"
    return Config(
        USERNAME="tester",
        HOME=home,
        OS_RELEASE=etc / "os-release",
        KEYRINGS_DIR=etc / "apt" / "keyrings",
        SOURCES_DIR=etc / "apt" / "sources.list.d",
        SOURCES_LIST=etc / "apt" / "sources.list",
        LOCALE_GEN=etc / "locale.gen",
        XDG_CONFIG_HOME=home / ".config",
        ZSH_CUSTOM=home / ".oh-my-zsh" / "custom",
        CODENAME="bookworm",
        GITHUB_TOKEN=None,
    )


@pytest.fixture
def commands() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def downloader(session: FakeSession) -> Downloader:
    return Downloader(session=session, timeout=5, retries=2, backoff=0, sleep=lambda s: None, show_progress=False)


@pytest.fixture
def workspace(config: Config) -> Workspace:
    ws = Workspace(config.DOWNLOADS_DIR)
    yield ws
    ws.cleanup()


@pytest.fixture
def ctx(config, commands, session, downloader, workspace) -> StepContext:
    return build_context(
        config,
        logging.getLogger(f"{LOGGER_NAME}.tests"),
        workspace,
        commands=commands,
        downloader=downloader,
        releases=GitHubReleases(session=session, timeout=5),
    )


@pytest.fixture
def fake_response():
    """The FakeResponse class, for building session routes."""
    return FakeResponse
