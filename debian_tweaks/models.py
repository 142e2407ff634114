"""Steps, results and package specifications."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from debian_tweaks.context import StepContext


class FailurePolicy(str, Enum):
    FATAL = "fatal"
    WARN = "warn-and-continue"


class StepStatus(str, Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PLANNED = "planned"


class PackageSource(str, Enum):
    DEFAULT = "default"
    BACKPORTS = "backports"
    DEB_URL = "deb-url"
    GITHUB_RELEASE = "github-release"


@dataclass(frozen=True)
class PackageSpec:
    """
    A package to install and where it comes from.

    Attributes:
        name: Package name as reported by dpkg once installed
        source: Where the package is fetched from
        url: Direct .deb URL (deb-url only)
        repo: GitHub "owner/name" (github-release only)
        pattern: Regex matched against release asset names (github-release only)
    """

    name: str
    source: PackageSource = PackageSource.DEFAULT
    url: Optional[str] = None
    repo: Optional[str] = None
    pattern: Optional[str] = None

    def __post_init__(self):
        if self.source == PackageSource.DEB_URL and not self.url:
            raise ValueError(f"Package '{self.name}' needs a url for source deb-url")
        if self.source == PackageSource.GITHUB_RELEASE and not (
            self.repo and self.pattern
        ):
            raise ValueError(
                f"Package '{self.name}' needs repo and pattern for source github-release"
            )

    @classmethod
    def from_dict(cls, data: dict) -> "PackageSpec":
        return cls(
            name=data["name"],
            source=PackageSource(data.get("source", PackageSource.DEFAULT.value)),
            url=data.get("url"),
            repo=data.get("repo"),
            pattern=data.get("pattern"),
        )


Predicate = Callable[["StepContext"], bool]
Action = Callable[["StepContext"], Optional[str]]


@dataclass(frozen=True)
class Step:
    """
    One idempotent unit of provisioning work.

    The predicate answers "is the goal state already reached?". The action
    brings the system to the goal state and may return a short message for
    the summary.
    """

    name: str
    description: str
    action: Action
    predicate: Optional[Predicate] = None
    failure_policy: FailurePolicy = FailurePolicy.WARN
    stage: str = "core"
    follow_up: Optional[str] = None

    @property
    def fatal(self) -> bool:
        return self.failure_policy == FailurePolicy.FATAL


@dataclass
class StepResult:
    name: str
    status: StepStatus
    message: str = ""
    elapsed: float = 0.0
    error_type: Optional[str] = None


@dataclass
class RunReport:
    """Ordered outcome record of one provisioning run."""

    results: List[StepResult] = field(default_factory=list)
    follow_ups: List[str] = field(default_factory=list)
    aborted_by: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    def add(self, result: StepResult) -> None:
        self.results.append(result)

    def add_follow_up(self, message: str) -> None:
        if message not in self.follow_ups:
            self.follow_ups.append(message)

    def with_status(self, status: StepStatus) -> List[StepResult]:
        return [r for r in self.results if r.status == status]

    @property
    def failed(self) -> List[StepResult]:
        return self.with_status(StepStatus.FAILED)

    @property
    def names(self) -> List[str]:
        return [r.name for r in self.results]

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.time()
        return end - self.started_at

    def get(self, name: str) -> Optional[StepResult]:
        for result in self.results:
            if result.name == name:
                return result
        return None
