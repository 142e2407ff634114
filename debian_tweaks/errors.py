"""Exception hierarchy for provisioning failures."""

from typing import List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from debian_tweaks.models import RunReport


class ProvisioningError(Exception):
    """Base exception for Debian Tweaks errors."""

    pass


class PrerequisiteError(ProvisioningError):
    """Raised when a required command or privilege is missing."""

    pass


class RunLockedError(PrerequisiteError):
    """Raised when another provisioning run holds the lock file."""

    pass


class DuplicateStepError(ProvisioningError):
    """Raised when a step name is registered twice."""

    pass


class StepSkipped(ProvisioningError):
    """Raised by an action whose target does not apply to this machine."""

    pass


class StepActionError(ProvisioningError):
    """Raised when an external command invoked by a step fails."""

    def __init__(
        self,
        message: str,
        *,
        argv: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.argv: List[str] = list(argv or [])
        self.returncode = returncode
        self.stderr = stderr

    @property
    def diagnostic(self) -> str:
        return str(self)


class CommandNotFound(StepActionError):
    """Raised when the executable of a command is not on PATH."""

    pass


class NetworkFetchError(StepActionError):
    """Raised when a download fails or returns empty content."""

    def __init__(self, message: str, *, url: str = ""):
        super().__init__(message)
        self.url = url

    @property
    def diagnostic(self) -> str:
        return f"{self} (network error; re-run to retry)"


class ReleaseResolutionError(StepActionError):
    """Raised when a release asset cannot be resolved to exactly one URL."""

    def __init__(self, message: str, *, repo: str = "", pattern: str = ""):
        super().__init__(message)
        self.repo = repo
        self.pattern = pattern


class NoMatchingAsset(ReleaseResolutionError):
    """Raised when no asset of the latest release matches the pattern."""

    pass


class AmbiguousAsset(ReleaseResolutionError):
    """Raised when several assets match and no selector was configured."""

    def __init__(
        self, message: str, *, repo: str = "", pattern: str = "", candidates=()
    ):
        super().__init__(message, repo=repo, pattern=pattern)
        self.candidates: List[str] = list(candidates)


class FatalStepError(ProvisioningError):
    """Raised by the runner when a fatal step fails; carries the partial report."""

    def __init__(self, step_name: str, message: str, report: "RunReport"):
        super().__init__(f"Fatal step '{step_name}' failed: {message}")
        self.step_name = step_name
        self.message = message
        self.report = report
