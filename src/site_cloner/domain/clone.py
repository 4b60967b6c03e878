"""Domain models for a single clone session."""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import AnyUrl, TypeAdapter, ValidationError

from site_cloner.domain.errors import InvalidRequestError

_URL_ADAPTER = TypeAdapter(AnyUrl)


@dataclass(frozen=True)
class CloneRequest:
    """Target URL and optional instructions for one clone session."""

    target_url: str
    instructions: str = ""

    @classmethod
    def parse(cls, target_url: str | None, instructions: str | None) -> "CloneRequest":
        """Validate raw request values and build a request."""
        if not target_url:
            raise InvalidRequestError("URL is required")
        try:
            _URL_ADAPTER.validate_python(target_url)
        except ValidationError as exc:
            raise InvalidRequestError("Invalid URL format") from exc
        return cls(target_url=target_url, instructions=instructions or "")

    @property
    def has_instructions(self) -> bool:
        return bool(self.instructions.strip())


@dataclass(frozen=True)
class Credentials:
    """Platform login credentials."""

    identity: str
    secret: str = field(repr=False)

    @property
    def is_configured(self) -> bool:
        return bool(self.identity and self.secret)


class Phase(Enum):
    """Ordered positions of the clone workflow."""

    INIT = 0
    NAVIGATED = 1
    SUBMITTED = 2
    AUTH_CHALLENGED = 3
    AUTHENTICATED = 4
    RESUBMITTED = 5
    MONITORING = 6
    PREVIEW_READY = 7
    EDITS_SETTLING = 8
    CONTENT_LOADING = 9
    PREVIEW_CAPTURED = 10
    PUBLISHING = 11
    PUBLISHED = 12
    PUBLISH_FAILED = 13
    COMPLETE = 14
    FAILED = 15

    @property
    def step(self) -> int:
        """Step number reported to the caller for this phase."""
        return _PHASE_STEPS[self]

    def can_advance_to(self, target: "Phase") -> bool:
        """Return whether the workflow may move from this phase to target."""
        if self in {Phase.COMPLETE, Phase.FAILED}:
            return False
        if target is Phase.FAILED:
            return True
        if self is Phase.PUBLISHED and target is Phase.PUBLISH_FAILED:
            return False
        return target.value > self.value


_PHASE_STEPS: dict[Phase, int] = {
    Phase.INIT: 1,
    Phase.NAVIGATED: 3,
    Phase.SUBMITTED: 7,
    Phase.AUTH_CHALLENGED: 9,
    Phase.AUTHENTICATED: 12,
    Phase.RESUBMITTED: 16,
    Phase.MONITORING: 17,
    Phase.PREVIEW_READY: 20,
    Phase.EDITS_SETTLING: 20,
    Phase.CONTENT_LOADING: 21,
    Phase.PREVIEW_CAPTURED: 21,
    Phase.PUBLISHING: 23,
    Phase.PUBLISHED: 27,
    Phase.PUBLISH_FAILED: 27,
    Phase.COMPLETE: 27,
    Phase.FAILED: 0,
}


@dataclass(frozen=True)
class ProgressSnapshot:
    """Most recently observed progress message and percentage."""

    message: str
    percent: int | None
    step: int

    def same_signal(self, other: "ProgressSnapshot | None") -> bool:
        """Return whether other carries the same message and percentage."""
        return (
            other is not None
            and other.message == self.message
            and other.percent == self.percent
        )


@dataclass
class ArtifactRecord:
    """Screenshots and addresses collected during a session."""

    screenshot_paths: list[str] = field(default_factory=list)
    preview_screenshot_path: str | None = None
    edit_url: str | None = None
    published_url: str | None = None
    final_screenshot_path: str | None = None


@dataclass(frozen=True)
class Published:
    """Session finished and the site was published."""

    url: str
    artifact: ArtifactRecord


@dataclass(frozen=True)
class PreviewOnly:
    """Session finished without a published address."""

    artifact: ArtifactRecord
    preview_ready: bool = False


@dataclass(frozen=True)
class Failed:
    """Session aborted by a fatal error."""

    reason: str


Outcome = Published | PreviewOnly | Failed
