"""Progress stream event models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_json(self) -> str:
        """Serialize the event with its wire field names."""
        return self.model_dump_json(by_alias=True)


class StatusEvent(_Event):
    """Human-readable status update."""

    type: Literal["status"] = "status"
    message: str
    step: int


class ProgressEvent(_Event):
    """Progress observed on the remote platform."""

    type: Literal["progress"] = "progress"
    message: str
    progress: int | None = Field(default=None, ge=0, le=100)
    step: int


class PreviewReadyEvent(_Event):
    """Early preview screenshot, sent before publishing starts."""

    type: Literal["preview_ready"] = "preview_ready"
    preview_screenshot: str = Field(alias="previewScreenshot")
    message: str


class CompleteEvent(_Event):
    """Terminal event for a session that reached completion."""

    type: Literal["complete"] = "complete"
    success: Literal[True] = True
    screenshot: str | None
    preview_screenshot: str | None = Field(alias="previewScreenshot")
    edit_url: str | None = Field(alias="editUrl")
    published_url: str | None = Field(alias="publishedUrl")
    message: str


class ErrorEvent(_Event):
    """Terminal event for a session aborted by a fatal error."""

    type: Literal["error"] = "error"
    error: str
    details: str | None = None


ProgressStreamEvent = (
    StatusEvent | ProgressEvent | PreviewReadyEvent | CompleteEvent | ErrorEvent
)

TERMINAL_EVENT_TYPES = frozenset({"complete", "error"})
