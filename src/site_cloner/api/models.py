"""Request models for the HTTP API."""

from pydantic import BaseModel


class CloneSubmission(BaseModel):
    """Body of the non-streaming clone endpoint."""

    url: str | None = None
    prompt: str | None = None
