"""Pydantic models for scenes, storyboard runs and API request/response schemas."""

import base64
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class RunStatus(str, Enum):
    """State of a storyboard generation run."""

    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Scene & storyboard models -- transient, created per request
# ---------------------------------------------------------------------------


class SceneDescriptor(BaseModel):
    """A scene heading together with its merged visual description."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1, description="Scene heading, e.g. '1. 外景 - 未来城市 - 白天'")
    description: str = Field(..., min_length=1, description="Merged visual description")


class StoryboardItem(BaseModel):
    """A generated storyboard frame for one scene."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Scene heading")
    description: str = Field(..., description="Merged visual description from the script")
    prompt: str = Field(..., description="Enhanced image prompt sent to the image model")
    image: bytes = Field(..., repr=False, description="Raw image bytes")
    mime_type: str = Field(default="image/png", description="MIME type of the image")

    @property
    def data_url(self) -> str:
        """Return the image as a ``data:`` URL for direct display."""
        encoded = base64.b64encode(self.image).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class StoryboardRun(BaseModel):
    """Explicit state of one generation run.

    Transitions: ``IDLE -> RUNNING(current_scene) -> DONE | FAILED``.
    Items produced before a failure are kept.
    """

    status: RunStatus = Field(default=RunStatus.IDLE, description="Current run state")
    current_scene: int | None = Field(
        None, ge=1, description="1-based index of the scene being generated"
    )
    total_scenes: int = Field(default=0, ge=0, description="Number of scenes to generate")
    items: list[StoryboardItem] = Field(default_factory=list, description="Generated frames")
    progress: str = Field(default="", description="Human-readable progress message")
    error: str | None = Field(None, description="Error message if the run failed")

    @property
    def is_finished(self) -> bool:
        return self.status in {RunStatus.DONE, RunStatus.FAILED}


# Request Models


class ScriptRequest(BaseModel):
    """Request body carrying a screenplay."""

    script: str = Field(..., description="Screenplay text with **N. ...** headings")

    @field_validator("script")
    @classmethod
    def validate_script(cls, v: str) -> str:
        """Reject blank scripts."""
        if not v.strip():
            raise ValueError("Script cannot be empty")
        if "\x00" in v:
            raise ValueError("Script contains invalid null bytes")
        return v


# Response Models


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy", description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")
    version: str = Field(default="0.1.0", description="API version")


class ReadinessResponse(BaseModel):
    """Readiness check response with dependency status."""

    status: str = Field(..., description="Overall readiness status")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")
    services: dict[str, bool] = Field(..., description="Service availability status")


class SampleScriptResponse(BaseModel):
    """The bundled example screenplay."""

    script: str = Field(..., description="Sample screenplay text")


class ParseResponse(BaseModel):
    """Result of parsing a script without generating images."""

    scenes: list[SceneDescriptor] = Field(default_factory=list, description="Parsed scenes")
    total_scenes: int = Field(..., description="Number of scenes with descriptions")


class StoryboardItemResponse(BaseModel):
    """Serialized storyboard frame."""

    label: str = Field(..., description="Scene heading")
    description: str = Field(..., description="Merged visual description")
    prompt: str = Field(..., description="Enhanced image prompt")
    image_url: str = Field(..., description="Image as a base64 data URL")

    @classmethod
    def from_item(cls, item: StoryboardItem) -> "StoryboardItemResponse":
        return cls(
            label=item.label,
            description=item.description,
            prompt=item.prompt,
            image_url=item.data_url,
        )


class StoryboardResponse(BaseModel):
    """Snapshot of a storyboard run."""

    status: RunStatus = Field(..., description="Run state")
    current_scene: int | None = Field(None, description="1-based index of the active scene")
    total_scenes: int = Field(..., description="Number of scenes in the run")
    progress: str = Field(default="", description="Human-readable progress message")
    items: list[StoryboardItemResponse] = Field(
        default_factory=list, description="Frames generated so far"
    )
    error: str | None = Field(None, description="Error message if the run failed")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def completed_scenes(self) -> int:
        return len(self.items)

    @classmethod
    def from_run(cls, run: StoryboardRun) -> "StoryboardResponse":
        return cls(
            status=run.status,
            current_scene=run.current_scene,
            total_scenes=run.total_scenes,
            progress=run.progress,
            items=[StoryboardItemResponse.from_item(item) for item in run.items],
            error=run.error,
        )


# Error Response Models


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(None, description="Field that caused the error")
    message: str = Field(..., description="Error message")
    error_code: str | None = Field(None, description="Error code for programmatic handling")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(default_factory=list, description="Detailed error info")
    request_id: str | None = Field(None, description="Request tracking ID")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")
