"""FastAPI remote control: status, commands and current image metadata."""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .. import __version__
from ..slideshow import COMMANDS, Slideshow

logger = logging.getLogger(__name__)


class StatusResponse(BaseModel):
    state: str = Field(..., description="stopped, idle, playing or transitioning")
    running: bool
    image_count: int
    current_index: Optional[int] = None
    current_identifier: Optional[str] = None
    random: bool


class CommandResponse(BaseModel):
    command: str
    status: StatusResponse


class ImageResponse(BaseModel):
    filename: str
    mime_type: str
    size: int
    revision: int
    exif: Dict[str, Any]


def build_status(slideshow: Slideshow) -> StatusResponse:
    return StatusResponse(
        state=slideshow.state.value,
        running=slideshow.playback.running,
        image_count=len(slideshow.images),
        current_index=slideshow.playback.current_index,
        current_identifier=slideshow.current_identifier,
        random=slideshow.config.random,
    )


def create_app(slideshow: Slideshow) -> FastAPI:
    """Build the remote-control app around an already constructed slideshow."""
    app = FastAPI(
        title="nextcloud-slideshow remote",
        description="Remote control for a running slideshow",
        version=__version__,
    )

    @app.get("/status", response_model=StatusResponse)
    async def status() -> StatusResponse:
        return build_status(slideshow)

    @app.post("/commands/{command}", response_model=CommandResponse)
    async def command(command: str) -> CommandResponse:
        if command not in COMMANDS:
            raise HTTPException(status_code=404, detail=f"Unknown command: {command}")
        logger.info(f"Remote command: {command}")
        await slideshow.handle_command(command)
        return CommandResponse(command=command, status=build_status(slideshow))

    @app.get("/current", response_model=ImageResponse)
    async def current() -> ImageResponse:
        entry = slideshow.current_entry
        if entry is None:
            raise HTTPException(status_code=404, detail="No image shown yet")
        return ImageResponse(**entry.to_dict())

    return app
