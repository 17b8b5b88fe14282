from __future__ import annotations

import atexit
import logging

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from speaker_clips.config import Settings, load_settings
from speaker_clips.mcp_tools import ToolRegistry
from speaker_clips.orchestrator import JobOrchestrator
from speaker_clips.playback import PlaybackController, TemporaryFileHandles
from speaker_clips.services.assemblyai import AssemblyAIClient
from speaker_clips.session import TranscriptionSession

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


class AppRuntime:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.client = AssemblyAIClient(
            base_url=settings.assemblyai_base_url,
            timeout_seconds=settings.http_timeout_seconds,
        )
        self.orchestrator = JobOrchestrator(
            self.client,
            poll_interval_seconds=settings.poll_interval_seconds,
            max_attempts=settings.max_poll_attempts,
        )

        clips_dir = settings.data_dir / "_clips"
        clips_dir.mkdir(parents=True, exist_ok=True)
        # No media element on the server side, so play requests are no-ops.
        self.playback = PlaybackController(None, TemporaryFileHandles(clips_dir))
        self.session = TranscriptionSession(
            self.orchestrator,
            self.playback,
            credentials=settings.assemblyai_api_key,
        )

    def close(self) -> None:
        self.session.close()


def create_app(runtime: AppRuntime) -> FastMCP:
    mcp = FastMCP(name="speaker-clips")

    tools = ToolRegistry(runtime.session)
    tools.register(mcp)

    @mcp.custom_route(runtime.settings.health_path, methods=["GET"])
    async def health(_: Request) -> JSONResponse:
        job = runtime.session.job
        return JSONResponse(
            {
                "ok": True,
                "has_api_key": bool(runtime.settings.assemblyai_api_key),
                "job_status": job.status.value if job is not None else None,
                "mcp_path": runtime.settings.mcp_path,
            }
        )

    return mcp


def cli() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    if not settings.assemblyai_api_key:
        logger.warning("ASSEMBLYAI_API_KEY is not set; transcription requests will fail")

    runtime = AppRuntime(settings)
    atexit.register(runtime.close)

    app = create_app(runtime)
    logger.info("Starting MCP server on %s:%s%s", settings.host, settings.port, settings.mcp_path)
    app.run(
        transport="http",
        host=settings.host,
        port=settings.port,
        path=settings.mcp_path,
    )


if __name__ == "__main__":
    cli()
