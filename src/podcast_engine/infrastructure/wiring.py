"""Build registry and audio pipeline services from runtime settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from podcast_engine.application.services.audio_pipeline_service import AudioPipelineService
from podcast_engine.application.services.prompt_registry_service import PromptRegistryService
from podcast_engine.config.settings import Settings
from podcast_engine.infrastructure.audio.ffmpeg_tool import FfmpegAudioTool
from podcast_engine.infrastructure.db.prompt_definition_repository import (
    SqlAlchemyPromptDefinitionRepository,
)
from podcast_engine.infrastructure.db.session import create_session_factory


@dataclass(frozen=True)
class EngineServices:
    """Composed podcast engine services sharing one session factory."""

    session_factory: async_sessionmaker[AsyncSession]
    prompt_registry: PromptRegistryService
    audio_pipeline: AudioPipelineService


def build_engine_services(
    *,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> EngineServices:
    """Wire SQLAlchemy and ffmpeg adapters into the engine services."""

    resolved_factory = session_factory or create_session_factory(settings.database_url)
    prompt_registry = PromptRegistryService(
        prompt_definitions=SqlAlchemyPromptDefinitionRepository(resolved_factory),
        cache_ttl_seconds=settings.prompt_cache_ttl_seconds,
    )
    audio_pipeline = AudioPipelineService(
        audio_tool=FfmpegAudioTool(
            ffmpeg_bin=settings.ffmpeg_bin,
            ffprobe_bin=settings.ffprobe_bin,
        ),
        temp_dir=Path(settings.audio_temp_dir) if settings.audio_temp_dir else None,
    )
    return EngineServices(
        session_factory=resolved_factory,
        prompt_registry=prompt_registry,
        audio_pipeline=audio_pipeline,
    )
