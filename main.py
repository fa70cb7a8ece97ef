"""
LiveKit voice agent entry point.

Configures the STT -> LLM -> TTS pipeline and launches the ordering agent
for the configured project and worker. The offline order queue is drained
in the background for the lifetime of the session.

Usage:
    Live voice:   python main.py dev
    Console mode: python main.py console
"""

import asyncio
import logging
import sys

from src.config import settings

logger = logging.getLogger(__name__)


def _build_session():
    """Build a new AgentSession with the configured STT/LLM/TTS pipeline."""
    from livekit.agents import AgentSession
    from livekit.plugins import deepgram, openai, cartesia, silero

    from src.schemas.session_schema import SessionData

    return AgentSession[SessionData](
        stt=deepgram.STT(
            model=settings.model.stt_model,
            language=settings.model.stt_language,
        ),
        llm=openai.LLM(
            model=settings.model.llm_model,
            temperature=settings.model.llm_temperature,
        ),
        tts=cartesia.TTS(
            model=settings.model.tts_model,
            voice=settings.model.tts_voice_id,
        ),
        vad=silero.VAD.load(),
        userdata=SessionData(
            project_id=settings.ordering.default_project_id,
            user_id=settings.ordering.default_user_id,
        ),
    )


async def entrypoint(ctx) -> None:
    """LiveKit agent entrypoint. Must be module-level for Windows pickling."""
    from src.agents.ordering_agent import OrderingAgent
    from src.conversation.factory import build_orchestrator
    from src.sync.offline_queue import SyncEvent

    session = _build_session()
    orchestrator = build_orchestrator(
        project_id=session.userdata.project_id,
        user_id=session.userdata.user_id,
    )

    stop_event = asyncio.Event()
    drain_task = asyncio.create_task(orchestrator.queue.run_periodic(stop_event))

    async def _shutdown() -> None:
        stop_event.set()
        await drain_task
        logger.info("Offline queue stopped with %d pending orders", orchestrator.queue.pending_count)

    ctx.add_shutdown_callback(_shutdown)

    await session.start(room=ctx.room, agent=OrderingAgent(orchestrator))
    logger.info("Voice agent session started in room: %s", ctx.room.name)
    await orchestrator.queue.dispatch(SyncEvent.ONLINE)


def _run_voice_mode() -> None:
    """Start the full LiveKit voice pipeline (requires API keys)."""
    from livekit.agents import WorkerOptions, cli

    worker = WorkerOptions(
        entrypoint_fnc=entrypoint,
        agent_name=settings.agent_name,
    )
    cli.run_app(worker)


def _run_console_mode() -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_voice_mode()
