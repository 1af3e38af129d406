"""
HELMSMAN Application Entry Point

Interactive helm console. Typed lines are handled as transcripts; with
``--voice`` the Enter key starts and stops push-to-talk recording.

Usage:
    helmsman                            # Typed commands, default config
    helmsman --config /path/to/config.yaml
    helmsman --backend grammar          # Offline, no API keys needed
    helmsman --voice                    # Push-to-talk
    helmsman --serve                    # Run the HTTP command server
    helmsman --dry-run                  # Validate config without starting

Console commands:
    mute     Toggle spoken feedback
    status   Show helm state
    log      Show recent commands
    reset    Reset ship state to zero
    quit     Exit
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from aiohttp import web

from helmsman import __version__
from helmsman.config import HelmsmanConfig, load_config
from helmsman.exceptions import ConfigurationError, HelmsmanError
from helmsman.formatter import format_state
from helmsman.logging_config import get_logger, set_service_level, setup_logging
from helmsman.server import create_app
from helmsman.session import HelmSession, create_command_processor, create_helm_session
from helmsman.types import Notification

__all__ = ["main", "async_main", "create_parser"]

logger = get_logger("main")


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="helmsman",
        description="HELMSMAN Voice-Controlled Naval Helm",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        metavar="PATH",
        help="Path to configuration file (default: auto-discover)",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (overrides config file)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        metavar="PATH",
        help="Path to log file (default: stderr only)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit",
    )
    parser.add_argument(
        "--backend",
        choices=["groq", "openai", "anthropic", "mock", "grammar"],
        help="Text-transformation backend (overrides config file)",
    )
    parser.add_argument(
        "--mute",
        action="store_true",
        help="Start with spoken feedback muted",
    )
    parser.add_argument(
        "--voice",
        action="store_true",
        help="Push-to-talk input: Enter to start recording, Enter to stop",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP command server instead of the console",
    )

    return parser


def print_notification(notification: Notification) -> None:
    print(f"\n[{notification.severity.value.upper()}] {notification.title}: {notification.description}")


def print_status(session: HelmSession) -> None:
    print(f"  {format_state(session.state.ship)}")
    if session.state.muted:
        print("  (audio muted)")


def print_log(session: HelmSession) -> None:
    entries = session.state.log.entries()
    if not entries:
        print("  No commands yet")
    for entry in entries:
        print(f"  {entry.timestamp:%H:%M:%S}  {entry.corrected_command}")
        if entry.confirmation:
            print(f"            -> {entry.confirmation}")


async def serve(config: HelmsmanConfig) -> int:
    """Run the command server until cancelled."""
    app = create_app(create_command_processor(config))
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.server.host, config.server.port)
    await site.start()
    logger.info(f"Command server listening on http://{config.server.host}:{config.server.port}")
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
    return 0


async def handle_line(session: HelmSession, line: str) -> bool:
    """Handle one console line. Returns False to exit."""
    word = line.strip().lower()
    if word in ("quit", "exit"):
        return False
    if word == "mute":
        muted = session.toggle_mute()
        print(f"  Audio {'muted' if muted else 'unmuted'}")
    elif word == "status":
        print_status(session)
    elif word == "log":
        print_log(session)
    elif word == "reset":
        session.state.machine.reset()
        print_status(session)
    elif word:
        outcome = await session.submit_transcript(line)
        if outcome is not None and outcome.success:
            print(f"  {outcome.corrected_command}")
            print(f"  > {outcome.confirmation}")
            print_status(session)
    return True


async def voice_loop(session: HelmSession, config: HelmsmanConfig) -> None:
    from voice.stt.capture import PushToTalkCapture, WhisperTranscriber

    voice = config.voice
    capture = PushToTalkCapture(
        transcriber=WhisperTranscriber(
            model_size=voice.model,
            device=voice.device,
            compute_type=voice.compute_type,
            language=voice.language,
        ),
        sample_rate=voice.sample_rate,
        max_record_sec=voice.max_record_sec,
    )
    session.attach_capture(capture)

    while True:
        line = await asyncio.to_thread(input, "[Enter] to talk, or type a command > ")
        if line.strip():
            if not await handle_line(session, line):
                return
            continue
        if not await session.start_listening():
            print("  Voice input unavailable; type commands instead")
            continue
        await asyncio.to_thread(input, "  Recording... [Enter] to stop ")
        transcript = await session.stop_listening()
        if transcript:
            print(f"  Heard: {transcript}")
            print_status(session)


async def async_main(args: argparse.Namespace, config: HelmsmanConfig) -> int:
    """Async main: run the server or the interactive console."""
    if args.serve:
        return await serve(config)

    session = create_helm_session(config)
    session.add_listener(print_notification)

    print(f"HELMSMAN v{__version__} - backend: {config.llm.backend}")
    print_status(session)

    try:
        if args.voice and config.voice.enabled:
            await voice_loop(session, config)
        else:
            while True:
                line = await asyncio.to_thread(input, "helm> ")
                if not await handle_line(session, line):
                    break
    except EOFError:
        pass
    finally:
        await session.close()
    return 0


def main() -> int:
    """Main entry point for the HELMSMAN console.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    args = parser.parse_args()

    setup_logging(log_level=args.log_level or "INFO", log_file=args.log_file)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    # Command line wins over the config file
    setup_logging(
        log_level=args.log_level or config.log_level,
        log_file=args.log_file or config.log_file,
    )
    for component, level in config.log_levels.items():
        set_service_level(component, level)

    if args.backend:
        config.llm.backend = args.backend
        config.llm.fallback_backends = [b for b in config.llm.fallback_backends if b != args.backend]
    if args.mute:
        config.session.muted = True

    if args.dry_run:
        logger.info("Dry run mode - configuration valid, exiting")
        print("Configuration is valid")
        return 0

    try:
        return asyncio.run(async_main(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except HelmsmanError as e:
        logger.error(f"HELMSMAN error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
