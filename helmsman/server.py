"""
HELMSMAN Command Server

Exposes the command submission boundary over HTTP.

Endpoints:
    POST /api/process-command   {command, currentState} -> {stateUpdates, response,
                                 originalCommand, correctedCommand}
    GET  /health                Health check
"""

import json
import logging

from aiohttp import web

from helmsman.exceptions import HelmsmanError, InvalidCommandError, MissingCredentialError
from helmsman.processor import CommandProcessor
from helmsman.types import CommandResponse, ShipState

logger = logging.getLogger("helmsman.server")

PROCESSOR_KEY = web.AppKey("processor", CommandProcessor)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def handle_process_command(request: web.Request) -> web.Response:
    """Handle POST /api/process-command requests."""
    processor = request.app[PROCESSOR_KEY]

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"Error parsing request body: {e}")
        return _error("Invalid request body", 400)
    if not isinstance(body, dict):
        return _error("Invalid request body", 400)

    command = body.get("command")
    if not isinstance(command, str) or not command.strip():
        logger.error("Command is required but was not provided")
        return _error("Command is required", 400)

    raw_state = body.get("currentState") or {}
    try:
        if not isinstance(raw_state, dict):
            raise TypeError("currentState must be an object")
        state = ShipState.from_dict(raw_state)
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid current state: {e}")
        return _error(f"Invalid current state: {e}", 400)

    try:
        result: CommandResponse = await processor.process(command, state)
    except InvalidCommandError as e:
        return _error(e.message, 400)
    except MissingCredentialError as e:
        logger.error(e.message)
        return _error(e.message, 500)
    except HelmsmanError as e:
        logger.error(f"Error processing command: {e}")
        return _error(f"Failed to process command: {e.message}", 500)

    return web.json_response(result.to_dict())


async def handle_health(request: web.Request) -> web.Response:
    """Handle health check requests."""
    return web.json_response({"status": "ok", "service": "helmsman"})


def create_app(processor: CommandProcessor) -> web.Application:
    """Create the web application around a command processor."""
    app = web.Application()
    app[PROCESSOR_KEY] = processor

    app.router.add_post("/api/process-command", handle_process_command)
    app.router.add_get("/health", handle_health)

    return app
