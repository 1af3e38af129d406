"""
HELMSMAN Command Processor
Command submission boundary: command text + current state -> CommandResponse.

CommandProcessor runs correction then interpretation in-process. It does
not merge; the caller owns ship state and applies ``state_updates`` itself.
RemoteCommandProcessor offers the same interface against a HELMSMAN server
(``POST /api/process-command``).

Usage:
    processor = CommandProcessor(corrector, interpreter)
    response = await processor.process("helm love 20", ShipState())
    response.state_updates.rudder   # -20
"""

import logging
from typing import Optional

import aiohttp

from helmsman.corrector import CommandCorrector
from helmsman.exceptions import CommandRejectedError, InvalidCommandError
from helmsman.interpreter import CommandInterpreter
from helmsman.types import CommandResponse, ShipState, StateDelta

logger = logging.getLogger("helmsman.processor")


class CommandProcessor:
    """Correct-then-interpret pipeline behind the submission boundary."""

    def __init__(self, corrector: CommandCorrector, interpreter: CommandInterpreter):
        self.corrector = corrector
        self.interpreter = interpreter

    async def process(self, command: str, state: ShipState) -> CommandResponse:
        """
        Process one command against ``state``.

        Raises:
            InvalidCommandError: Command is empty
            MissingCredentialError: Transformer is not configured
            CommandError: Correction or interpretation failed
        """
        if not command or not command.strip():
            raise InvalidCommandError("Command is required")

        logger.info(f"Processing command: {command}")
        logger.debug(f"Current state: {state.to_dict()}")

        corrected = await self.corrector.correct(command)
        interpretation = await self.interpreter.interpret(corrected, state)

        return CommandResponse(
            original_command=command,
            corrected_command=corrected,
            state_updates=interpretation.delta,
            response=interpretation.confirmation,
        )


class RemoteCommandProcessor:
    """
    Client for a HELMSMAN command server.

    Any non-2xx status or an ``error`` field in the body is a rejection;
    the caller must not change ship state.
    """

    PATH = "/api/process-command"

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_sec: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": "HELMSMAN/1.0 (command-client)"}
            )
        return self._session

    async def close(self):
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def process(self, command: str, state: ShipState) -> CommandResponse:
        """
        Submit a command to the server.

        Raises:
            CommandRejectedError: Transport failure, non-2xx status or error body
        """
        payload = {"command": command, "currentState": state.to_dict()}
        session = await self._get_session()

        try:
            async with session.post(
                self.base_url + self.PATH,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout_sec),
            ) as response:
                status = response.status
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
        except aiohttp.ClientError as e:
            logger.error(f"Command server unreachable: {e}")
            raise CommandRejectedError(f"Command server unreachable: {e}", command=command) from e

        if not isinstance(data, dict):
            raise CommandRejectedError(
                f"Command server returned an invalid body (HTTP {status})",
                command=command,
                status=status,
            )
        if not 200 <= status < 300 or data.get("error"):
            message = data.get("error") or f"HTTP {status}"
            logger.error(f"Command rejected by server: {message}")
            raise CommandRejectedError(message, command=command, status=status)

        updates = data.get("stateUpdates") or {}
        return CommandResponse(
            original_command=data.get("originalCommand", command),
            corrected_command=data.get("correctedCommand"),
            state_updates=StateDelta(
                rudder=updates.get("rudder"),
                course=updates.get("course"),
                speed=updates.get("speed"),
            ),
            response=data.get("response"),
        )
