"""Running external commands (wg, wg-quick, package managers)."""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import CommandError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a finished command."""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandExecutor:
    """Runs commands as asyncio subprocesses.

    Everything that talks to the system goes through ``run`` so tests can
    substitute a fake executor.
    """

    async def run(self, args: List[str], input: Optional[str] = None,
                  check: bool = True) -> CommandResult:
        logger.debug("Running %s", " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            if check:
                raise CommandError(args, None, str(e)) from e
            return CommandResult(args, 127, "", str(e))

        try:
            stdout, stderr = await proc.communicate(input.encode() if input is not None else None)
        except asyncio.CancelledError:
            logger.debug("Killing %s after cancellation", args[0])
            proc.kill()
            await proc.wait()
            raise
        result = CommandResult(
            args=args,
            returncode=proc.returncode,
            stdout=stdout.decode(errors="replace").strip(),
            stderr=stderr.decode(errors="replace").strip(),
        )
        if check and not result.ok:
            logger.error("Command %s failed: %s", args[0], result.stderr)
            raise CommandError(args, result.returncode, result.stderr)
        return result
