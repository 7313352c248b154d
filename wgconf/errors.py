"""Exceptions raised by wgconf."""

from typing import List, Optional


class WgConfError(Exception):
    """Base class for wgconf errors."""


class MalformedStructure(WgConfError):
    """A configuration lacks structure a caller depends on."""


class AllocationExhausted(WgConfError):
    """No further peer address fits inside the configured network."""


class DuplicatePeerError(WgConfError):
    """A peer with the same public key is already configured."""

    def __init__(self, public_key: str):
        super().__init__(f"Peer {public_key[:8]}... already exists")
        self.public_key = public_key


class CommandError(WgConfError):
    """An external command exited unsuccessfully."""

    def __init__(self, args: List[str], returncode: Optional[int], stderr: str = ""):
        message = f"Command {' '.join(args)!r} failed"
        if returncode is not None:
            message += f" with exit code {returncode}"
        if stderr:
            message += f": {stderr}"
        super().__init__(message)
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr


class KeyGenerationError(CommandError):
    """Key material could not be produced by wg."""


class WireGuardNotInstalled(WgConfError):
    """The wg tools are not available on PATH."""


class UnsupportedPlatform(WgConfError):
    """No known package manager can install WireGuard here."""
