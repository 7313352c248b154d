"""WireGuard tooling: keys, live-apply, status and installation."""

import logging
import os
import shutil
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .allocator import AddressAllocator
from .document import PeerEntry
from .errors import (CommandError, KeyGenerationError, MalformedStructure,
                     UnsupportedPlatform, WireGuardNotInstalled)
from .executor import CommandExecutor
from . import peers
from .store import PathLike, PeerStore

logger = logging.getLogger(__name__)


@dataclass
class KeyPair:
    """A WireGuard private/public key pair."""
    private_key: str
    public_key: str


@dataclass
class HandshakeInfo:
    """Per-peer status as reported by ``wg show``."""
    public_key: str
    handshake: Optional[str] = None
    endpoint: Optional[str] = None
    allowed_ips: Optional[str] = None
    latest_handshake: Optional[str] = None
    transfer: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "publicKey": self.public_key,
            "handshake": self.handshake,
            "endpoint": self.endpoint,
            "allowedIps": self.allowed_ips,
            "latestHandshake": self.latest_handshake,
            "transfer": self.transfer,
        }


def _write_key(path: PathLike, key: str):
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        f.write(key + "\n")
    os.chmod(path, 0o600)


# ---------- Key generation ----------

async def generate_keys(private_key_path: Optional[PathLike] = None,
                        public_key_path: Optional[PathLike] = None,
                        executor: Optional[CommandExecutor] = None) -> KeyPair:
    """Generate a key pair with ``wg genkey`` / ``wg pubkey``."""
    executor = executor or CommandExecutor()
    try:
        private_key = (await executor.run(["wg", "genkey"])).stdout.strip()
        public_key = (await executor.run(["wg", "pubkey"], input=private_key + "\n")).stdout.strip()
    except CommandError as e:
        logger.error("Failed to generate WireGuard keypair: %s", e)
        raise KeyGenerationError(e.args_list, e.returncode, e.stderr) from e

    if private_key_path:
        _write_key(private_key_path, private_key)
    if public_key_path:
        _write_key(public_key_path, public_key)

    logger.info("Generated keypair %s...", public_key[:8])
    return KeyPair(private_key, public_key)


async def generate_preshared_key(key_path: Optional[PathLike] = None,
                                 executor: Optional[CommandExecutor] = None) -> str:
    executor = executor or CommandExecutor()
    try:
        psk = (await executor.run(["wg", "genpsk"])).stdout.strip()
    except CommandError as e:
        logger.error("Failed to generate preshared key: %s", e)
        raise KeyGenerationError(e.args_list, e.returncode, e.stderr) from e
    if key_path:
        _write_key(key_path, psk)
    return psk


async def get_public_key(config_path: Union[PeerStore, PathLike],
                         executor: Optional[CommandExecutor] = None) -> str:
    """Derive the public key of the [Interface] PrivateKey in a config file."""
    doc = await peers.load(config_path)
    private_key = (doc.interface or {}).get("PrivateKey")
    if not private_key:
        raise MalformedStructure("Configuration has no [Interface] PrivateKey")

    executor = executor or CommandExecutor()
    try:
        result = await executor.run(["wg", "pubkey"], input=private_key + "\n")
    except CommandError as e:
        logger.error("Failed to derive public key: %s", e.stderr)
        raise KeyGenerationError(e.args_list, e.returncode, e.stderr) from e
    return result.stdout.strip()


# ---------- Interface control ----------

async def sync_conf(interface: str, executor: Optional[CommandExecutor] = None):
    """Apply the on-disk peers to a running interface without restarting it."""
    executor = executor or CommandExecutor()
    stripped = await executor.run(["wg-quick", "strip", interface])
    await executor.run(["wg", "syncconf", interface, "/dev/stdin"], input=stripped.stdout + "\n")
    logger.info("Synchronised %s with its configuration", interface)


async def up(interface: str, executor: Optional[CommandExecutor] = None):
    executor = executor or CommandExecutor()
    await executor.run(["wg-quick", "up", interface])
    logger.info("Brought up %s", interface)


async def down(interface: str, executor: Optional[CommandExecutor] = None):
    executor = executor or CommandExecutor()
    await executor.run(["wg-quick", "down", interface])
    logger.info("Brought down %s", interface)


# ---------- Status ----------

_HANDSHAKE_FIELDS = {
    "handshake": "handshake",
    "endpoint": "endpoint",
    "allowed ips": "allowed_ips",
    "latest handshake": "latest_handshake",
    "transfer": "transfer",
}


def parse_wg_show(output: str) -> List[HandshakeInfo]:
    """Parse human-readable ``wg show`` output into per-peer records.

    The interface block that precedes the first ``peer:`` line is skipped.
    """
    result: List[HandshakeInfo] = []
    current: Optional[HandshakeInfo] = None

    for line in output.split("\n"):
        line = line.strip()
        if not line:
            if current:
                result.append(current)
                current = None
            continue

        if line.startswith("peer:"):
            if current:
                result.append(current)
            current = HandshakeInfo(public_key=line[len("peer:"):].strip())
            continue

        if current and ":" in line:
            label, _, value = line.partition(":")
            attr = _HANDSHAKE_FIELDS.get(label.strip())
            if attr:
                setattr(current, attr, value.strip())

    if current:
        result.append(current)
    return result


async def get_latest_handshake(interface: str,
                               executor: Optional[CommandExecutor] = None) -> List[HandshakeInfo]:
    executor = executor or CommandExecutor()
    result = await executor.run(["wg", "show", interface])
    return parse_wg_show(result.stdout)


# ---------- Availability / installation ----------

@dataclass
class PackageManager:
    key: str
    binary: str
    name: str
    install: List[List[str]] = field(default_factory=list)


PLATFORM_PACKAGE_MANAGERS: Dict[str, List[PackageManager]] = {
    "linux": [
        PackageManager("ubuntu", "apt", "Ubuntu/Debian", [
            ["sudo", "apt", "update"],
            ["sudo", "apt", "install", "-y", "wireguard"],
        ]),
        PackageManager("centos", "yum", "CentOS/RHEL", [
            ["sudo", "yum", "install", "-y", "epel-release"],
            ["sudo", "yum", "install", "-y", "wireguard-tools"],
        ]),
        PackageManager("fedora", "dnf", "Fedora", [
            ["sudo", "dnf", "install", "-y", "wireguard-tools"],
        ]),
        PackageManager("arch", "pacman", "Arch Linux", [
            ["sudo", "pacman", "-S", "--noconfirm", "wireguard-tools"],
        ]),
        PackageManager("alpine", "apk", "Alpine Linux", [
            ["sudo", "apk", "add", "--no-cache", "wireguard-tools"],
        ]),
    ],
    "darwin": [
        PackageManager("homebrew", "brew", "macOS (Homebrew)", [
            ["brew", "install", "wireguard-tools"],
        ]),
    ],
    "win32": [
        PackageManager("chocolatey", "choco", "Windows (Chocolatey)", [
            ["choco", "install", "wireguard"],
        ]),
        PackageManager("winget", "winget", "Windows (Winget)", [
            ["winget", "install", "WireGuard.WireGuard"],
        ]),
    ],
}

INSTALL_HINT = (
    "Please install WireGuard tools:\n"
    "  Ubuntu/Debian: sudo apt install wireguard\n"
    "  CentOS/RHEL: sudo yum install wireguard-tools\n"
    "  Fedora: sudo dnf install wireguard-tools\n"
    "  macOS: brew install wireguard-tools"
)


def detect_platform() -> Dict[str, Optional[str]]:
    """Find the first usable package manager for this OS."""
    platform = sys.platform
    for manager in PLATFORM_PACKAGE_MANAGERS.get(platform, []):
        if shutil.which(manager.binary):
            return {
                "platform": platform,
                "packageManager": manager.key,
                "command": " && ".join(" ".join(cmd) for cmd in manager.install),
                "name": manager.name,
            }
    return {"platform": platform, "packageManager": None, "command": None, "name": None}


def get_install_instructions() -> Dict[str, object]:
    info = detect_platform()
    info["supported"] = info["command"] is not None
    return info


async def check_wg(executor: Optional[CommandExecutor] = None) -> bool:
    """Return True when ``wg --version`` runs successfully."""
    executor = executor or CommandExecutor()
    result = await executor.run(["wg", "--version"], check=False)
    return result.ok


async def require_wg(executor: Optional[CommandExecutor] = None):
    if not await check_wg(executor):
        raise WireGuardNotInstalled(
            "WireGuard is not installed or not available in PATH. " + INSTALL_HINT
        )


async def install_wg(force: bool = False, executor: Optional[CommandExecutor] = None):
    """Install wireguard-tools through the detected package manager."""
    executor = executor or CommandExecutor()
    if not force and await check_wg(executor):
        logger.info("WireGuard is already installed")
        return

    platform = sys.platform
    manager = next(
        (m for m in PLATFORM_PACKAGE_MANAGERS.get(platform, []) if shutil.which(m.binary)),
        None,
    )
    if manager is None:
        raise UnsupportedPlatform(
            f"Unsupported platform: {platform}. Please install WireGuard manually:\n"
            "  Linux: https://www.wireguard.com/install/\n"
            "  macOS: brew install wireguard-tools\n"
            "  Windows: https://www.wireguard.com/install/"
        )

    logger.info("Installing WireGuard on %s...", manager.name)
    for cmd in manager.install:
        await executor.run(cmd)
    await executor.run(["wg", "--version"])
    logger.info("WireGuard installed successfully")


# ---------- Manager ----------

class WireGuardManager:
    """Provisions peers in one configuration file and applies them live."""

    def __init__(self,
                 config_path: PathLike,
                 interface: str = "wg0",
                 executor: Optional[CommandExecutor] = None,
                 allocator: Optional[AddressAllocator] = None,
                 live_sync: bool = True):
        self.store = PeerStore(config_path)
        self.interface = interface
        self.executor = executor or CommandExecutor()
        self.allocator = allocator or AddressAllocator()
        self.live_sync = live_sync

    async def sync(self) -> bool:
        """Run live-apply; a failure is logged and reported, never raised."""
        if not self.live_sync:
            return False
        try:
            await sync_conf(self.interface, self.executor)
        except CommandError as e:
            logger.error("Live sync of %s failed: %s", self.interface, e)
            return False
        return True

    async def add_peer(self, public_key: str, **fields) -> Dict[str, object]:
        result: Dict[str, object] = dict(await peers.add_peer(
            self.store, public_key, allocator=self.allocator, **fields
        ))
        result["synced"] = await self.sync()
        return result

    async def delete_peer(self, public_key: str) -> Dict[str, bool]:
        deleted = await peers.delete_peer(self.store, public_key)
        synced = await self.sync() if deleted else False
        return {"deleted": deleted, "synced": synced}

    async def list_peers(self) -> List[PeerEntry]:
        return await peers.list_peers(self.store)

    async def handshakes(self) -> List[HandshakeInfo]:
        return await get_latest_handshake(self.interface, self.executor)

    async def new_client(self, **fields) -> Dict[str, object]:
        """Generate keys for a new client and register it as a peer."""
        keys = await generate_keys(executor=self.executor)
        result = await self.add_peer(keys.public_key, **fields)
        result.update({"publicKey": keys.public_key, "privateKey": keys.private_key})
        return result
