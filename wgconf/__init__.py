"""WireGuard configuration parsing, peer provisioning and address allocation."""

from .allocator import AddressAllocator, allocate, int_to_ip, ip_to_int
from .document import ConfigDocument, PeerEntry
from .errors import (AllocationExhausted, CommandError, DuplicatePeerError,
                     KeyGenerationError, MalformedStructure, WgConfError)
from .executor import CommandExecutor, CommandResult
from .parser import parse, serialize
from .peers import add_peer, delete_peer, init_conf, list_peers
from .store import PeerStore
from .wireguard import HandshakeInfo, KeyPair, WireGuardManager

__version__ = "0.1.0"

__all__ = [
    'AddressAllocator',
    'allocate',
    'int_to_ip',
    'ip_to_int',
    'ConfigDocument',
    'PeerEntry',
    'AllocationExhausted',
    'CommandError',
    'DuplicatePeerError',
    'KeyGenerationError',
    'MalformedStructure',
    'WgConfError',
    'CommandExecutor',
    'CommandResult',
    'parse',
    'serialize',
    'add_peer',
    'delete_peer',
    'init_conf',
    'list_peers',
    'PeerStore',
    'HandshakeInfo',
    'KeyPair',
    'WireGuardManager',
]
