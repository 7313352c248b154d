"""IPv4 address allocation for new peers."""

import ipaddress
import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from .document import ConfigDocument
from .errors import AllocationExhausted

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "10.0.0.0/24"
SERVER_ADDRESS = "10.0.0.1"  # Reserved for the interface itself

_DOTTED_QUAD = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")


def ip_to_int(address: str) -> int:
    """Convert a dotted quad to its integer value."""
    a, b, c, d = (int(octet) for octet in address.split("."))
    return a * 2 ** 24 + b * 2 ** 16 + c * 2 ** 8 + d


def int_to_ip(value: int) -> str:
    """Convert an integer back to a dotted quad, masking each byte."""
    return ".".join(str((value >> shift) & 255) for shift in (24, 16, 8, 0))


def host_addresses(doc: ConfigDocument) -> Iterator[str]:
    """Yield every single-host (/32) IPv4 address assigned to a peer."""
    for peer in doc.peers:
        for token in peer.allowed_ips:
            address, sep, prefix = token.partition("/")
            address = address.strip()
            if not sep or prefix.strip() != "32":
                continue
            if not _DOTTED_QUAD.match(address):
                continue
            yield address


@dataclass
class AddressAllocator:
    """Hands out the address one past the highest peer address in use.

    Freed addresses are only handed out again once nothing higher is left;
    there is no free list. The server address is never assigned. Host
    addresses outside ``network`` (routed site peers) do not count.
    """
    network: str = DEFAULT_NETWORK
    server_address: str = SERVER_ADDRESS

    def __post_init__(self):
        self._network = ipaddress.IPv4Network(self.network, strict=False)

    def _contains(self, value: int) -> bool:
        return int(self._network.network_address) <= value <= int(self._network.broadcast_address)

    def highest(self, doc: ConfigDocument) -> int:
        highest = ip_to_int(self.server_address)
        for address in host_addresses(doc):
            value = ip_to_int(address)
            if not self._contains(value):
                continue
            highest = max(highest, value)
        return highest

    def allocate(self, doc: ConfigDocument) -> str:
        """Return the next free address for ``doc`` (without prefix)."""
        if not doc.peers:
            candidate = ip_to_int(self.server_address) + 1
        else:
            candidate = self.highest(doc) + 1

        if candidate >= int(self._network.broadcast_address) or \
                candidate <= int(self._network.network_address):
            logger.error("Address pool %s exhausted", self._network)
            raise AllocationExhausted(
                f"No free address left in {self._network} after {int_to_ip(candidate - 1)}"
            )

        address = int_to_ip(candidate)
        logger.debug("Allocated %s from %s", address, self._network)
        return address


def allocate(doc: ConfigDocument, allocator: Optional[AddressAllocator] = None) -> str:
    """Allocate a peer address using the default 10.0.0.0/24 policy."""
    return (allocator or AddressAllocator()).allocate(doc)
