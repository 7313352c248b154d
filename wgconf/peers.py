"""Peer provisioning against a configuration file.

Each call is a complete read -> parse -> mutate -> serialize -> write cycle
on the store; no document is cached between calls.
"""

import logging
from typing import Dict, List, Optional, Union

from .allocator import AddressAllocator
from .document import ConfigDocument, PeerEntry
from .errors import DuplicatePeerError
from .parser import parse, serialize
from .store import PathLike, PeerStore, as_store

logger = logging.getLogger(__name__)

StoreLike = Union[PeerStore, PathLike]


async def load(store: StoreLike) -> ConfigDocument:
    """Read and parse the store."""
    return parse(await as_store(store).read())


async def list_peers(store: StoreLike) -> List[PeerEntry]:
    doc = await load(store)
    return doc.peers


async def add_peer(store: StoreLike,
                   public_key: str,
                   allowed_ips: Optional[str] = None,
                   preshared_key: Optional[str] = None,
                   persistent_keepalive: Optional[Union[int, str]] = None,
                   endpoint: Optional[str] = None,
                   allowed_apps: Optional[str] = None,
                   allocator: Optional[AddressAllocator] = None,
                   allow_duplicate: bool = False) -> Dict[str, str]:
    """Append a [Peer] to the configuration and return ``{"ip": address}``.

    Without ``allowed_ips`` the next free /32 is allocated. An explicit
    ``allowed_ips`` is written verbatim and the returned address is the
    host part of its first token.
    """
    store = as_store(store)
    async with store.lock:
        doc = parse(await store.read())

        if not allow_duplicate and doc.has_peer(public_key):
            logger.error("Refusing duplicate peer %s", public_key[:8])
            raise DuplicatePeerError(public_key)

        if allowed_ips is None:
            ip = (allocator or AddressAllocator()).allocate(doc)
            allowed_ips = f"{ip}/32"
        else:
            ip = allowed_ips.split(",")[0].split("/")[0].strip()

        doc.peers.append(PeerEntry.build(
            public_key,
            allowed_ips,
            preshared_key=preshared_key,
            persistent_keepalive=persistent_keepalive,
            endpoint=endpoint,
            allowed_apps=allowed_apps,
        ))
        await store.write(serialize(doc))

    logger.info("Added peer %s with AllowedIPs %s", public_key[:8], allowed_ips)
    return {"ip": ip}


async def delete_peer(store: StoreLike, public_key: str) -> bool:
    """Remove the first peer with ``public_key``.

    Returns False and leaves the file untouched when no peer matches.
    """
    store = as_store(store)
    async with store.lock:
        doc = parse(await store.read())
        index = doc.find_peer(public_key)
        if index == -1:
            logger.debug("Peer %s not present in %s", public_key[:8], store.path)
            return False
        del doc.peers[index]
        await store.write(serialize(doc))

    logger.info("Deleted peer %s", public_key[:8])
    return True


def interface_section(private_key: str,
                      port: int = 51820,
                      ip: str = "10.0.0.1",
                      wan_interface: str = "eth0") -> Dict[str, str]:
    """Build a server [Interface] section with NAT forwarding rules."""
    return {
        "Address": f"{ip}/24",
        "ListenPort": str(port),
        "PrivateKey": private_key,
        "PostUp": (f"iptables -A FORWARD -i %i -j ACCEPT; "
                   f"iptables -t nat -A POSTROUTING -o {wan_interface} -j MASQUERADE"),
        "PostDown": (f"iptables -D FORWARD -i %i -j ACCEPT; "
                     f"iptables -t nat -D POSTROUTING -o {wan_interface} -j MASQUERADE"),
    }


async def init_conf(store: StoreLike,
                    private_key: str,
                    port: int = 51820,
                    ip: str = "10.0.0.1",
                    wan_interface: str = "eth0"):
    """Write a fresh configuration holding only the [Interface] section."""
    store = as_store(store)
    doc = ConfigDocument(interface=interface_section(private_key, port, ip, wan_interface))
    async with store.lock:
        await store.write(serialize(doc))
    logger.info("Initialised %s listening on %d", store.path, port)
