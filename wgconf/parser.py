"""Text <-> ConfigDocument conversion for WireGuard configuration files.

The format is INI-like::

    [Interface]
    PrivateKey = <server-private-key>
    Address = 10.0.0.1/24

    [Peer]
    PublicKey = <peer-public-key>
    AllowedIPs = 10.0.0.2/32

Blank lines and lines starting with ``#`` or ``;`` are comments. Parsing is
purely syntactic and never raises; odd input yields an empty or partial
document.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from .document import INTERFACE, PEER, ConfigDocument, PeerEntry, Section

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("#", ";")


def _split_pair(line: str) -> Tuple[str, str]:
    # Only the first '=' separates key from value; values may contain '='.
    key, _, value = line.partition("=")
    return key.strip(), value.strip()


def parse(text: str) -> ConfigDocument:
    """Parse configuration text into a ConfigDocument."""
    doc = ConfigDocument()
    target: Optional[Section] = None

    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        line = raw.strip()
        if not line or line.startswith(COMMENT_PREFIXES):
            continue

        if line.startswith("[") and line.endswith("]"):
            name = line[1:-1]
            if name == PEER:
                peer = PeerEntry()
                doc.peers.append(peer)
                target = peer.values
            elif name == INTERFACE:
                doc.interface = {}
                target = doc.interface
            else:
                doc.sections[name] = {}
                target = doc.sections[name]
            continue

        if target is None:
            # Lines before the first section header belong nowhere.
            continue

        key, value = _split_pair(line)
        target[key] = value

    logger.debug("Parsed config with %d peers", len(doc.peers))
    return doc


def _render_section(name: str, values: Mapping[str, Any]) -> List[str]:
    lines = [f"[{name}]"]
    for key, value in values.items():
        if value is None:
            continue
        lines.append(f"{key} = {value}")
    lines.append("")
    return lines


def _sections(doc: ConfigDocument) -> Iterable[Tuple[str, Mapping[str, Any]]]:
    if doc.interface is not None:
        yield INTERFACE, doc.interface
    for name, values in doc.sections.items():
        yield name, values
    for peer in doc.peers:
        yield PEER, peer.values


def serialize(doc: ConfigDocument) -> str:
    """Render a ConfigDocument back to configuration text.

    Sections are separated by a blank line and the result carries no
    trailing newline.
    """
    lines: List[str] = []
    for name, values in _sections(doc):
        lines.extend(_render_section(name, values))
    return "\n".join(lines).strip()
