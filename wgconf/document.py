"""In-memory model of a WireGuard configuration file."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

Section = Dict[str, str]

INTERFACE = "Interface"
PEER = "Peer"


@dataclass
class PeerEntry:
    """A single [Peer] section.

    Keys are kept in the order they were read or added. Only ``PublicKey``
    is expected; every other key is optional and unknown keys are carried
    through untouched.
    """
    values: Section = field(default_factory=dict)

    @classmethod
    def build(cls,
              public_key: str,
              allowed_ips: str,
              preshared_key: Optional[str] = None,
              persistent_keepalive: Optional[Union[int, str]] = None,
              endpoint: Optional[str] = None,
              allowed_apps: Optional[str] = None) -> "PeerEntry":
        """Create an entry, leaving out every field that is None."""
        values: Section = {
            "PublicKey": public_key,
            "AllowedIPs": allowed_ips,
        }
        optional = (
            ("PresharedKey", preshared_key),
            ("PersistentKeepalive", persistent_keepalive),
            ("Endpoint", endpoint),
            ("AllowedApps", allowed_apps),
        )
        for key, value in optional:
            if value is not None:
                values[key] = str(value)
        return cls(values)

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def __getitem__(self, key: str) -> str:
        return self.values[key]

    def __setitem__(self, key: str, value: str):
        self.values[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self.values

    @property
    def public_key(self) -> Optional[str]:
        return self.values.get("PublicKey")

    @property
    def allowed_ips(self) -> List[str]:
        raw = self.values.get("AllowedIPs")
        if not raw:
            return []
        return [token.strip() for token in raw.split(",") if token.strip()]

    @property
    def preshared_key(self) -> Optional[str]:
        return self.values.get("PresharedKey")

    @property
    def persistent_keepalive(self) -> Optional[str]:
        return self.values.get("PersistentKeepalive")

    @property
    def endpoint(self) -> Optional[str]:
        return self.values.get("Endpoint")

    def to_dict(self) -> Dict[str, str]:
        return dict(self.values)


@dataclass
class ConfigDocument:
    """Parsed configuration: an optional [Interface] and ordered peers."""
    interface: Optional[Section] = None
    peers: List[PeerEntry] = field(default_factory=list)
    sections: Dict[str, Section] = field(default_factory=dict)  # other named sections

    def find_peer(self, public_key: str) -> int:
        """Return the index of the first peer with ``public_key``, or -1."""
        for index, peer in enumerate(self.peers):
            if peer.public_key == public_key:
                return index
        return -1

    def has_peer(self, public_key: str) -> bool:
        return self.find_peer(public_key) != -1
