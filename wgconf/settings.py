"""
Settings management for wgconf tools.

Features:
- Load and save settings from a JSON file
- Update and retrieve settings programmatically
- Defaults are used when the file does not exist

Settings:
- config_path: WireGuard configuration file to manage
- interface: interface name used for live sync and status
- network / server_address: address pool for new peers
- listen_port, wan_interface: used when initialising a configuration
- live_sync: apply changes to the running interface after each mutation

Usage:
    from wgconf.settings import load_settings, get_settings, update_settings

"""

import os
import json
import logging

from .allocator import AddressAllocator

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = os.path.join(os.path.expanduser("~"), ".wgconf", "settings.json")

DEFAULTS = {
    "config_path": "/etc/wireguard/wg0.conf",
    "interface": "wg0",
    "network": "10.0.0.0/24",
    "server_address": "10.0.0.1",
    "listen_port": 51820,
    "wan_interface": "eth0",
    "live_sync": True,
}

_settings = dict(DEFAULTS)


def load_settings(path=DEFAULT_SETTINGS_PATH):
    global _settings
    _settings = dict(DEFAULTS)
    if os.path.exists(path):
        with open(path, "r") as f:
            _settings.update(json.load(f))
        logger.debug("Loaded settings from %s", path)
    return _settings


def save_settings(path=DEFAULT_SETTINGS_PATH):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump(_settings, f, indent=2)


def update_settings(updates: dict, path=DEFAULT_SETTINGS_PATH):
    _settings.update(updates)
    save_settings(path)


def get_settings():
    return _settings


def make_allocator(settings=None) -> AddressAllocator:
    settings = settings or _settings
    return AddressAllocator(network=settings["network"],
                            server_address=settings["server_address"])
