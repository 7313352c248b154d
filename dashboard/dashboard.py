from flask import Flask, request, jsonify
import asyncio
import logging
import threading

from wgconf.errors import AllocationExhausted, DuplicatePeerError
from wgconf.settings import get_settings, make_allocator
from wgconf.wireguard import WireGuardManager

app = Flask(__name__)

logger = logging.getLogger(__name__)

# Each request runs its own event loop; one request touches the store at a time.
_run_lock = threading.Lock()

PEER_FIELDS = {
    'allowedIPs': 'allowed_ips',
    'presharedKey': 'preshared_key',
    'persistentKeepalive': 'persistent_keepalive',
    'endpoint': 'endpoint',
    'allowedApps': 'allowed_apps',
}


def get_manager() -> WireGuardManager:
    """Return the manager bound to this app, creating it from settings."""
    manager = app.config.get('WG_MANAGER')
    if manager is None:
        settings = get_settings()
        manager = WireGuardManager(
            settings['config_path'],
            interface=settings['interface'],
            allocator=make_allocator(settings),
            live_sync=settings['live_sync'],
        )
        app.config['WG_MANAGER'] = manager
    return manager


def _run(coro):
    with _run_lock:
        return asyncio.run(coro)


@app.route('/peers', methods=['GET'])
def list_peers():
    peers = _run(get_manager().list_peers())
    logger.debug('Listing %d peers', len(peers))
    return jsonify([p.to_dict() for p in peers])


@app.route('/peers', methods=['POST'])
def add_peer():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'expected a JSON object'}), 400
    public_key = data.get('publicKey')
    if not public_key:
        return jsonify({'error': 'publicKey is required'}), 400
    if not isinstance(public_key, str):
        return jsonify({'error': 'publicKey must be a string'}), 400
    fields = {}
    for key, arg in PEER_FIELDS.items():
        value = data.get(key)
        if value is None:
            continue
        allowed = (str, int) if arg == 'persistent_keepalive' else (str,)
        if isinstance(value, bool) or not isinstance(value, allowed):
            return jsonify({'error': f'{key} has the wrong type'}), 400
        fields[arg] = value
    try:
        result = _run(get_manager().add_peer(public_key, **fields))
    except DuplicatePeerError as exc:
        return jsonify({'error': str(exc)}), 409
    except AllocationExhausted as exc:
        logger.error('add peer failed: %s', exc)
        return jsonify({'error': str(exc)}), 507
    logger.info('Registered peer %s at %s', public_key[:8], result['ip'])
    return jsonify(result), 201


@app.route('/peers/delete', methods=['POST'])
def delete_peer():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'expected a JSON object'}), 400
    public_key = data.get('publicKey')
    if not public_key or not isinstance(public_key, str):
        return jsonify({'error': 'publicKey is required'}), 400
    result = _run(get_manager().delete_peer(public_key))
    return jsonify(result)


@app.route('/handshakes', methods=['GET'])
def handshakes():
    infos = _run(get_manager().handshakes())
    return jsonify([info.to_dict() for info in infos])


@app.route('/stats', methods=['GET'])
def stats():
    count = len(_run(get_manager().list_peers()))
    logger.debug('Stats requested: %d peers', count)
    return jsonify({'peer_count': count})
