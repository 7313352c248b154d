"""Test the Flask dashboard routes."""

import os
import sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))
from dashboard.dashboard import app
from wgconf.parser import parse
from wgconf.wireguard import WireGuardManager

# Test data
TEST_PRIVKEY = "YAnUluK7n9ZQVxqKBUqm7zQZYr+dJxGxGBgwi6tVN0Y="
TEST_PUBKEY = "h1CYEdqF9ElQHZ3Nr9rM7c4upANh6DfC5uI4xRVn5T0="
TEST_PEER_PUBKEY = "KBUqm7zQZYr+dJxGxGBgwi6tVN0YYAnUluK7n9ZQVxq="


@pytest.fixture
def conf_path(tmp_path):
    path = tmp_path / "wg0.conf"
    path.write_text(
        f"[Interface]\nAddress = 10.0.0.1/24\nPrivateKey = {TEST_PRIVKEY}\n\n"
        f"[Peer]\nPublicKey = {TEST_PUBKEY}\nAllowedIPs = 10.0.0.2/32"
    )
    return path

@pytest.fixture
def client(conf_path, fake_executor):
    """Flask test client bound to a manager using the fake executor."""
    app.config['TESTING'] = True
    app.config['WG_MANAGER'] = WireGuardManager(conf_path, executor=fake_executor)
    with app.test_client() as c:
        yield c
    app.config.pop('WG_MANAGER', None)

def test_list_peers(client):
    """Test listing peers from the config file."""
    resp = client.get('/peers')
    assert resp.status_code == 200
    assert resp.get_json() == [{"PublicKey": TEST_PUBKEY, "AllowedIPs": "10.0.0.2/32"}]

def test_add_peer(client, conf_path):
    """Test adding a peer over HTTP."""
    resp = client.post('/peers', json={"publicKey": TEST_PEER_PUBKEY, "persistentKeepalive": 25})
    assert resp.status_code == 201
    assert resp.get_json() == {"ip": "10.0.0.3", "synced": True}
    peer = parse(conf_path.read_text()).peers[-1]
    assert peer.persistent_keepalive == "25"

def test_add_peer_requires_key(client):
    """Test that a missing publicKey is rejected."""
    resp = client.post('/peers', json={})
    assert resp.status_code == 400

def test_add_duplicate_peer(client):
    """Test that a duplicate public key yields 409."""
    resp = client.post('/peers', json={"publicKey": TEST_PUBKEY})
    assert resp.status_code == 409

def test_delete_peer(client, conf_path):
    """Test deleting existing and unknown peers."""
    resp = client.post('/peers/delete', json={"publicKey": "absent"})
    assert resp.get_json() == {"deleted": False, "synced": False}
    resp = client.post('/peers/delete', json={"publicKey": TEST_PUBKEY})
    assert resp.get_json()["deleted"] is True
    assert parse(conf_path.read_text()).peers == []

def test_handshakes(client, fake_executor):
    """Test the handshake status route."""
    fake_executor.on(["wg", "show", "wg0"],
                     stdout=f"peer: {TEST_PUBKEY}\n  latest handshake: 5 seconds ago\n")
    resp = client.get('/handshakes')
    data = resp.get_json()
    assert data[0]["publicKey"] == TEST_PUBKEY
    assert data[0]["latestHandshake"] == "5 seconds ago"

def test_stats(client):
    """Test the peer count route."""
    assert client.get('/stats').get_json() == {"peer_count": 1}

def test_add_peer_pool_exhausted(client, conf_path):
    """Test that a full address pool yields 507 and leaves the file alone."""
    conf_path.write_text(
        f"[Interface]\nAddress = 10.0.0.1/24\nPrivateKey = {TEST_PRIVKEY}\n\n"
        f"[Peer]\nPublicKey = {TEST_PUBKEY}\nAllowedIPs = 10.0.0.254/32"
    )
    before = conf_path.read_text()
    resp = client.post('/peers', json={"publicKey": TEST_PEER_PUBKEY})
    assert resp.status_code == 507
    assert "error" in resp.get_json()
    assert conf_path.read_text() == before

@pytest.mark.parametrize("route", ['/peers', '/peers/delete'])
def test_non_object_body_rejected(client, conf_path, route):
    """Test that a JSON array body is a client error."""
    before = conf_path.read_text()
    resp = client.post(route, json=[TEST_PEER_PUBKEY])
    assert resp.status_code == 400
    assert conf_path.read_text() == before

@pytest.mark.parametrize("body", [
    {"publicKey": TEST_PEER_PUBKEY, "allowedIPs": ["10.0.0.9/32"]},
    {"publicKey": TEST_PEER_PUBKEY, "endpoint": 5},
    {"publicKey": TEST_PEER_PUBKEY, "persistentKeepalive": True},
    {"publicKey": ["not", "a", "key"]},
])
def test_add_peer_wrong_field_types(client, conf_path, body):
    """Test that fields of the wrong JSON type are rejected before writing."""
    before = conf_path.read_text()
    resp = client.post('/peers', json=body)
    assert resp.status_code == 400
    assert conf_path.read_text() == before

if __name__ == '__main__':
    pytest.main([__file__])
