"""Test peer address allocation."""

import os
import sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))
from wgconf.allocator import AddressAllocator, allocate, int_to_ip, ip_to_int
from wgconf.document import ConfigDocument, PeerEntry
from wgconf.errors import AllocationExhausted


def make_doc(*allowed_ips):
    """Build a document with one peer per AllowedIPs value."""
    return ConfigDocument(
        interface={"Address": "10.0.0.1/24"},
        peers=[PeerEntry({"PublicKey": f"key{i}", "AllowedIPs": ips})
               for i, ips in enumerate(allowed_ips)],
    )

def test_ip_int_conversion():
    """Test dotted quad <-> integer conversion."""
    assert ip_to_int("10.0.0.1") == 167772161
    assert ip_to_int("0.0.0.0") == 0
    assert ip_to_int("255.255.255.255") == 2 ** 32 - 1
    assert int_to_ip(167772161) == "10.0.0.1"
    assert int_to_ip(ip_to_int("192.168.7.254")) == "192.168.7.254"

def test_int_to_ip_masks_bytes():
    """Test that values beyond 32 bits are masked per byte."""
    assert int_to_ip(2 ** 32) == "0.0.0.0"
    assert int_to_ip(2 ** 32 + 5) == "0.0.0.5"

def test_first_allocation():
    """Test that the first peer receives 10.0.0.2."""
    assert allocate(ConfigDocument()) == "10.0.0.2"
    assert allocate(make_doc()) == "10.0.0.2"

def test_monotonic_allocation():
    """Test that allocation advances past the highest address."""
    doc = make_doc("10.0.0.2/32", "10.0.0.5/32", "10.0.0.3/32")
    assert allocate(doc) == "10.0.0.6"

def test_gaps_not_filled():
    """Test that a freed address below the maximum is not reused."""
    doc = make_doc("10.0.0.2/32", "10.0.0.4/32")
    assert allocate(doc) == "10.0.0.5"

def test_freed_top_address_reused():
    """Test that removing the highest peer lowers the next address."""
    doc = make_doc("10.0.0.2/32", "10.0.0.3/32", "10.0.0.4/32")
    del doc.peers[2]
    assert allocate(doc) == "10.0.0.4"

def test_non_host_prefix_ignored():
    """Test that tokens without a /32 prefix do not count."""
    doc = make_doc("10.0.0.2/32", "10.0.0.9/24", "10.0.0.8")
    assert allocate(doc) == "10.0.0.3"

def test_multiple_tokens_and_ipv6():
    """Test comma-separated AllowedIPs with IPv6 and malformed tokens."""
    doc = make_doc("10.0.0.7/32, fd00::7/128", "bogus/32, 10.0.0.x/32")
    assert allocate(doc) == "10.0.0.8"

def test_peers_without_host_address():
    """Test that peers lacking a /32 still get the address after the server."""
    doc = make_doc("0.0.0.0/0", "")
    assert allocate(doc) == "10.0.0.2"

def test_addresses_below_server_ignored():
    """Test that the server address is the floor of the scan."""
    doc = make_doc("10.0.0.0/32")
    assert allocate(doc) == "10.0.0.2"

def test_pool_exhausted_at_broadcast():
    """Test that the broadcast address is never handed out."""
    doc = make_doc("10.0.0.254/32")
    with pytest.raises(AllocationExhausted):
        allocate(doc)

def test_routed_host_outside_network_ignored():
    """Test that a /32 routed to a site peer does not block the pool."""
    doc = make_doc("10.0.0.2/32", "192.168.1.5/32")
    assert allocate(doc) == "10.0.0.3"
    doc = make_doc("10.0.5.3/32")
    assert allocate(doc) == "10.0.0.2"

def test_no_wrap_past_top_of_address_space():
    """Test that 255.255.255.255 is not silently wrapped to 0.0.0.0."""
    allocator = AddressAllocator(network="0.0.0.0/0", server_address="10.0.0.1")
    doc = make_doc("255.255.255.254/32")
    with pytest.raises(AllocationExhausted):
        allocator.allocate(doc)

def test_custom_network():
    """Test allocation in a differently configured pool."""
    allocator = AddressAllocator(network="10.8.0.0/24", server_address="10.8.0.1")
    assert allocator.allocate(ConfigDocument()) == "10.8.0.2"
    assert allocator.allocate(make_doc("10.8.0.9/32")) == "10.8.0.10"

def test_allocated_address_is_unique():
    """Test that the result never collides with an existing /32."""
    doc = make_doc("10.0.0.2/32", "10.0.0.3/32")
    for i in range(20):
        ip = allocate(doc)
        taken = {tok for p in doc.peers for tok in p.allowed_ips}
        assert f"{ip}/32" not in taken
        doc.peers.append(PeerEntry({"PublicKey": f"new{i}", "AllowedIPs": f"{ip}/32"}))

if __name__ == '__main__':
    pytest.main([__file__])
