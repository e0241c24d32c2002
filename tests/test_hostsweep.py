"""
Unit tests for HostSweep parsing, classification and configuration.
Run with: pytest tests/ -v
"""
import pytest
from pydantic import ValidationError

from hostsweep.analyzer import BannerAnalyzer
from hostsweep.config import MAX_HOSTS, MAX_PORTS, ScanConfig, enforce_ceiling
from hostsweep.errors import CardinalityExceededError, InvalidFormatError, NoValidPortsError
from hostsweep.models import HostResult, PortResult
from hostsweep.services import PortCategory, category, is_risky_port, lookup
from hostsweep.targets import (
    enumerate_addresses,
    int_to_ip,
    ip_class,
    ip_to_int,
    is_loopback_ip,
    is_private_ip,
    mask_to_prefix,
    parse_target,
    prefix_to_mask,
    sort_addresses,
    subnet_info,
)
from hostsweep.utils import DEFAULT_PORTS, chunked, parse_ports


class TestTargetParser:
    """Test target specification parsing"""

    def test_cidr_24(self):
        """Test /24 excludes network and broadcast"""
        interval = parse_target("192.168.1.0/24")
        assert interval.start_ip == "192.168.1.1"
        assert interval.end_ip == "192.168.1.254"
        assert interval.total_hosts == 254

    def test_cidr_host_bits_masked(self):
        """Test host bits in the network part are ignored"""
        interval = parse_target("10.0.0.77/28")
        assert interval.start_ip == "10.0.0.65"
        assert interval.end_ip == "10.0.0.78"
        assert interval.total_hosts == 14

    @pytest.mark.parametrize("text", ["192.168.1.0/24", "10.1.2.0/27", "172.16.5.128/25", "10.9.9.4/30"])
    def test_cidr_enumeration_matches_count(self, text):
        """Test enumeration size and that network/broadcast are never produced"""
        interval = parse_target(text)
        addresses = enumerate_addresses(interval)
        network = int_to_ip(interval.start - 1)
        broadcast = int_to_ip(interval.end + 1)
        assert len(addresses) == interval.total_hosts
        assert network not in addresses
        assert broadcast not in addresses

    def test_cidr_31_and_32_are_empty(self):
        """Test tiny blocks clamp to zero usable hosts"""
        for text in ("192.168.1.5/32", "192.168.1.4/31"):
            interval = parse_target(text)
            assert interval.total_hosts == 0
            assert enumerate_addresses(interval) == []

    def test_cidr_30(self):
        interval = parse_target("192.168.1.4/30")
        assert enumerate_addresses(interval) == ["192.168.1.5", "192.168.1.6"]

    def test_range_inclusive(self):
        """Test dash range includes both endpoints"""
        interval = parse_target("10.0.0.250-10.0.1.5")
        addresses = enumerate_addresses(interval)
        assert interval.total_hosts == ip_to_int("10.0.1.5") - ip_to_int("10.0.0.250") + 1
        assert addresses[0] == "10.0.0.250"
        assert addresses[-1] == "10.0.1.5"
        assert len(addresses) == 12

    def test_range_with_spaces(self):
        interval = parse_target(" 10.0.0.1 - 10.0.0.3 ")
        assert interval.label == "10.0.0.1-10.0.0.3"
        assert interval.total_hosts == 3

    def test_single_ip(self):
        interval = parse_target("8.8.8.8")
        assert interval.total_hosts == 1
        assert enumerate_addresses(interval) == ["8.8.8.8"]

    def test_enumeration_ascending(self):
        addresses = enumerate_addresses(parse_target("192.168.0.250-192.168.1.3"))
        assert addresses == sort_addresses(addresses)

    @pytest.mark.parametrize("text", [
        "",
        "not-an-ip",
        "256.1.1.1",
        "192.168.1",
        "192.168.1.0/33",
        "192.168.1.0/-1",
        "192.168.1.0/abc",
        "10.0.0.9-10.0.0.1",
        "10.0.0.1-10.0.0.2-10.0.0.3",
        "10.0.0.1-foo",
        "10.0.0.0/²",
        "10.0.0.0/٢٤",
    ])
    def test_invalid_formats(self, text):
        """Test malformed targets are rejected"""
        with pytest.raises(InvalidFormatError):
            parse_target(text)

    def test_interval_is_immutable(self):
        interval = parse_target("10.0.0.1")
        with pytest.raises(Exception):
            interval.start = 5


class TestAddressHelpers:
    """Test IPv4 helper functions"""

    def test_int_round_trip_boundaries(self):
        assert ip_to_int("0.0.0.0") == 0
        assert ip_to_int("255.255.255.255") == 0xFFFFFFFF
        assert int_to_ip(0xC0A80101) == "192.168.1.1"

    def test_masks(self):
        assert int_to_ip(prefix_to_mask(24)) == "255.255.255.0"
        assert prefix_to_mask(0) == 0
        assert mask_to_prefix("255.255.240.0") == 20
        with pytest.raises(InvalidFormatError):
            prefix_to_mask(33)

    def test_private_ranges(self):
        assert is_private_ip("10.1.2.3")
        assert is_private_ip("172.31.255.255")
        assert not is_private_ip("172.32.0.1")
        assert is_private_ip("192.168.0.1")
        assert not is_private_ip("8.8.8.8")

    def test_loopback(self):
        assert is_loopback_ip("127.0.0.1")
        assert is_loopback_ip("localhost")
        assert not is_loopback_ip("10.0.0.1")

    def test_ip_class(self):
        assert ip_class("10.0.0.1") == "A"
        assert ip_class("172.16.0.1") == "B"
        assert ip_class("192.168.0.1") == "C"
        assert ip_class("224.0.0.1") == "D"
        assert ip_class("250.0.0.1") == "E"
        assert ip_class("127.0.0.1") == "Invalid"
        assert ip_class("bogus") == "Invalid"

    def test_sort_numeric(self):
        assert sort_addresses(["10.0.0.10", "10.0.0.9", "9.255.255.255"]) == [
            "9.255.255.255", "10.0.0.9", "10.0.0.10"]

    def test_subnet_info(self):
        info = subnet_info("192.168.1.77", "255.255.255.0")
        assert info["network_address"] == "192.168.1.0"
        assert info["broadcast_address"] == "192.168.1.255"
        assert info["prefix"] == 24
        assert info["cidr"] == "192.168.1.0/24"
        assert info["first_host"] == "192.168.1.1"
        assert info["last_host"] == "192.168.1.254"
        assert info["total_hosts"] == 254


class TestPortParser:
    """Test port parsing utility"""

    def test_parse_common(self):
        """Test symbolic default set, case-insensitive"""
        assert parse_ports(" COMMON ") == DEFAULT_PORTS
        assert 3389 in parse_ports("common")

    def test_parse_single_port(self):
        assert parse_ports("80") == [80]

    def test_parse_list_dedup_sorted(self):
        """Test comma list is deduplicated and ascending"""
        assert parse_ports("22,80,80,443") == [22, 80, 443]
        assert parse_ports("443, 22 ,80") == [22, 80, 443]

    def test_parse_range(self):
        assert parse_ports("20-25") == [20, 21, 22, 23, 24, 25]

    def test_parse_list_drops_invalid(self):
        """Test invalid tokens are dropped from a list"""
        assert parse_ports("abc,80,xyz") == [80]
        assert parse_ports("80,99999,0,22") == [22, 80]
        assert parse_ports("80,²") == [80]
        assert parse_ports("443,٨٠") == [443]

    def test_parse_list_nothing_valid(self):
        with pytest.raises(NoValidPortsError):
            parse_ports("abc,xyz")

    @pytest.mark.parametrize("text", ["70000", "0", "0-70000", "100-50", "a-b", "1-2-3", "", "http", "²", "1-²"])
    def test_invalid_formats(self, text):
        with pytest.raises(InvalidFormatError):
            parse_ports(text)

    def test_chunked(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
        assert list(chunked([], 3)) == []


class TestServiceClassifier:
    """Test static port knowledge"""

    def test_lookup(self):
        assert lookup(22) == "SSH"
        assert lookup(3306) == "MySQL"
        assert lookup(31337) is None

    def test_default_ports_have_names(self):
        assert all(lookup(p) for p in DEFAULT_PORTS)

    def test_risky_ports(self):
        assert is_risky_port(23)
        assert is_risky_port(445)
        assert not is_risky_port(443)

    def test_categories(self):
        assert category(1) == PortCategory.WELL_KNOWN
        assert category(1023) == PortCategory.WELL_KNOWN
        assert category(1024) == PortCategory.REGISTERED
        assert category(49151) == PortCategory.REGISTERED
        assert category(49152) == PortCategory.DYNAMIC
        assert category(65535) == PortCategory.DYNAMIC


class TestBannerAnalyzer:
    """Test probe selection and protocol identification"""

    def test_http_probe(self):
        assert BannerAnalyzer.get_probe(80) == b"GET / HTTP/1.0\r\n\r\n"
        assert BannerAnalyzer.get_probe(8080).startswith(b"GET /")

    def test_smtp_probe(self):
        assert BannerAnalyzer.get_probe(25).startswith(b"EHLO")

    def test_line_protocol_probe(self):
        """Test SSH, FTP and unknown ports get a bare CRLF"""
        assert BannerAnalyzer.get_probe(22) == b"\r\n"
        assert BannerAnalyzer.get_probe(21) == b"\r\n"
        assert BannerAnalyzer.get_probe(40000) == b"\r\n"

    def test_identify(self):
        assert BannerAnalyzer.identify("SSH-2.0-OpenSSH_8.9p1 Ubuntu") == "SSH"
        assert BannerAnalyzer.identify("HTTP/1.1 200 OK\r\nServer: nginx") == "HTTP"
        assert BannerAnalyzer.identify("+OK POP3 ready") == "POP3"
        assert BannerAnalyzer.identify("RFB 003.008") == "VNC"
        assert BannerAnalyzer.identify("Random junk data") is None
        assert BannerAnalyzer.identify(None) is None


class TestModels:
    """Test result records"""

    def test_port_result_properties(self):
        result = PortResult(port=3389, is_open=True, service_name="RDP", latency_ms=3)
        assert result.is_risky
        assert result.category == PortCategory.REGISTERED
        data = result.to_dict()
        assert data["category"] == "registered"
        assert data["banner"] is None

    def test_host_result_to_dict(self):
        assert HostResult(address="10.0.0.1", is_reachable=False).to_dict() == {
            "address": "10.0.0.1",
            "is_reachable": False,
            "latency_ms": None,
            "observed_at": None,
            "hostname": None,
        }


class TestScanConfig:
    """Test Pydantic configuration validation"""

    def test_valid_config(self):
        config = ScanConfig(target="192.168.1.0/30", ports=[443, 80, 80])
        assert config.ports == [80, 443]
        assert config.addresses == ["192.168.1.1", "192.168.1.2"]
        assert config.timeout_ms == 3000
        assert config.concurrency == 50

    def test_invalid_target(self):
        with pytest.raises(ValidationError):
            ScanConfig(target="300.1.1.1", ports=[80])

    def test_empty_target_block(self):
        with pytest.raises(ValidationError):
            ScanConfig(target="10.0.0.1/32", ports=[80])

    def test_too_many_hosts(self):
        """Test /22 (1022 hosts) is over the ceiling"""
        with pytest.raises(ValidationError) as exc:
            ScanConfig(target="10.0.0.0/22", ports=[80])
        assert "Too many hosts" in str(exc.value)

    def test_host_ceiling_boundary(self):
        config = ScanConfig(target="10.0.0.1-10.0.3.232", ports=[80])
        assert len(config.addresses) == MAX_HOSTS

    def test_too_many_ports(self):
        with pytest.raises(ValidationError) as exc:
            ScanConfig(target="10.0.0.1", ports=parse_ports("1-1001"))
        assert "Too many ports" in str(exc.value)

    def test_port_ceiling_boundary(self):
        config = ScanConfig(target="10.0.0.1", ports=parse_ports("1-1000"))
        assert len(config.ports) == MAX_PORTS

    def test_empty_ports(self):
        with pytest.raises(ValidationError):
            ScanConfig(target="10.0.0.1", ports=[])

    def test_invalid_timeout(self):
        with pytest.raises(ValidationError):
            ScanConfig(target="10.0.0.1", ports=[80], timeout_ms=0)

    def test_invalid_concurrency(self):
        with pytest.raises(ValidationError):
            ScanConfig(target="10.0.0.1", ports=[80], concurrency=0)

    def test_enforce_ceiling(self):
        assert enforce_ceiling(1000, 1000, "hosts") == 1000
        with pytest.raises(CardinalityExceededError) as exc:
            enforce_ceiling(1001, 1000, "hosts")
        assert exc.value.count == 1001
        assert exc.value.limit == 1000
