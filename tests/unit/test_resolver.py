"""Unit tests for the DNS resolution engine."""

import logging
from unittest.mock import MagicMock, patch

import dns.rdata
import dns.resolver
import pytest

from dnscert.resolver import DnsResolver, strip_quotes


def rdata(rdtype: str, text: str):
    return dns.rdata.from_text("IN", rdtype, text)


@pytest.fixture
def system_resolver() -> MagicMock:
    return MagicMock(spec=dns.resolver.Resolver)


@pytest.fixture
def resolver(system_resolver) -> DnsResolver:
    return DnsResolver(resolver=system_resolver)


def fake_zone(records: dict[tuple[str, str], list[str]]):
    """lookup() replacement serving ``{(domain, rdtype): values}``."""

    def lookup(domain, rdtype, nameserver=None):
        return records.get((domain, rdtype), [])

    return lookup


class TestStripQuotes:
    def test_strips_surrounding_quotes(self):
        assert strip_quotes('"abc"') == "abc"

    def test_leaves_unquoted_values(self):
        assert strip_quotes("abc") == "abc"
        assert strip_quotes('"') == '"'


class TestDomainHierarchy:
    """Tests for DnsResolver.domain_hierarchy."""

    def test_stops_at_two_labels(self):
        assert DnsResolver.domain_hierarchy("_acme-challenge.sub.example.com") == [
            "_acme-challenge.sub.example.com",
            "sub.example.com",
            "example.com",
        ]

    def test_two_label_domain(self):
        assert DnsResolver.domain_hierarchy("example.com") == ["example.com"]

    def test_empty_domain(self, log_capture):
        assert DnsResolver.domain_hierarchy("") == []
        assert log_capture.get_records(logging.WARNING)

    def test_trailing_dot(self):
        assert DnsResolver.domain_hierarchy("example.com.") == []

    def test_leading_dot(self):
        assert DnsResolver.domain_hierarchy(".example.com") == []


class TestLookup:
    """Tests for record lookups."""

    def test_txt_quotes_removed(self, resolver, system_resolver):
        system_resolver.resolve.return_value = [rdata("TXT", '"token-value"')]

        assert resolver.get_txt("_acme-challenge.example.com") == ["token-value"]
        system_resolver.resolve.assert_called_once_with("_acme-challenge.example.com", "TXT")

    def test_ns_trailing_dot_removed(self, resolver, system_resolver):
        system_resolver.resolve.return_value = [
            rdata("NS", "ns1.example.com."),
            rdata("NS", "ns2.example.com."),
        ]

        assert resolver.get_name_servers("example.com") == ["ns1.example.com", "ns2.example.com"]

    def test_cname_target(self, resolver, system_resolver):
        system_resolver.resolve.return_value = [rdata("CNAME", "challenges.example.net.")]

        assert resolver.get_cname("_acme-challenge.example.com") == ["challenges.example.net"]

    def test_dns_failure_returns_empty(self, resolver, system_resolver):
        system_resolver.resolve.side_effect = dns.resolver.NXDOMAIN()

        assert resolver.get_soa("missing.example.com") == []

    def test_explicit_nameserver_is_resolved(self, resolver, system_resolver):
        """A nameserver hostname is resolved and queried directly."""

        def resolve(name, rdtype):
            if rdtype == "A":
                return [rdata("A", "192.0.2.53")]
            raise dns.resolver.NoAnswer()

        system_resolver.resolve.side_effect = resolve

        with patch("dns.resolver.Resolver") as resolver_cls:
            direct = resolver_cls.return_value
            direct.resolve.return_value = [rdata("TXT", '"abc"')]

            assert resolver.get_txt("_acme-challenge.example.com", nameserver="ns1.example.com") == ["abc"]

        resolver_cls.assert_called_once_with(configure=False)
        assert direct.nameservers == ["192.0.2.53"]

    def test_unresolvable_nameserver(self, resolver, system_resolver):
        system_resolver.resolve.side_effect = dns.resolver.NXDOMAIN()

        assert resolver.get_txt("_acme-challenge.example.com", nameserver="ns.invalid") == []


class TestZoneApex:
    """Tests for zone apex detection."""

    def test_most_specific_apex(self, resolver):
        """The deepest level with SOA and NS wins."""
        records = {
            ("sub.example.com", "SOA"): ["ns1.sub.example.com. admin. 1 2 3 4 5"],
            ("sub.example.com", "NS"): ["ns1.sub.example.com"],
            ("example.com", "SOA"): ["ns1.example.com. admin. 1 2 3 4 5"],
            ("example.com", "NS"): ["ns1.example.com"],
        }
        with patch.object(resolver, "lookup", side_effect=fake_zone(records)):
            assert resolver.zone_apex("_acme-challenge.sub.example.com") == "sub.example.com"

    def test_soa_without_ns_is_skipped(self, resolver):
        records = {
            ("sub.example.com", "SOA"): ["soa"],
            ("example.com", "SOA"): ["soa"],
            ("example.com", "NS"): ["ns1.example.com"],
        }
        with patch.object(resolver, "lookup", side_effect=fake_zone(records)):
            assert resolver.zone_apex("_acme-challenge.sub.example.com") == "example.com"

    def test_no_apex(self, resolver):
        with patch.object(resolver, "lookup", side_effect=fake_zone({})):
            assert resolver.zone_apex("_acme-challenge.example.com") is None

    def test_cname_zone_apex(self, resolver):
        """The apex is looked up for the CNAME target."""
        records = {
            ("_acme-challenge.example.com", "CNAME"): ["_acme-challenge.example.net"],
            ("example.net", "SOA"): ["soa"],
            ("example.net", "NS"): ["ns1.example.net"],
        }
        with patch.object(resolver, "lookup", side_effect=fake_zone(records)):
            assert resolver.resolve_cname("_acme-challenge.example.com") == "_acme-challenge.example.net"
            assert resolver.cname_zone_apex("_acme-challenge.example.com") == "example.net"

    def test_resolve_cname_without_cname(self, resolver):
        with patch.object(resolver, "lookup", side_effect=fake_zone({})):
            assert resolver.resolve_cname("_acme-challenge.example.com") == "_acme-challenge.example.com"
