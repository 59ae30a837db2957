"""DNS lookups used to locate zone apexes and verify TXT records."""

import dns.exception
import dns.inet
import dns.rdatatype
import dns.resolver

from dnscert._logging import get_logger

logger = get_logger(__name__)


def strip_quotes(value: str) -> str:
    """Remove one pair of surrounding double quotes, if present."""
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


class DnsResolver:
    """Query TXT, NS, SOA and CNAME records with dnspython.

    Lookups go to the system resolver unless an explicit nameserver is
    given, in which case the nameserver's addresses are resolved first
    and queried directly. A failed lookup returns an empty list.

    Args:
        resolver: dnspython resolver for system lookups (default: one
            configured from the host's resolv.conf).
        timeout: Lifetime of a single query, in seconds.
    """

    def __init__(self, resolver: dns.resolver.Resolver | None = None, timeout: float = 10.0):
        self._resolver = resolver or dns.resolver.Resolver()
        self._resolver.lifetime = timeout
        self.timeout = timeout

    def lookup(self, domain: str, rdtype: str, nameserver: str | None = None) -> list[str]:
        """Return the records of type ``rdtype`` for ``domain``.

        Args:
            domain: Name to query.
            rdtype: Record type (``TXT``, ``NS``, ``SOA``, ``CNAME``...).
            nameserver: Hostname or address of the server to ask; the
                system resolver is used when omitted.

        Returns:
            Record values as text, trailing dots removed. Empty on failure.
        """
        try:
            resolver = self._resolver if nameserver is None else self._direct_resolver(nameserver)
            answer = resolver.resolve(domain, rdtype)
        except dns.exception.DNSException as e:
            logger.debug(
                "DNS lookup failed",
                extra={"query": domain, "rdtype": rdtype, "nameserver": nameserver, "error": str(e)},
            )
            return []

        return [self._rdata_to_text(rdata) for rdata in answer]

    def _direct_resolver(self, nameserver: str) -> dns.resolver.Resolver:
        """Build a resolver that only asks ``nameserver``.

        Raises:
            dns.exception.DNSException: If the nameserver has no address.
        """
        if dns.inet.is_address(nameserver):
            addresses = [nameserver]
        else:
            addresses = []
            for rdtype in ("A", "AAAA"):
                try:
                    addresses.extend(rdata.address for rdata in self._resolver.resolve(nameserver, rdtype))
                except dns.exception.DNSException:
                    continue
            if not addresses:
                raise dns.exception.DNSException(f"No address found for nameserver {nameserver}")

        resolver = dns.resolver.Resolver(configure=False)
        resolver.nameservers = addresses
        resolver.lifetime = self.timeout
        return resolver

    @staticmethod
    def _rdata_to_text(rdata) -> str:
        if rdata.rdtype == dns.rdatatype.TXT:
            return strip_quotes(b"".join(rdata.strings).decode("utf-8"))
        if rdata.rdtype in (dns.rdatatype.NS, dns.rdatatype.CNAME):
            return rdata.target.to_text().rstrip(".")
        return rdata.to_text()

    def get_txt(self, domain: str, nameserver: str | None = None) -> list[str]:
        return self.lookup(domain, "TXT", nameserver)

    def get_name_servers(self, domain: str, nameserver: str | None = None) -> list[str]:
        return self.lookup(domain, "NS", nameserver)

    def get_soa(self, domain: str, nameserver: str | None = None) -> list[str]:
        return self.lookup(domain, "SOA", nameserver)

    def get_cname(self, domain: str, nameserver: str | None = None) -> list[str]:
        logger.debug("Looking up CNAME", extra={"query": domain})
        return self.lookup(domain, "CNAME", nameserver)

    @staticmethod
    def domain_hierarchy(domain: str) -> list[str]:
        """List ``domain`` and its ancestors down to the registrable pair.

        ``_acme-challenge.sub.example.com`` yields
        ``["_acme-challenge.sub.example.com", "sub.example.com", "example.com"]``.
        The top-level domain on its own is never included.
        """
        if not domain:
            logger.warning("Domain must not be empty")
            return []
        if domain.startswith(".") or domain.endswith("."):
            logger.warning("Domain must not start or end with '.'", extra={"query": domain})
            return []

        hierarchy = [domain]
        labels = domain.split(".")
        while len(labels) > 2:
            labels = labels[1:]
            hierarchy.append(".".join(labels))
        return hierarchy

    def zone_apex(self, domain: str) -> str | None:
        """Find the zone apex for ``domain``.

        The apex is the most specific name in the hierarchy that has an
        SOA record and at least one NS record.

        Returns:
            The apex name, or None when no level qualifies.
        """
        hierarchy = self.domain_hierarchy(domain)
        logger.debug("Searching SOA and NS records", extra={"hierarchy": hierarchy})

        for candidate in hierarchy:
            if self.get_soa(candidate) and self.get_name_servers(candidate):
                logger.info("Found zone apex", extra={"query": domain, "apex": candidate})
                return candidate
        return None

    def resolve_cname(self, domain: str) -> str:
        """Return the CNAME target of ``domain``, or ``domain`` itself."""
        cname = self.get_cname(domain)
        if cname:
            logger.info("CNAME found", extra={"query": domain, "target": cname[0]})
            return cname[0]
        return domain

    def cname_zone_apex(self, domain: str) -> str | None:
        """Zone apex of the CNAME target of ``domain`` (or of ``domain``)."""
        return self.zone_apex(self.resolve_cname(domain))
