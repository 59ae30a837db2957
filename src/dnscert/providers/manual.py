"""Manual DNS provider: the operator publishes the record by hand."""

import sys
from collections.abc import Mapping
from typing import Any, TextIO

from dnscert.providers.base import DnsProvider
from dnscert.resolver import DnsResolver


class ManualProvider(DnsProvider):
    """Default provider that only tells the operator what to publish.

    It never creates a record itself, so both methods report False and
    the issuance flow waits for the operator to confirm.

    Args:
        out: Stream the instructions are written to.
    """

    name = "manual"

    def __init__(self, out: TextIO | None = None):
        self.out = out or sys.stdout

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any], resolver: DnsResolver) -> "ManualProvider":
        return cls()

    def add_txt_record(self, fqdn: str, value: str) -> bool:
        print("Please update your DNS records with the following data:", file=self.out)
        print(f"\tDOMAIN: {fqdn}", file=self.out)
        print(f"\tTXT record: {value}\n", file=self.out)
        return False

    def delete_txt_record(self) -> bool:
        print("Nothing to clean up!", file=self.out)
        return False
