"""Wait until every authoritative nameserver serves the challenge TXT value."""

import random
import time
from collections.abc import Callable

from dnscert._logging import Timer, get_logger
from dnscert.resolver import DnsResolver

logger = get_logger(__name__)


class PropagationChecker:
    """Poll the authoritative nameservers of a zone for a TXT value.

    The check is advisory: a False result only means the nameservers
    did not agree within the allowed rounds. Nothing is raised.

    Args:
        resolver: DNS resolver used for every lookup.
        max_rounds: Maximum number of polling rounds (default: 180).
        round_delay: Seconds to wait before each round (default: 60).
        sleep: Sleep function, replaceable in tests.
        shuffle: In-place list shuffle, replaceable in tests.
    """

    MAX_ROUNDS = 180
    ROUND_DELAY = 60

    def __init__(
        self,
        resolver: DnsResolver,
        max_rounds: int = MAX_ROUNDS,
        round_delay: float = ROUND_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        shuffle: Callable[[list[str]], None] = random.shuffle,
    ):
        self.resolver = resolver
        self.max_rounds = max_rounds
        self.round_delay = round_delay
        self._sleep = sleep
        self._shuffle = shuffle

    def validate(self, domain: str, expected_txt: str) -> bool:
        """Check that all nameservers of ``domain`` serve ``expected_txt``.

        Follows a CNAME on ``domain`` first, then asks the nameservers of
        the zone apex once per round until they all agree or the rounds
        run out.

        Args:
            domain: Name holding the TXT record (``_acme-challenge...``).
            expected_txt: TXT value the servers must return.

        Returns:
            True if every nameserver returned exactly the expected value.
        """
        target = self.resolver.resolve_cname(domain)
        apex = self.resolver.zone_apex(target)
        if apex is None:
            logger.warning("No zone apex found, skipping propagation check", extra={"query": target})
            return False

        nameservers = self.resolver.get_name_servers(apex)
        if not nameservers:
            logger.warning("No nameservers found, skipping propagation check", extra={"apex": apex})
            return False

        in_sync = False
        rounds = 0
        with Timer() as timer:
            while not in_sync and rounds < self.max_rounds:
                self._shuffle(nameservers)
                self._sleep(self.round_delay)
                rounds += 1
                logger.info("Propagation check round", extra={"round": rounds})
                in_sync = self.nameservers_in_sync(nameservers, target, expected_txt)

        extra = {"query": target, "rounds": rounds, "elapsed_ms": timer.elapsed_ms}
        if in_sync:
            logger.info("All nameservers serve the TXT record", extra=extra)
        else:
            logger.warning("Nameservers did not agree on the TXT record", extra=extra)
        return in_sync

    def nameservers_in_sync(self, nameservers: list[str], domain: str, expected_txt: str) -> bool:
        """Whether every nameserver returns exactly ``[expected_txt]``.

        A missing record or any extra value is a mismatch, even if the
        expected value is among them. Stops at the first mismatch.
        """
        for nameserver in nameservers:
            actual = self.resolver.get_txt(domain, nameserver=nameserver)
            logger.debug(
                "TXT from nameserver",
                extra={"query": domain, "nameserver": nameserver, "txt": actual},
            )
            if actual != [expected_txt]:
                return False
        return True
