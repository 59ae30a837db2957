"""DNS-01 authorization of an order and the end-to-end issuance flow."""

from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any

from cryptography.hazmat.primitives.asymmetric import rsa

from dnscert._logging import Timer, get_domain_extra, get_logger, reset_domain, set_domain
from dnscert.challenges.dns01 import challenge_fqdn
from dnscert.client import AcmeClient
from dnscert.config import load_provider_properties
from dnscert.crypto import create_csr
from dnscert.exceptions import CertClientError, ConfigurationError, DnsProviderError
from dnscert.models import AccountIdentity, DomainsIdentity, Order
from dnscert.propagation import PropagationChecker
from dnscert.providers import DEFAULT_PROVIDER, DnsProvider, ProviderRegistry
from dnscert.resolver import DnsResolver
from dnscert.session import Session
from dnscert.storage import FileStorage

logger = get_logger(__name__)

CONFIRM_PROMPT = "Press ENTER to continue ..."


class AuthorizationState(StrEnum):
    """Steps an authorization goes through, in order."""

    FETCHED = "fetched"
    PROVIDER_RESOLVED = "provider_resolved"
    RECORD_PUBLISHED = "record_published"
    CONFIRMED = "confirmed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    NOTIFIED = "notified"
    POLLED = "polled"
    RECORD_RETRACTED = "record_retracted"


def wait_for_enter(fqdn: str, txt: str) -> None:
    """Block until the operator presses ENTER."""
    print(CONFIRM_PROMPT)
    try:
        input()
    except EOFError:
        logger.warning("Exception while pausing", extra={"record_name": fqdn})


class ChallengeOrchestrator:
    """Resolve the DNS-01 challenge of one authorization at a time.

    Publishes the TXT record through the configured provider, makes
    sure it is visible (propagation check in auto mode, operator
    confirmation otherwise), then notifies the server and polls the
    challenge. A record that was published is always retracted.

    Args:
        acme: Bootstrapped ACME client.
        session: Session of the run (provider name, auto mode).
        registry: Provider registry (default: built-in providers).
        resolver: DNS resolver handed to providers and the checker.
        propagation_checker: Checker used in auto mode.
        properties_loader: Callable loading provider properties by name.
        confirm: Callable invoked with ``(fqdn, txt)`` when the operator
            has to confirm the record is in place.
    """

    def __init__(
        self,
        acme: AcmeClient,
        session: Session,
        registry: ProviderRegistry | None = None,
        resolver: DnsResolver | None = None,
        propagation_checker: PropagationChecker | None = None,
        properties_loader: Callable[[str], Mapping[str, Any]] = load_provider_properties,
        confirm: Callable[[str, str], None] = wait_for_enter,
    ):
        self.acme = acme
        self.session = session
        self.registry = registry or ProviderRegistry.default()
        self.resolver = resolver or DnsResolver()
        self.propagation_checker = propagation_checker or PropagationChecker(self.resolver)
        self.properties_loader = properties_loader
        self.confirm = confirm

        self.state: AuthorizationState | None = None
        self.history: list[AuthorizationState] = []

    def _enter(self, state: AuthorizationState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("Authorization state", extra={"state": state.value, **get_domain_extra()})

    def provider_name(self) -> str:
        """Configured provider name, or the default provider."""
        name = self.session.provider
        if name:
            return self.registry.validate_name(name)
        return DEFAULT_PROVIDER

    def build_provider(self, name: str) -> DnsProvider:
        """Create the provider with the properties stored for it."""
        properties: Mapping[str, Any] = {}
        if name != DEFAULT_PROVIDER:
            try:
                properties = self.properties_loader(name)
            except ConfigurationError as e:
                logger.error("Could not load configuration properties", extra={"error": str(e)})
        return self.registry.create(name, properties, self.resolver)

    def authorize(self, url: str) -> bool:
        """Resolve the challenge of the authorization at ``url``.

        Returns:
            Result of the challenge poll: True if the challenge became
            valid, False if the poll ran out of retries.

        Raises:
            CertClientError: If any step fails. The record is retracted first.
        """
        self.state = None
        self.history = []

        authorization = self.acme.get_authorization(url)
        identifier = authorization.identifier.value
        token = set_domain(identifier)
        try:
            logger.info("Authorizing identifier", extra=get_domain_extra())
            self._enter(AuthorizationState.FETCHED)

            fqdn = challenge_fqdn(identifier)
            challenge = self.acme.get_challenge(authorization)
            txt = self.acme.get_challenge_key_authorization(challenge.token or "")

            name = self.provider_name()
            provider = self.build_provider(name)
            self._enter(AuthorizationState.PROVIDER_RESOLVED)

            published = provider.add_txt_record(fqdn, txt)
            self._enter(AuthorizationState.RECORD_PUBLISHED)

            try:
                # Auto mode needs a real provider that published the record
                if published and name != DEFAULT_PROVIDER and self.session.auto_mode:
                    self.propagation_checker.validate(fqdn, txt)
                    self._enter(AuthorizationState.CONFIRMED)
                else:
                    self._enter(AuthorizationState.AWAITING_CONFIRMATION)
                    self.confirm(fqdn, txt)

                self.acme.notify_challenge_completed(challenge.url)
                self._enter(AuthorizationState.NOTIFIED)

                with Timer() as timer:
                    valid = self.acme.poll_challenge_status(challenge)
                self._enter(AuthorizationState.POLLED)
                logger.info(
                    "Challenge polled",
                    extra={"valid": valid, "elapsed_ms": timer.elapsed_ms, **get_domain_extra()},
                )
                return valid
            except CertClientError:
                logger.exception("Authorization failed", extra=get_domain_extra())
                raise
            finally:
                if published:
                    self._retract(provider)
        finally:
            reset_domain(token)

    def _retract(self, provider: DnsProvider) -> None:
        try:
            provider.delete_txt_record()
        except DnsProviderError as e:
            logger.warning("Could not delete TXT record", extra={"error": str(e), **get_domain_extra()})
            return
        self._enter(AuthorizationState.RECORD_RETRACTED)


class CertClient:
    """Issue one certificate: account, order, authorizations, download.

    Usage::

        with CertClient.bootstrap(["admin@example.com"], ["example.com"], url) as client:
            client.request_new_certificate()

    Args:
        session: Session of the run.
        acme: Bootstrapped ACME client for the session.
        orchestrator: Challenge orchestrator (default: built from the session).
        storage: Where to persist the results; nothing is written when None.
    """

    def __init__(
        self,
        session: Session,
        acme: AcmeClient,
        orchestrator: ChallengeOrchestrator | None = None,
        storage: FileStorage | None = None,
    ):
        self.session = session
        self.acme = acme
        self.orchestrator = orchestrator or ChallengeOrchestrator(acme, session)
        self.storage = storage

    @classmethod
    def bootstrap(
        cls,
        contacts: list[str],
        domains: list[str],
        directory_url: str,
        provider: str | None = None,
        auto_mode: bool = False,
        account_key: rsa.RSAPrivateKey | None = None,
        storage: FileStorage | None = None,
        **client_kwargs,
    ) -> "CertClient":
        """Generate the keys, open the session and bootstrap the ACME client.

        Args:
            contacts: Account contact emails.
            domains: Certificate domains, the first one is the subject.
            directory_url: ACME directory URL.
            provider: DNS provider name (None for the manual provider).
            auto_mode: Check propagation instead of asking the operator.
            account_key: Existing account key; a new one is generated when None.
            storage: Where to persist the results.
            **client_kwargs: Passed to ``AcmeClient``.
        """
        logger.info("Generating account keys")
        if account_key is None:
            account_identity = AccountIdentity.generate(contacts)
        else:
            account_identity = AccountIdentity.from_key(contacts, account_key)

        logger.info("Generating domain keys")
        domains_identity = DomainsIdentity.generate(domains)

        session = Session(
            account_identity=account_identity,
            domains_identity=domains_identity,
            directory_url=directory_url,
            provider=provider,
            auto_mode=auto_mode,
        )
        acme = AcmeClient.bootstrap(session, **client_kwargs)
        return cls(session, acme, storage=storage)

    def close(self) -> None:
        self.acme.close()

    def __enter__(self) -> "CertClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def request_new_certificate(self) -> bytes:
        """Run the whole issuance flow.

        Returns:
            The PEM certificate chain.
        """
        if self.session.account_identity.external:
            self.acme.return_existing_account()
        else:
            self.acme.create_account()

        order = self.acme.create_order()
        self.authorize_order(order)

        csr = create_csr(self.session.domains_identity.key, self.session.domains_identity.domains)
        self.session.csr = csr

        finalized = self.acme.finalize_order(order, csr)
        self.acme.poll_finalized_order_status(finalized)

        order = self.acme.get_order_from_url(finalized.url or "")
        certificate = self.acme.get_certificate(order)

        if self.storage is not None:
            logger.info("Persisting data")
            self.storage.persist(self.session)
        return certificate

    def authorize_order(self, order: Order) -> None:
        """Resolve every authorization of ``order``, one after the other."""
        for url in order.authorizations:
            logger.info("Resolving challenge", extra={"authorization_url": url})
            self.orchestrator.authorize(url)
