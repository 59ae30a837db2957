"""ACME protocol client (RFC 8555) restricted to DNS-01 issuance."""

import json
import time
from collections.abc import Callable

import httpx
from pydantic import BaseModel

from dnscert._logging import get_logger
from dnscert.challenges.dns01 import compute_dns_txt_value, compute_key_authorization, jwk_thumbprint
from dnscert.crypto import base64url_encode, get_jwk_fields
from dnscert.exceptions import (
    AcmeError,
    CertClientError,
    ChallengeError,
    InvalidStatusError,
    OrderError,
    TransportError,
    UnsupportedOperationError,
)
from dnscert.jws import JwsSigner
from dnscert.models import (
    Account,
    AccountStatus,
    Authorization,
    Challenge,
    ChallengeType,
    Directory,
    IdentifierType,
    JsonWebKey,
    Order,
)
from dnscert.session import Session

logger = get_logger(__name__)

MAX_RETRIES_WARNING = (
    "Max number of retries reached without validation. Consider increasing the number of retries."
)


class AcmeClient:
    """ACME client driving account, order, challenge and certificate calls.

    Every call reads what it needs from the session and writes back what
    it produces (directory, JWK, account key id, certificate). Signed
    requests fetch a new nonce each time.

    Args:
        session: Session of the current issuance run.
        ca_cert: Path to CA certificate file, False to disable verification,
                 or None/True for default verification.
        http: Preconfigured httpx client (overrides ca_cert).
        sleep: Sleep function used between poll rounds.
        poll_delay: Seconds between poll rounds (default: 3).
    """

    POLL_DELAY = 3  # seconds
    POLL_MAX_RETRIES = 20

    def __init__(
        self,
        session: Session,
        ca_cert: str | bool | None = None,
        http: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        poll_delay: float = POLL_DELAY,
    ):
        self.session = session

        if http is None:
            # ca_cert can be: path (str), False (disable), None/True (default)
            verify = True if ca_cert is None else ca_cert
            http = httpx.Client(verify=verify)
        self._http = http

        self._signer = JwsSigner(session, self.get_new_nonce)
        self._sleep = sleep
        self.poll_delay = poll_delay

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()

    def __enter__(self) -> "AcmeClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @classmethod
    def bootstrap(cls, session: Session, **kwargs) -> "AcmeClient":
        """Create a client: compute the account JWK and load the directory.

        Raises:
            UnsupportedOperationError: If the server requires external
                account binding.
        """
        client = cls(session, **kwargs)
        session.jwk = JsonWebKey(**get_jwk_fields(session.account_identity.key))

        try:
            directory = client.get_directory()
            if directory.external_account_required:
                raise UnsupportedOperationError(
                    "External account required but support not implemented"
                )
        except CertClientError:
            client.close()
            raise

        session.directory = directory
        return client

    @property
    def directory(self) -> Directory:
        if self.session.directory is None:
            raise ValueError("Directory not loaded. Call bootstrap() first.")
        return self.session.directory

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _send(self, method: str, url: str | None, **kwargs) -> httpx.Response:
        """Send a request and turn failures into CertClientError."""
        if not url:
            raise ValueError("Invalid URL")

        logger.info("ACME request", extra={"method": method, "url": url})
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise TransportError(f"Invalid response / Connection error: {url}: {e}") from e

        return self._validate_response(response)

    @staticmethod
    def _validate_response(response: httpx.Response) -> httpx.Response:
        """Raise AcmeError for non-success responses.

        The problem document becomes the error when the server sent one;
        otherwise the HTTP status text is used.
        """
        if response.is_success:
            return response

        content_type = response.headers.get("Content-Type", "")
        if "application/problem+json" in content_type:
            try:
                data = response.json()
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict):
                error = AcmeError.from_response(data, response.status_code, headers=response.headers)
                logger.error(
                    "ACME server returned an error",
                    extra={"status_code": response.status_code, "error_type": error.type},
                )
                raise error

        raise AcmeError(
            type="about:blank",
            detail=response.reason_phrase or f"HTTP {response.status_code}",
            status_code=response.status_code,
        )

    def get_new_nonce(self) -> str:
        """Fetch a new replay nonce from the newNonce resource."""
        response = self._send("HEAD", self.directory.new_nonce)
        nonce = response.headers.get("Replay-Nonce")
        if not nonce:
            raise CertClientError("Server did not return a Replay-Nonce header")
        return nonce

    def _post(self, url: str | None, payload: dict | str) -> httpx.Response:
        """Make a JWS-signed POST request.

        Args:
            url: The endpoint URL.
            payload: The request payload (dict for JSON, "" for POST-as-GET).
        """
        if not url:
            raise ValueError("Invalid URL")

        body = "" if payload == "" else json.dumps(payload, separators=(",", ":"))
        jws = self._signer.sign(url, body)

        return self._send(
            "POST",
            url,
            json=jws,
            headers={"Content-Type": "application/jose+json", "Accept": "*/*"},
        )

    def _post_as_get(self, url: str | None) -> httpx.Response:
        return self._post(url, "")

    @staticmethod
    def _validate_status(resource: str, status: str) -> None:
        if status == "invalid":
            raise InvalidStatusError(resource, status)

    # -------------------------------------------------------------------------
    # Directory and account
    # -------------------------------------------------------------------------

    def get_directory(self) -> Directory:
        """Fetch the directory listing the server's resources."""
        response = self._send("GET", self.session.directory_url)
        return Directory.model_validate(response.json())

    def create_account(self) -> Account:
        """Create a new account for the session's account key."""
        logger.info("Creating new account")
        return self._new_account(return_existing=False)

    def return_existing_account(self) -> Account:
        """Look up the existing account of the session's account key."""
        logger.info("Returning existing account")
        return self._new_account(return_existing=True)

    def _new_account(self, return_existing: bool) -> Account:
        payload: dict = {"termsOfServiceAgreed": True}
        if return_existing:
            payload["onlyReturnExisting"] = True
        else:
            payload["contact"] = self.session.account_identity.formatted_contacts

        response = self._post(self.directory.new_account, payload)
        account = Account.model_validate(response.json())

        # The account URL doubles as the key id of later requests
        self.session.account_key_id = response.headers.get("Location")
        if account.status != AccountStatus.VALID:
            raise InvalidStatusError("account", account.status)

        logger.info("Account created or returned", extra={"account_url": self.session.account_key_id})
        return account

    # -------------------------------------------------------------------------
    # Orders, authorizations, challenges
    # -------------------------------------------------------------------------

    def create_order(self) -> Order:
        """Create an order for every domain of the session."""
        logger.info("Creating new order")
        identifiers = [
            {"type": IdentifierType.DNS.value, "value": domain}
            for domain in self.session.domains_identity.domains
        ]

        response = self._post(self.directory.new_order, {"identifiers": identifiers})
        order = Order.model_validate(response.json())
        order.url = response.headers.get("Location")
        self._validate_status("order", order.status)

        logger.info("Order created", extra={"order_url": order.url})
        return order

    def get_order_from_url(self, url: str) -> Order:
        """Fetch an order; its URL is reattached since the body omits it."""
        response = self._post_as_get(url)
        order = Order.model_validate(response.json())
        self._validate_status("order", order.status)
        order.url = url
        return order

    def get_authorization(self, url: str) -> Authorization:
        response = self._post_as_get(url)
        return Authorization.model_validate(response.json())

    def get_challenge(self, authorization: Authorization) -> Challenge:
        """Get the dns-01 challenge of an authorization.

        Raises:
            UnsupportedOperationError: If the authorization has no dns-01
                challenge.
        """
        for challenge in authorization.challenges:
            if challenge.type == ChallengeType.DNS_01:
                return challenge
        raise UnsupportedOperationError("Only DNS validation is supported!")

    def get_challenge_from_url(self, url: str) -> Challenge:
        response = self._post_as_get(url)
        return Challenge.model_validate(response.json())

    def get_challenge_key_authorization(self, token: str) -> str:
        """Compute the TXT value to publish for a challenge token.

        Returns:
            base64url(sha256(token + "." + JWK thumbprint)).
        """
        if self.session.jwk is None:
            raise ValueError("Account JWK not computed. Call bootstrap() first.")

        thumbprint = jwk_thumbprint(self.session.jwk)
        key_authorization = compute_key_authorization(token, thumbprint)
        txt = compute_dns_txt_value(key_authorization)

        logger.debug("Computed key authorization", extra={"key_authorization": key_authorization})
        logger.info("DNS TXT record value", extra={"txt": txt})
        return txt

    def notify_challenge_completed(self, url: str) -> None:
        """Tell the server the challenge is ready for validation."""
        logger.info("Sending challenge completed notification")
        self._post(url, {})

    def poll_challenge_status(self, challenge: Challenge, max_retries: int = POLL_MAX_RETRIES) -> bool:
        """Poll a notified challenge until it is valid.

        Because of the server's retry mechanism a challenge may stay
        ``processing`` while already carrying an error; the error wins.

        Returns:
            True if the challenge became valid, False if the retries ran out.

        Raises:
            ChallengeError: If the challenge reports an error.
        """
        return self._poll(
            lambda: self.get_challenge_from_url(challenge.url),
            max_retries,
            ChallengeError,
            "challenge",
        )

    # -------------------------------------------------------------------------
    # Finalization and certificate
    # -------------------------------------------------------------------------

    def finalize_order(self, order: Order, csr: bytes) -> Order:
        """Finalize an order by submitting the DER-encoded CSR.

        Returns:
            The order as returned by the finalize call.
        """
        logger.info("Finalizing order", extra={"order_url": order.url})
        response = self._post(order.finalize, {"csr": base64url_encode(csr)})
        finalized = Order.model_validate(response.json())
        self._validate_status("order", finalized.status)
        finalized.url = order.url
        return finalized

    def poll_finalized_order_status(self, order: Order, max_retries: int = POLL_MAX_RETRIES) -> bool:
        """Poll a finalized order until it is valid.

        Returns:
            True if the order became valid, False if the retries ran out.

        Raises:
            OrderError: If the order reports an error.
        """
        if order.url is None:
            raise ValueError("Order URL is unknown")
        order_url = order.url
        return self._poll(
            lambda: self.get_order_from_url(order_url),
            max_retries,
            OrderError,
            "order",
        )

    def _poll(
        self,
        fetch: Callable[[], Challenge | Order],
        max_retries: int,
        error_cls: type[AcmeError],
        resource: str,
    ) -> bool:
        """Fetch a resource up to ``max_retries`` times until it is valid.

        Running out of retries is not an error: a warning is logged and
        the caller carries on, the certificate download reports the real
        outcome.
        """
        for attempt in range(1, max_retries + 1):
            current: BaseModel = fetch()
            status = current.status
            logger.info("Polled status", extra={"resource": resource, "round": attempt, "status": status})

            if status == "valid":
                return True

            problem = current.error
            if problem is not None:
                raise error_cls(
                    type=problem.type,
                    detail=problem.detail or str(problem),
                    status_code=problem.status,
                    subproblems=problem.subproblems,
                )
            if status == "invalid":
                raise error_cls(type="about:blank", detail=f"{resource} status is invalid")

            if attempt < max_retries:
                self._sleep(self.poll_delay)

        logger.warning(MAX_RETRIES_WARNING, extra={"resource": resource, "max_retries": max_retries})
        return False

    def get_certificate(self, order: Order) -> bytes:
        """Download the certificate chain of a valid order.

        Returns:
            The PEM certificate chain exactly as served.

        Raises:
            CertClientError: If the order has no certificate URL yet.
        """
        if not order.certificate:
            raise CertClientError(f"Order has no certificate URL (status: {order.status})")

        response = self._post_as_get(order.certificate)
        self.session.certificate = response.content
        logger.info("Certificate downloaded", extra={"certificate_url": order.certificate})
        return response.content
