"""dnscert - ACME client issuing certificates through DNS-01 validation."""

from dnscert.client import AcmeClient
from dnscert.orchestrator import CertClient, ChallengeOrchestrator

__all__ = ["AcmeClient", "CertClient", "ChallengeOrchestrator"]
__version__ = "0.1.0"
