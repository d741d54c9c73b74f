"""Service-account credential exchange for Google APIs."""

from .assertion import build_assertion
from .broker import ServiceCredential, TokenBroker, TokenCache, issue_token

__all__ = [
    "ServiceCredential",
    "TokenBroker",
    "TokenCache",
    "build_assertion",
    "issue_token",
]
