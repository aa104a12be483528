"""Voice channel credentials."""

from .credentials import CredentialError, CredentialIssuer, SignedTokenIssuer

__all__ = ["CredentialError", "CredentialIssuer", "SignedTokenIssuer"]
