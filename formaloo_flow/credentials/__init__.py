"""
Credentials Module

Formaloo credential variants and the helpers that turn them into
authenticated request headers.
"""

from .models import PreIssuedCredential, SelfIssuedCredential, parse_credential
from .service import build_auth_headers, test_credential

__all__ = [
    "PreIssuedCredential",
    "SelfIssuedCredential",
    "parse_credential",
    "build_auth_headers",
    "test_credential",
]
