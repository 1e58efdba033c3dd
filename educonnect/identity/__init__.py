"""
Session token handling: verify bearer tokens into Principals and issue them.

Nothing in this package reads the relational store.
"""

from .config import TokenConfig
from .issuer import issue_token
from .principal import Principal
from .resolver import IdentityResolver, extract_bearer_token, resolve

__all__ = [
    "IdentityResolver",
    "Principal",
    "TokenConfig",
    "extract_bearer_token",
    "issue_token",
    "resolve",
]
