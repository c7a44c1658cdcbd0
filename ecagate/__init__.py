"""Contributor agreement gate for incoming commits."""
from __future__ import annotations

__version__: str = "0.3.0"

from .auth import OAuthChallengeAuth
from .client import ProfileServiceClient
from .config import GateConfig, load_gate_config, validate_gate_config
from .credentials import CredentialManager, CredentialStore
from .delegated import DelegatedValidator
from .errors import (
    AuthRefreshExhausted,
    ConfigurationError,
    ContentRejection,
    EcaGateError,
    ResolutionError,
    TransportError,
)
from .models import AccessToken, CommitInfo, Identity, Person, ValidationOutcome, ValidationStep
from .resolver import CandidateResolver
from .validator import CommitValidator, RemoteProfileChecks

__all__ = [
    "__version__",
    "AccessToken",
    "AuthRefreshExhausted",
    "CandidateResolver",
    "CommitInfo",
    "CommitValidator",
    "ConfigurationError",
    "ContentRejection",
    "CredentialManager",
    "CredentialStore",
    "DelegatedValidator",
    "EcaGateError",
    "GateConfig",
    "Identity",
    "OAuthChallengeAuth",
    "Person",
    "ProfileServiceClient",
    "RemoteProfileChecks",
    "ResolutionError",
    "TransportError",
    "ValidationOutcome",
    "ValidationStep",
    "load_gate_config",
    "validate_gate_config",
]
