from .client import Endpoints, KiketClient
from .config import SDKConfig, load_sdk_config
from .context import AuthContext, HandlerContext
from .dispatcher import DispatchResponse, RequestDispatcher, WebhookRequest
from .errors import (
    AuthenticationError,
    ConfigError,
    FetchError,
    KiketError,
    ScopeError,
)
from .jwks import KeySetCache
from .registry import EventRegistry, HandlerRegistration
from .responses import allow, deny, pending
from .scopes import check_scopes
from .sdk import KiketSDK
from .secret_resolver import SecretResolver
from .signature import generate_signature, verify_signature
from .telemetry import DispatchOutcome, TelemetryRecorder
from .tokens import TokenVerifier

__all__ = [
    "AuthContext",
    "AuthenticationError",
    "ConfigError",
    "DispatchOutcome",
    "DispatchResponse",
    "Endpoints",
    "EventRegistry",
    "FetchError",
    "HandlerContext",
    "HandlerRegistration",
    "KeySetCache",
    "KiketClient",
    "KiketError",
    "KiketSDK",
    "RequestDispatcher",
    "SDKConfig",
    "ScopeError",
    "SecretResolver",
    "TelemetryRecorder",
    "TokenVerifier",
    "WebhookRequest",
    "allow",
    "check_scopes",
    "deny",
    "generate_signature",
    "load_sdk_config",
    "pending",
    "verify_signature",
]
