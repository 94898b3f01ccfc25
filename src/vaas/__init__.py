"""Client for the Verdict-as-a-Service malware classification service."""

from vaas.auth import (
    ClientCredentialsGrantAuthenticator,
    ResourceOwnerPasswordGrantAuthenticator,
)
from vaas.config import VaasConfig
from vaas.errors import (
    MessageDecodeError,
    VaasAuthenticationError,
    VaasConnectionClosedError,
    VaasError,
    VaasInvalidStateError,
    VaasTimeoutError,
    VaasUploadError,
)
from vaas.protocol.messages import Verdict
from vaas.session.manager import VaasSession
from vaas.session.models import SessionState, VaasVerdict

__version__ = "0.1.0"

__all__ = [
    "ClientCredentialsGrantAuthenticator",
    "MessageDecodeError",
    "ResourceOwnerPasswordGrantAuthenticator",
    "SessionState",
    "VaasAuthenticationError",
    "VaasConfig",
    "VaasConnectionClosedError",
    "VaasError",
    "VaasInvalidStateError",
    "VaasSession",
    "VaasTimeoutError",
    "VaasUploadError",
    "VaasVerdict",
    "Verdict",
    "__version__",
]
