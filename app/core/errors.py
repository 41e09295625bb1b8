"""
Error taxonomy shared by the LLM client and the Odoo CRM writer.

Every error carries a short machine-readable ``code`` that the HTTP layer
reports back to callers (e.g. as the motive of a pending analysis).
"""
from typing import Optional


class LeadConnectorError(Exception):
    """Base class for all pipeline errors."""

    code = "error"


class ConfigurationError(LeadConnectorError):
    """A required credential or setting is missing."""

    code = "configuration_error"


class TransportError(LeadConnectorError):
    """Remote host unreachable or answered with a non-success status."""

    code = "transport_error"

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body[:500] if body else ""
        if status_code is not None:
            message = f"{message}: HTTP {status_code} {self.body}".rstrip()
        super().__init__(message)


class EmptyResponseError(LeadConnectorError):
    """Remote call succeeded but returned no usable content."""

    code = "empty_response"


class ParseError(LeadConnectorError):
    """Model content was not a valid JSON object."""

    code = "parse_error"


class RemoteApplicationError(LeadConnectorError):
    """Remote call succeeded at transport level but reported a domain error."""

    code = "remote_error"

    def __init__(self, message: str, error: Optional[dict] = None,
                 authorization_failure: bool = False):
        super().__init__(message)
        self.error = error or {}
        self.authorization_failure = authorization_failure


class AuthenticationError(LeadConnectorError):
    """CRM authentication failed or returned an empty user id."""

    code = "authentication_error"


class RemoteWriteError(LeadConnectorError):
    """CRM lead creation failed; no lead id is available."""

    code = "remote_write_error"
