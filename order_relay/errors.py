class RelayError(Exception):
    """Base class for relay failures."""


class ValidationError(RelayError):
    """A required field is missing from an inbound payload or an audit write."""


class AuthenticationError(RelayError):
    """Webhook signature or shop session check failed."""

    def __init__(self, message, shop=None):
        super().__init__(message)
        self.shop = shop


class ConfigurationError(RelayError):
    """Tenant has no usable logistics backend configuration."""


class TransportError(RelayError):
    """Network failure, non-2xx response or GraphQL errors from an external call."""

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PartialMutationError(RelayError):
    """One fulfillment order mutation was rejected. Logged, never propagated."""

    def __init__(self, message, user_errors=None):
        super().__init__(message)
        self.user_errors = user_errors or []
