"""Exceptions raised by account, passcode and token operations."""


class AuthenticationError(RuntimeError):
    """Bearer token is missing or invalid."""


class AuthorizationError(RuntimeError):
    """Authenticated requester does not hold the required role."""


class ValidationError(ValueError):
    """A required field is missing or malformed."""


class NotFoundError(RuntimeError):
    """An identity or record does not exist."""


class ExpiredError(RuntimeError):
    """A passcode or token is past its expiry."""


class ConflictError(RuntimeError):
    """An email address is already in use."""


class TransportError(RuntimeError):
    """A call to an external collaborator failed."""


class InvalidBearerToken(AuthenticationError):
    """The identity provider rejected a bearer token."""


class NoSuchIdentity(NotFoundError):
    """The identity provider has no matching identity."""


class IdentityExists(ConflictError):
    """The identity provider already has an identity for this email."""


class IdentityProviderError(TransportError):
    """The identity provider could not complete a request."""


class StoreError(TransportError):
    """The document store could not complete a request."""


class MailNotConfigured(TransportError):
    """No outbound mail transport is configured."""


class MailDeliveryFailed(TransportError):
    """The mail transport failed to deliver a message."""


class EmailInUse(ConflictError):
    """Another identity already has the requested email address."""

    def __init__(self, email: str) -> None:
        super(EmailInUse, self).__init__(f'{email} is already in use')
        self.email = email
