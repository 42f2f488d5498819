"""
Domain-specific errors for the MT5 bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from typing import Optional


class Mt5DomainError(Exception):
    """Base error for all MT5 domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class AuthenticationError(Mt5DomainError):
    """Raised when the bearer token is missing, invalid, or names no active user."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class AccountAlreadyConnectedError(Mt5DomainError):
    """Raised when the user already holds a connected MT5 account."""

    def __init__(self, user_id: int) -> None:
        super().__init__(
            "You already have a connected MT5 account. Please disconnect it first."
        )
        self.user_id = user_id


class ProviderNotConfiguredError(Mt5DomainError):
    """Raised when no MetaAPI token is configured."""

    def __init__(self) -> None:
        super().__init__(
            "MT5 connectivity is not configured. Please contact an administrator."
        )


class DeploymentFailedError(Mt5DomainError):
    """Raised when the provider reports DEPLOY_FAILED for the remote account."""

    def __init__(self, remote_id: str) -> None:
        super().__init__(
            "Account deployment failed. "
            "Please verify your MT5 credentials and server name."
        )
        self.remote_id = remote_id


class ProvisioningRejectedError(Mt5DomainError):
    """Raised when the provider refuses to create the remote account."""

    def __init__(self, provider_message: Optional[str] = None) -> None:
        super().__init__(
            provider_message
            or "Failed to create MetaAPI account. Please check your credentials."
        )
        self.provider_message = provider_message


class AccountNotFoundError(Mt5DomainError):
    """Raised when the user has no matching MT5 account."""

    def __init__(self, account_ref: Optional[str] = None) -> None:
        super().__init__("MT5 account not found")
        self.account_ref = account_ref


class AccountNotProvisionedError(Mt5DomainError):
    """Raised when a local account has no MetaAPI account id."""

    def __init__(self, account_id: str) -> None:
        super().__init__("Account not properly provisioned with MetaAPI")
        self.account_id = account_id


class AccountSyncError(Mt5DomainError):
    """Raised when account information cannot be read from the provider."""

    def __init__(self, remote_id: str) -> None:
        super().__init__("Failed to fetch account information from MetaAPI")
        self.remote_id = remote_id


class ConnectionCancelledError(Mt5DomainError):
    """Raised when the client went away while the connect was polling."""

    def __init__(self) -> None:
        super().__init__("Connection request was cancelled")


class ProviderError(Mt5DomainError):
    """Raised by provider adapters on transport failures or non-2xx replies.

    Attributes:
        status_code: HTTP status returned by the provider, if any.
        provider_message: The ``message`` field of the provider's error body.
    """

    def __init__(
        self,
        operation: str,
        status_code: Optional[int] = None,
        provider_message: Optional[str] = None,
    ) -> None:
        detail = provider_message or "no response"
        super().__init__(
            f"MetaAPI {operation} failed ({status_code or 'transport'}): {detail}"
        )
        self.operation = operation
        self.status_code = status_code
        self.provider_message = provider_message
