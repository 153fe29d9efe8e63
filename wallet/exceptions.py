from typing import Optional


class WalletError(Exception):
    pass


class ConfigurationError(WalletError):
    pass


class GatewayError(WalletError):
    """A remote ledger call came back with a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GatewayTransportError(GatewayError):
    """The request never produced a response (DNS, connect, timeout...)."""


class UnauthenticatedError(WalletError):
    def __init__(self, message: str = "Not logged in"):
        super().__init__(message)


class RemoteRejectedError(WalletError):
    pass
