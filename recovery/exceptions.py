"""
Recovery Signer - Recovery Exceptions

Every failure of a recovery run is one of these. None of them is retried:
the run aborts and no result file is written.
"""


class RecoveryError(Exception):
    """Base exception for recovery signing errors."""
    pass


class RequestError(RecoveryError):
    """Raised when a recovery request file is unreadable or incomplete."""
    pass


class UnsupportedCoin(RecoveryError):
    """Raised for coin identifiers with no protocol handler."""

    def __init__(self, coin: str):
        self.coin = coin
        super().__init__(f"Unsupported coin: {coin}")


class InvalidKey(RecoveryError):
    """Raised when the operator secret cannot be parsed as a key."""

    def __init__(self, message: str = "invalid private key"):
        super().__init__(message)


class NotPrivateKey(RecoveryError):
    """Raised when the operator supplied a public-only extended key."""

    def __init__(self, message: str = "please provide the private (not public) wallet key"):
        super().__init__(message)


class KeyMismatch(RecoveryError):
    """Raised when the operator key does not belong to the recovery request."""

    def __init__(self, message: str = "provided private key does not match public key specified with recovery request"):
        super().__init__(message)


class RecoveryAborted(RecoveryError):
    """Raised when the operator does not confirm the recovery."""

    def __init__(self, message: str = "recovery aborted"):
        super().__init__(message)


class MalformedTransaction(RecoveryError):
    """Raised when a transaction does not have the shape a recovery requires."""
    pass


class SigningFailure(RecoveryError):
    """Raised for decoding, script and signing errors below the handlers."""
    pass
