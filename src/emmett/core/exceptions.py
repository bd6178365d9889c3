"""Custom exceptions for emmett."""


class EmmettError(Exception):
    """Base exception for all emmett errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidArgumentError(EmmettError, TypeError):
    """Raised when a call does not match any supported signature.

    Also raised for unknown or ill-typed binding options. Always raised
    before the emitter is touched.
    """

    pass


class IllegalStateError(EmmettError, RuntimeError):
    """Raised when an emitter is used after it was killed."""

    pass


class ConfigurationError(EmmettError):
    """Raised when there's a configuration problem."""

    pass
