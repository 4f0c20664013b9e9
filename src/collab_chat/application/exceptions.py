from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class DeliveryError(AppError):
    """The durable store rejected or never acknowledged an insert."""


class HistoryFetchError(AppError):
    """Loading message history from the durable store failed."""


class ChannelError(AppError):
    """The push channel could not be opened or was lost."""
