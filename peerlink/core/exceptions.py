"""Custom exceptions for the signaling relay."""


class SignalingError(Exception):
    """Base exception for signaling-related errors."""
    pass


class MalformedMessageError(SignalingError):
    """Exception raised when an inbound frame cannot be understood."""
    pass


class PoolError(SignalingError):
    """Exception raised when the waiting pool is used out of contract."""
    pass


class DeliveryError(SignalingError):
    """Exception raised when an outbound message cannot be written."""
    pass
