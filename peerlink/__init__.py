"""Signaling relay for anonymous peer-to-peer video chat."""

__version__ = "1.0.0"
