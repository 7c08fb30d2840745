"""
Typed errors raised by individual detectors.

Two detector conditions surface as exceptions: an empty input buffer (fatal for
the whole pipeline) and an undecodable image in the fingerprint engine.
Every other detector degrades to its neutral value instead of raising.
"""


class FraudCheckError(Exception):
    """Base class for fraud pipeline errors."""


class EmptyImageError(FraudCheckError, ValueError):
    """No image bytes were supplied."""


class FingerprintError(FraudCheckError):
    """The perceptual fingerprint could not be computed."""


class ImageFetchError(FraudCheckError):
    """A queued image reference could not be downloaded."""
