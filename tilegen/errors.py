"""
Error taxonomy for the tiling pipeline.

Every per-image failure derives from TilingError so the batch orchestrator
can record it and move on. Configuration problems live in
utils.validation.ConfigurationError and are fatal before any image is read.
"""


class TilingError(Exception):
    """Base class for per-image tiling failures."""
    pass


class InvalidInputError(TilingError):
    """Missing file, unreadable path or unsupported extension."""
    pass


class DecodeError(TilingError):
    """Image could not be decoded or has no usable dimensions."""
    pass


class EncodeError(TilingError):
    """Encoding or writing an output image failed."""
    pass


class TileWriteError(EncodeError):
    """A tile could not be encoded or written."""
    pass


class PreviewError(EncodeError):
    """The preview image could not be encoded or written."""
    pass


class ManifestError(TilingError):
    """A manifest could not be written or parsed."""
    pass


class DeadlineExceededError(TilingError):
    """Per-image processing ran past its deadline."""
    pass
