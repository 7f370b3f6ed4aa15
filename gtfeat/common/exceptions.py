"""Exceptions raised by image describers and region containers.

Expected failures (unsupported preset, failed detection, unreadable artifacts) are raised internally and converted to
boolean or outcome values at the public describer boundary.
"""


class DescriberError(Exception):
    """Base class for all describer related errors."""


class PresetNotSupportedError(DescriberError):
    """Raised by a concrete describer when it cannot honor a requested preset."""


class DetectionError(DescriberError):
    """Raised when no valid regions can be produced for an image."""


class RegionsIOError(DescriberError):
    """Raised when a features or descriptors artifact cannot be read or written."""
