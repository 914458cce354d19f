"""Errors raised by the fractal engine."""


class InvalidParametersError(ValueError):
    """Raised when a render configuration cannot be computed."""


class MaskLoadError(OSError):
    """Raised when a raster orbit mask image is missing or undecodable."""
