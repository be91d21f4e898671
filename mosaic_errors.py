"""
mosaic_errors.py - Error kinds raised by the emoji mosaic pipeline

All failures are synchronous and go to the immediate caller. A failed run
is never retried automatically; fix the input and call again.
"""


class MosaicError(Exception):
    """Base class for pipeline failures."""


class InvalidImage(MosaicError, ValueError):
    """Source image has zero/negative dimensions, a bad layout, or failed to decode."""


class EmptyPalette(MosaicError, ValueError):
    """No symbol assets were supplied."""


class PipelineBusy(MosaicError, RuntimeError):
    """A mosaic run is already in flight on this pipeline."""


class DegenerateAsset(UserWarning):
    """
    A symbol image has no pixels above the alpha cutoff. Reported with
    warnings.warn; the palette build continues with a (0, 0, 0) mean.
    """
