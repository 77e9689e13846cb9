"""Exception and warning types raised by the scene engines."""


class PagesmithError(Exception):
    """Base class for all errors raised by pagesmith."""


class DegenerateTransformError(PagesmithError):
    """A transform with a zero-scale axis was inverted or decomposed."""


class InvalidOperationError(PagesmithError):
    """The requested operation does not apply to the current target.

    Raised before any mutation, so the scene is unchanged.  The controller
    reports these as no-ops.
    """


class StateRestoreError(PagesmithError):
    """A history state could not be reconstructed or loaded."""


class DocumentFormatError(PagesmithError):
    """A serialized scene document is malformed."""


class GeometryClampWarning(UserWarning):
    """A crop/resize request was clamped to stay within the source bounds."""
