"""Error kinds raised while validating a grid operation.

All of them are raised before any voxel is written. They subclass the
builtin exception that best describes them so that callers that already
catch ``ValueError`` keep working.
"""


class GridError(Exception):
    """Base class for all errors raised by gridtools."""


class ConfigurationError(GridError, ValueError):
    """Conflicting, missing or malformed grid specification."""


class EmptyMaskError(GridError, ValueError):
    """The mask used to crop an image does not contain any voxel."""


class UnsupportedOperationError(GridError, NotImplementedError):
    """Valid options that cannot be combined with the operation."""


class DimensionMismatchError(GridError, ValueError):
    """Two images do not share the required axis extents."""
