"""Voxel-grid transformations for volumetric images."""

from .errors import GridError, ConfigurationError, EmptyMaskError, \
    UnsupportedOperationError, DimensionMismatchError
from .space import GridDescriptor, GridBuilder
from .bounds import BoundsResolver, bounds_grid, mask_bounds
from .planner import ResizePlanner, ResizePlan
from .interpolate import OversampledInterpolator, sample_grid
from .transfer import GridTransfer
from .grid import Regridder, Cropper, Padder, regrid, crop, pad
