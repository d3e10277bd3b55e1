"""Plan the output grid of a regridding operation.

The output grid can be specified by
    * a number of voxels per axis (``size``);
    * a voxel size (``voxel``);
    * a scaling factor applied to the voxel density (``scale``);
    * a template image, whose lattice is copied (``template``).

At most one of the first three can be used. When a template is given,
they are applied to the template grid rather than to the input grid.
Only the three spatial axes are regridded.
"""

from collections import namedtuple
import numpy as np
from .errors import ConfigurationError
from .events import emit, OversampleSelected
from .interpolate import interp_name, auto_oversample
from .linalg import direction_cosines
from .utils import argpad, parse_sequence, round_half_up

ResizePlan = namedtuple('ResizePlan', ['grid', 'interp', 'oversample'])


def _resize_grid(grid, spacing, shape):
    """Change the spatial lattice of a grid, keeping its centre in place.

    Parameters
    ----------
    grid : GridDescriptor
    spacing : (3,) vector_like
        Output voxel size
    shape : (3,) vector_like[int]
        Output spatial shape

    Returns
    -------
    grid : GridDescriptor

    """
    vs0 = np.asarray(grid.spacing[:3], dtype=np.float64)
    n0 = np.asarray(grid.spatial_shape, dtype=np.float64)
    vs1 = np.asarray(spacing, dtype=np.float64)
    n1 = np.asarray(shape, dtype=np.int64)

    # The first voxel moves so that the field-of-view centre stays put:
    #   o1 + (n1-1)/2 * vs1 = o0 + (n0-1)/2 * vs0   (along each axis)
    rotation = direction_cosines(grid.affine)
    affine = np.array(grid.affine)
    shift = 0.5 * ((vs1 - vs0) + (n0 * vs0 - n1 * vs1))
    affine[:3, 3] += np.dot(rotation, shift)
    affine[:3, :3] = rotation * vs1

    return (grid.builder()
            .shape(n1.tolist() + list(grid.shape[3:]))
            .affine(affine)
            .build())


def resize_scale(grid, factor):
    """Scale the voxel density of a grid by a factor.

    Parameters
    ----------
    grid : GridDescriptor
    factor : float or (3,) vector_like
        Values > 1 upsample, values < 1 downsample.

    Returns
    -------
    grid : GridDescriptor

    """
    factor = np.asarray(argpad(factor, 3), dtype=np.float64)
    spacing = np.asarray(grid.spacing[:3]) / factor
    shape = np.maximum(round_half_up(np.asarray(grid.spatial_shape) * factor),
                       1)
    return _resize_grid(grid, spacing, shape)


def resize_voxel(grid, spacing):
    """Resample a grid to a target voxel size.

    Parameters
    ----------
    grid : GridDescriptor
    spacing : float or (3,) vector_like

    Returns
    -------
    grid : GridDescriptor

    """
    spacing = np.asarray(argpad(spacing, 3), dtype=np.float64)
    extent = np.asarray(grid.spatial_shape) * np.asarray(grid.spacing[:3])
    shape = np.maximum(round_half_up(extent / spacing), 1)
    return _resize_grid(grid, spacing, shape)


def resize_shape(grid, shape):
    """Resample a grid to a target number of voxels.

    Parameters
    ----------
    grid : GridDescriptor
    shape : (3,) vector_like[int]

    Returns
    -------
    grid : GridDescriptor

    """
    shape = np.asarray(shape, dtype=np.int64)
    extent = np.asarray(grid.spatial_shape) * np.asarray(grid.spacing[:3])
    return _resize_grid(grid, extent / shape, shape)


def _positive_vector(name, value, cast, lengths):
    try:
        value = parse_sequence(value, cast)
    except (TypeError, ValueError):
        raise ConfigurationError('cannot parse {} {!r}'.format(name, value))
    if len(value) not in lengths:
        raise ConfigurationError('{} expects {} values, got {}'.format(
            name, ' or '.join(map(str, lengths)), len(value)))
    for v in value:
        if not v > 0:
            raise ConfigurationError('{} values should be positive: {}'
                                     .format(name, value))
    return argpad(value, 3)


class ResizePlanner:
    """Compute the output grid, interpolation and oversampling of a regrid.
    """

    def __init__(self, size=None, voxel=None, scale=None, template=None,
                 interp='cubic', oversample=None, sink=None):
        """

        Parameters
        ----------
        size : (3,) vector_like[int], optional
            Number of voxels along each spatial axis.
        voxel : float or (3,) vector_like, optional
            Output voxel size.
        scale : float or (3,) vector_like, optional
            Scaling factor applied to the number of voxels.
        template : GridDescriptor, optional
            Grid whose spatial lattice (shape, voxel size, affine) is copied.
        interp : {'nearest', 'linear', 'cubic', 'sinc'}, default='cubic'
            Interpolation method.
        oversample : int or (3,) vector_like[int] or 'auto', default='auto'
            Number of sub-samples per output voxel and axis.
        sink : callable, optional
            Receives planning events. Logs them by default.
        """
        self.size = size
        self.voxel = voxel
        self.scale = scale
        self.template = template
        self.interp = interp_name(interp)
        self.oversample = self._parse_oversample(oversample)
        self.sink = sink

        sources = [name for name, value in (('size', size),
                                            ('voxel', voxel),
                                            ('scale', scale))
                   if value is not None]
        if len(sources) > 1:
            raise ConfigurationError(
                'only a single method can be used to resize the image '
                '(got: {})'.format(', '.join(sources)))
        if not sources and template is None:
            raise ConfigurationError(
                'please use either the size, voxel, scale or template '
                'option to regrid the image')
        if size is not None:
            self.size = [int(v) for v in
                         _positive_vector('size', size, int, (3,))]
        if voxel is not None:
            self.voxel = _positive_vector('voxel', voxel, float, (1, 3))
        if scale is not None:
            self.scale = _positive_vector('scale', scale, float, (1, 3))

    @staticmethod
    def _parse_oversample(oversample):
        if oversample is None or (isinstance(oversample, str)
                                  and oversample.lower() == 'auto'):
            return None
        return [int(k) for k in
                _positive_vector('oversample', oversample, int, (1, 3))]

    def __call__(self, grid):
        """Plan the regridding of an input grid.

        Parameters
        ----------
        grid : GridDescriptor
            Input grid.

        Returns
        -------
        plan : ResizePlan
            Output grid (whose dtype is the output data type),
            interpolation method and oversampling factors.

        """
        target = grid
        if self.template is not None:
            template = self.template
            target = (grid.builder()
                      .shape(list(template.spatial_shape) + list(grid.shape[3:]))
                      .affine(template.affine)
                      .build())

        if self.scale is not None:
            target = resize_scale(target, self.scale)
        elif self.voxel is not None:
            target = resize_voxel(target, self.voxel)
        elif self.size is not None:
            target = resize_shape(target, self.size)

        # No blending of values with nearest neighbour
        dtype = grid.dtype if self.interp == 'nearest' else np.float32
        target = target.builder().dtype(dtype).build()

        auto = self.oversample is None
        if self.interp == 'nearest':
            oversample = (1, 1, 1)
        elif auto:
            oversample = auto_oversample(grid.spacing[:3], target.spacing[:3],
                                         self.interp)
        else:
            oversample = tuple(self.oversample)
        emit(self.sink, OversampleSelected(oversample, auto))

        return ResizePlan(target, self.interp, oversample)
