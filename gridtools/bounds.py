"""Resolve the extent of a crop or pad operation.

Bounds are stored as an integer array of shape ``(ndim, 2)`` holding,
for each axis, the first and last (inclusive) input voxels that make
it into the output. A negative lower bound, or an upper bound past the
last voxel, pads the volume.

Bounds can be obtained from (in order of application):
    * the bounding box of a **mask** (cropping only);
    * the shape of a **reference** image;
    * a **uniform** number of voxels removed/added on all sides;
    * per-**axis** specifications, which override everything else.
"""

from concurrent.futures import ThreadPoolExecutor
from functools import reduce
from collections.abc import Mapping
import numpy as np
from scipy.ndimage import find_objects
from .errors import ConfigurationError, EmptyMaskError, \
    UnsupportedOperationError, DimensionMismatchError
from .events import emit, AxisChanged, NoAxesChanged, EmptyMask
from .io import VolumeReader, isfile
from .space import GridDescriptor
from .utils import argpad, nb_workers, slabs

operation_choices = ('crop', 'pad')


def identity_bounds(shape):
    """Bounds that select the full extent of each axis."""
    shape = np.asarray(shape, dtype=np.int64)
    return np.stack([np.zeros_like(shape), shape - 1], axis=-1)


def empty_bounds(shape):
    """Bounds that select nothing; the neutral element of `merge_bounds`."""
    shape = np.asarray(shape, dtype=np.int64)
    return np.stack([shape, np.full_like(shape, -1)], axis=-1)


def merge_bounds(a, b):
    """Smallest bounds that contain both `a` and `b`."""
    return np.stack([np.minimum(a[:, 0], b[:, 0]),
                     np.maximum(a[:, 1], b[:, 1])], axis=-1)


def _slab_bounds(mask, start, stop):
    """Bounding box of the true voxels of ``mask[start:stop]``."""
    bounds = empty_bounds(mask.shape[:3])
    slices = find_objects(mask[start:stop].view(np.uint8), max_label=1)[0]
    if slices is not None:
        bounds[:, 0] = [s.start for s in slices]
        bounds[:, 1] = [s.stop - 1 for s in slices]
        bounds[0] += start
    return bounds


def mask_bounds(mask, n_jobs=None):
    """Bounding box of a mask, computed in parallel.

    The mask is split into slabs along its first axis. Each worker
    computes the bounding box of its slab, and partial boxes are
    merged in any order.

    Parameters
    ----------
    mask : (X, Y, Z, ...) array_like
        Mask volume. Voxels with a non-zero value in any of the
        non-spatial dimensions belong to the mask.
    n_jobs : int, default=number of cores
        Number of workers.

    Returns
    -------
    bounds : (3, 2) np.ndarray[int]
        Inclusive bounds of the mask. If the mask is empty,
        ``bounds[:, 0] > bounds[:, 1]``.

    """
    mask = np.asarray(mask)
    mask = mask.reshape(argpad(mask.shape, 3, 1)[:3] + [-1])
    mask = np.ascontiguousarray((mask != 0).any(axis=-1))

    workers = nb_workers(n_jobs)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        partial = list(pool.map(lambda s: _slab_bounds(mask, *s),
                                slabs(mask.shape[0], workers)))
    return reduce(merge_bounds, partial, empty_bounds(mask.shape))


def parse_axis_spec(axis, spec, size, crop=True):
    """Convert an axis specification into bounds.

    Parameters
    ----------
    axis : int
        Axis index (used in error messages).
    spec : str or (int, int)
        * ``'lower,upper'`` or ``(lower, upper)``: number of voxels
          removed (crop) or added (pad) at each end of the axis.
        * ``'start:stop'``: inclusive range of input voxels. ``stop``
          can be ``'end'``. Independent of crop/pad.
    size : int
        Input size along this axis.
    crop : bool, default=True
        Whether deltas remove (True) or add (False) voxels.

    Returns
    -------
    lower, upper : int

    """
    if isinstance(spec, str) and ':' in spec:
        start, stop = spec.split(':', 1)
        try:
            lower = int(start.strip())
            if stop.strip().lower() == 'end':
                upper = size - 1
            else:
                upper = int(stop.strip())
        except ValueError:
            raise ConfigurationError(
                "axis {}: can't parse integer sequence specifier \"{}\""
                .format(axis, spec))
        return lower, upper

    try:
        if isinstance(spec, str):
            delta = [int(v.strip()) for v in spec.split(',')]
        else:
            delta = [int(v) for v in spec]
    except (TypeError, ValueError):
        delta = []
    if len(delta) != 2:
        raise ConfigurationError("axis {}: can't parse delta specifier \"{}\""
                                 .format(axis, spec))
    sign = 1 if crop else -1
    return sign * delta[0], size - 1 - sign * delta[1]


def bounds_grid(grid, bounds):
    """Grid of the volume obtained by cropping/padding to `bounds`.

    The voxel size is unchanged and the affine matrix is shifted so
    that voxels keep their world position.

    Parameters
    ----------
    grid : GridDescriptor
    bounds : (ndim, 2) array_like[int]

    Returns
    -------
    grid : GridDescriptor

    """
    bounds = np.asarray(bounds, dtype=np.int64)
    lower = bounds[:, 0]
    affine = np.array(grid.affine)
    affine[:3, 3] += np.dot(affine[:3, :3], lower[:3])
    return (grid.builder()
            .shape((bounds[:, 1] - lower + 1).tolist())
            .affine(affine)
            .build())


class BoundsResolver:
    """Combine crop/pad specifications into a single set of bounds."""

    def __init__(self, operation='crop', mask=None, reference=None,
                 uniform=None, axes=None, all_axes=False, sink=None,
                 n_jobs=None):
        """

        Parameters
        ----------
        operation : {'crop', 'pad'}, default='crop'
            Operation performed.
        mask : str or nib.SpatialImage or array_like, optional
            Crop to the bounding box of this mask, leaving a margin of
            one voxel where possible. Its spatial shape must match the
            input. Not available when padding.
        reference : GridDescriptor or str or nib.SpatialImage or array_like
            Crop or pad the upper end of each axis to match the shape
            of this grid or image. Transforms are ignored.
        uniform : int, optional
            Number of voxels removed (crop) or added (pad) on all sides.
        axes : dict[int, str] or iterable[tuple[int, str]], optional
            Per-axis specifications (see ``parse_axis_spec``).
            Later entries overwrite earlier ones.
        all_axes : bool, default=False
            Apply `reference` and `uniform` to all axes rather than to
            the three spatial axes only.
        sink : callable, optional
            Receives events. Logs them by default.
        n_jobs : int, optional
            Number of workers used to scan the mask.
        """
        if operation not in operation_choices:
            raise ConfigurationError('unknown operation {!r} (choices: {})'
                                     .format(operation,
                                             ', '.join(operation_choices)))
        self.operation = operation
        self.mask = mask
        self.reference = reference
        self.uniform = uniform
        self.axes = self._parse_axes(axes)
        self.all_axes = all_axes
        self.sink = sink
        self.n_jobs = n_jobs

        if mask is not None and operation == 'pad':
            raise UnsupportedOperationError('padding with a mask is not '
                                            'supported')
        if mask is not None and reference is not None:
            raise ConfigurationError('{} can be performed using either a '
                                     'mask or a reference image'
                                     .format(operation))
        if uniform is not None:
            try:
                self.uniform = int(uniform)
            except (TypeError, ValueError):
                raise ConfigurationError('cannot parse uniform {!r}'
                                         .format(uniform))
        if mask is None and reference is None and uniform is None \
                and not self.axes:
            raise ConfigurationError('no crop or pad specification')

    @staticmethod
    def _parse_axes(axes):
        if axes is None:
            return []
        if isinstance(axes, Mapping):
            axes = axes.items()
        parsed = []
        for item in axes:
            try:
                axis, spec = item
                axis = int(axis)
            except (TypeError, ValueError):
                raise ConfigurationError('axis specifications should be '
                                         '(index, spec) pairs, not {!r}'
                                         .format(item))
            parsed.append((axis, spec))
        return parsed

    def __call__(self, grid):
        """Resolve the bounds of an input grid.

        Parameters
        ----------
        grid : GridDescriptor
            Input grid.

        Returns
        -------
        bounds : (ndim, 2) np.ndarray[int]
            Inclusive input bounds along all axes.

        """
        crop = self.operation == 'crop'
        shape = np.asarray(grid.shape, dtype=np.int64)
        nd = grid.ndim if self.all_axes else 3
        bounds = identity_bounds(shape)

        if self.mask is not None:
            mask = self.mask
            if isfile(mask):
                mask = VolumeReader().read(mask, dtype=bool, read_info=False)
            mask = np.asarray(mask)
            mask_shape = tuple(argpad(mask.shape, 3, 1)[:3])
            if mask_shape != grid.spatial_shape:
                raise DimensionMismatchError(
                    'mask shape {} does not match the spatial shape of the '
                    'image {}'.format(mask_shape, grid.spatial_shape))
            box = mask_bounds(mask, self.n_jobs)
            if np.any(box[:, 0] > box[:, 1]):
                emit(self.sink, EmptyMask(mask_shape))
                raise EmptyMaskError("mask image is empty; can't use to "
                                     "crop image")
            # Leave a gap of one voxel so that linear interpolation
            # remains valid at the edges of the mask
            lower, upper = box[:, 0], box[:, 1]
            bounds[:3, 0] = np.where(lower > 0, lower - 1, lower)
            bounds[:3, 1] = np.where(upper < shape[:3] - 1, upper + 1, upper)

        if self.reference is not None:
            reference = self.reference
            if not isinstance(reference, GridDescriptor):
                reference = VolumeReader().inspect(reference)['grid']
            for axis in range(nd):
                ref_size = reference.size(axis) if axis < reference.ndim else 1
                if crop:
                    bounds[axis, 1] = min(bounds[axis, 1], ref_size - 1)
                elif axis < reference.ndim:
                    bounds[axis, 1] = max(bounds[axis, 1], ref_size - 1)

        if self.uniform is not None:
            delta = self.uniform if crop else -self.uniform
            bounds[:nd, 0] += delta
            bounds[:nd, 1] -= delta

        for axis, spec in self.axes:
            if not 0 <= axis < grid.ndim:
                raise ConfigurationError('axis {} larger than image '
                                         'dimensions ({})'
                                         .format(axis, grid.ndim))
            bounds[axis] = parse_axis_spec(axis, spec, shape[axis], crop)

        for axis in range(grid.ndim):
            if bounds[axis, 1] < bounds[axis, 0]:
                raise ConfigurationError('axis {} empty: ({}:{})'.format(
                    axis, bounds[axis, 0], bounds[axis, 1]))

        considered = sorted(set(range(nd)) | set(a for a, _ in self.axes))
        changed = 0
        for axis in considered:
            if bounds[axis, 0] != 0 or bounds[axis, 1] != shape[axis] - 1:
                changed += 1
                emit(self.sink, AxisChanged(axis, 0, int(shape[axis] - 1),
                                            int(bounds[axis, 0]),
                                            int(bounds[axis, 1])))
        if not changed:
            emit(self.sink, NoAxesChanged(tuple(considered)))

        return bounds
