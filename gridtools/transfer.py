"""Transfer voxel values from an input grid onto an output grid.

Two mappings are supported:
    * **crop/pad**: output voxel ``i`` along axis ``a`` is input voxel
      ``i + lower[a]``. Values are copied, without interpolation.
    * **regrid**: output voxel centres are mapped to world space with
      the output affine, then to input voxels with the inverse of the
      input affine, and interpolated.

Output voxels are independent from each other. The output volume is
split into slabs along its first axis, which are filled in parallel.
"""

from concurrent.futures import ThreadPoolExecutor
import numpy as np
from .errors import ConfigurationError
from .interpolate import affine_grid
from .linalg import lmdiv
from .utils import argdef, nb_workers, slabs


def out_of_bounds_value(fill=None, nan=False):
    """Value given to output voxels that fall outside the input volume.

    Parameters
    ----------
    fill : float, default=0
    nan : bool, default=False
        Shortcut for ``fill=nan``. Cannot be used together with `fill`.

    Returns
    -------
    value : float

    """
    if nan and fill is not None:
        raise ConfigurationError('use either fill or nan, not both')
    if nan:
        return float('nan')
    try:
        return float(argdef(fill, 0.))
    except (TypeError, ValueError):
        raise ConfigurationError('cannot parse fill value {!r}'.format(fill))


def output_dtype(dtype, fill=0.):
    """Smallest data type that holds both `dtype` and the fill value.

    Integer and boolean types are promoted to floating point when the
    fill value is NaN, not integral or out of range.
    """
    dtype = np.dtype(dtype)
    if dtype.kind not in 'biu':
        return dtype
    if dtype.kind == 'b':
        representable = fill in (0., 1.)
    else:
        info = np.iinfo(dtype)
        representable = (np.isfinite(fill) and float(fill).is_integer()
                         and info.min <= fill <= info.max)
    if representable:
        return dtype
    return np.promote_types(dtype, np.float32)


class GridTransfer:
    """Fill an output grid from an input volume."""

    def __init__(self, fill=0., n_jobs=None, slab=None):
        """

        Parameters
        ----------
        fill : float, default=0
            Value of output voxels that fall outside the input volume.
        n_jobs : int, default=number of cores
            Number of workers.
        slab : int, optional
            Number of output planes (along the first axis) processed
            per work item. By default, one slab per worker.
        """
        self.fill = out_of_bounds_value(fill)
        self.n_jobs = n_jobs
        self.slab = slab

    def _run(self, fn, n):
        """Apply `fn(start, stop)` to all slabs of `range(n)`."""
        workers = nb_workers(self.n_jobs)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # Consume the iterator so that worker exceptions propagate
            list(pool.map(lambda s: fn(*s), slabs(n, workers, self.slab)))

    def crop_pad(self, x, bounds, dtype=None):
        """Crop and/or pad a volume.

        Parameters
        ----------
        x : (*shape) array_like
            Input volume.
        bounds : (ndim, 2) array_like[int]
            Inclusive bounds, in input voxels, along each axis of `x`.
        dtype : np.dtype, default=x.dtype
            Output data type. Promoted if it cannot hold the fill value.

        Returns
        -------
        y : np.ndarray
            Output volume, of shape ``bounds[:, 1] - bounds[:, 0] + 1``.

        """
        x = np.asarray(x)
        bounds = np.asarray(bounds, dtype=np.int64)
        if len(bounds) != x.ndim:
            raise ConfigurationError('expected bounds for {} axes, got {}'
                                     .format(x.ndim, len(bounds)))
        lower = bounds[:, 0]
        shape = bounds[:, 1] - lower + 1
        dtype = output_dtype(argdef(dtype, x.dtype), self.fill)
        y = np.empty(tuple(shape), dtype=dtype)

        # Region of the output that has a counterpart in the input
        first = np.maximum(lower, 0) - lower
        last = np.minimum(bounds[:, 1], np.asarray(x.shape) - 1) - lower + 1
        overlap = bool(np.all(first < last))
        fill = self.fill

        def copy(start, stop):
            y[start:stop] = fill
            o0 = max(start, first[0])
            o1 = min(stop, last[0])
            if not overlap or o0 >= o1:
                return
            out = (slice(o0, o1),) + tuple(slice(f, l) for f, l
                                           in zip(first[1:], last[1:]))
            inp = tuple(slice(s.start + l, s.stop + l)
                        for s, l in zip(out, lower))
            values = x[inp]
            if dtype.kind in 'biu' and values.dtype.kind == 'f':
                values = np.rint(values)
            y[out] = values

        self._run(copy, int(shape[0]))
        return y

    def regrid(self, source, target, interpolator, dtype=None):
        """Resample a volume onto a new grid.

        Parameters
        ----------
        source : GridDescriptor
            Input grid.
        target : GridDescriptor
            Output grid.
        interpolator : OversampledInterpolator
            Interpolator wrapping the input volume.
        dtype : np.dtype, default=target.dtype
            Output data type. Promoted if it cannot hold the fill value.

        Returns
        -------
        y : (*target.spatial_shape, *features) np.ndarray
            Output volume.

        """
        # Output voxel -> input voxel
        mat = lmdiv(source.affine, target.affine)
        step = mat[:3, :3]
        shape = target.spatial_shape
        features = interpolator.x.shape[3:]
        dtype = output_dtype(argdef(dtype, target.dtype), self.fill)
        y = np.empty(shape + features, dtype=dtype)
        fill = self.fill

        def resample(start, stop):
            grid = affine_grid(mat, (stop - start,) + shape[1:],
                               dtype=np.float64, start=(start, 0, 0))
            values, valid = interpolator(grid, step)
            if dtype.kind in 'biu' and values.dtype.kind == 'f':
                values = np.rint(values)
            values = values.astype(dtype, copy=False)
            values[~valid] = fill
            y[start:stop] = values

        self._run(resample, shape[0])
        return y
