"""Sample volumes at arbitrary (real-valued) voxel coordinates.

All samplers work on volumes of shape ``(*spatial, *features)`` and on
coordinate grids of shape ``(*output_spatial, dim)``, expressed in
voxels of the input volume. They return both the sampled values and a
validity mask: a sample is valid when the lattice point nearest to its
coordinate lies inside the input field-of-view.

Boundary handling differs between kernels:
    * **nearest** has no support beyond the nearest point;
    * **linear** drops the corners that fall outside of the volume and
      renormalises the remaining weights;
    * **cubic** and **sinc** replicate the edge voxels.
"""

import itertools
import numpy as np
from .errors import ConfigurationError
from .utils import sub2ind, argpad, round_half_up

interp_choices = ('nearest', 'linear', 'cubic', 'sinc')


def interp_name(interp):
    """Return the canonical name of an interpolation method.

    Parameters
    ----------
    interp : {'nearest', 'linear', 'cubic', 'sinc'} or {0, 1, 2, 3}

    Returns
    -------
    interp : str

    """
    if isinstance(interp, (int, np.integer)) and not isinstance(interp, bool):
        if 0 <= interp < len(interp_choices):
            return interp_choices[interp]
    elif isinstance(interp, str) and interp.lower() in interp_choices:
        return interp.lower()
    raise ConfigurationError('unknown interpolation method {!r} (choices: {})'
                             .format(interp, ', '.join(interp_choices)))


def identity_grid(shape, dtype=None, start=None):
    """Generate a dense identity grid

    Parameters
    ----------
    shape : iterable of length D
        Shape of the dense grid.
    dtype : type, optional
        Output data type.
    start : iterable of length D, default=0
        Index of the first voxel along each dimension.

    Returns
    -------
    grid : np.ndarray of shape (*shape, D)
        Dense identity grid.

    """
    start = argpad(start if start is not None else 0, len(shape), 0)
    grid = np.stack(np.meshgrid(*(np.arange(s0, s0 + s, dtype=dtype)
                                  for s0, s in zip(start, shape)),
                                indexing='ij', copy=False), axis=-1)
    return grid


def affine_grid(mat, shape, dtype=None, start=None):
    """Generate a dense affine grid.

    Parameters
    ----------
    mat : array_like of shape (D, D+1) or (D+1, D+1)
        Affine matrix.
        - mat[:D, :D] contains the rotation part of the affine transform
        - mat[:D, D] contains the translation part of the affine transform
    shape : iterable of length D
        Shape of the dense grid.
    dtype : type, default=mat.dtype
        Output data type.
    start : iterable of length D, default=0
        Index of the first voxel along each dimension.

    Returns
    -------
    grid : np.ndarray of shape (*shape, D)
        Dense affine grid.

    """
    mat = np.asarray(mat, dtype=dtype)
    dim = mat.shape[1] - 1
    assert(len(shape) == dim)
    if dtype is None:
        dtype = mat.dtype

    # Generate identity grid
    grid = identity_grid(shape, dtype, start)

    # Compose with affine
    rotation = mat[:dim, :dim]
    translation = mat[:dim, dim].reshape((1,)*dim + (dim,))
    grid = np.dot(grid, rotation.transpose())
    grid += translation

    return grid


def bound_nearest(i, n, inplace=True):
    i = np.asarray(i)
    return np.clip(i, 0, n-1, out=i if inplace else None)


def _inside(index, shape):
    """Mask of integer coordinates that fall inside the lattice."""
    shape = np.asarray(shape)
    return np.all((index >= 0) & (index < shape), axis=-1)


def _gather(x, index, shape):
    """Read voxels of x at (clipped) integer coordinates."""
    dim = len(shape)
    index = sub2ind([bound_nearest(index[d], shape[d], inplace=False)
                     for d in range(dim)], shape)
    x = x.reshape((-1,) + x.shape[dim:])
    return x[index, ...]


def _expand(w, nb_features):
    """Append singleton dimensions for the feature axes."""
    return w.reshape(w.shape + (1,) * nb_features)


def sample_nearest(x, grid):
    dim = grid.shape[-1]
    shape = x.shape[:dim]
    index = round_half_up(grid)
    valid = _inside(index, shape)
    values = _gather(x, [index[..., d] for d in range(dim)], shape)
    return values, valid


def sample_linear(x, grid):
    dim = grid.shape[-1]
    shape = x.shape[:dim]
    nb_features = x.ndim - dim
    valid = _inside(round_half_up(grid), shape)

    # Weights of the lower corner
    corner0 = np.floor(grid)
    weights = corner0 - grid
    weights += 1
    corner0 = corner0.astype(np.int64)

    values = np.zeros(grid.shape[:-1] + x.shape[dim:])
    norm = np.zeros(grid.shape[:-1])
    for corner in itertools.product([False, True], repeat=dim):
        corner = np.asarray(corner, dtype=bool)
        index = corner0.copy()
        index[..., corner] += 1
        w = weights.copy()
        w[..., corner] *= -1
        w[..., corner] += 1
        w = np.prod(w, axis=-1)
        # Corners outside of the volume do not contribute
        w *= _inside(index, shape)
        values += _expand(w, nb_features) * \
            _gather(x, [index[..., d] for d in range(dim)], shape)
        norm += w

    norm[norm == 0] = 1
    values /= _expand(norm, nb_features)
    return values, valid


def cubic_kernel(d, a=-0.5):
    """Keys cubic convolution kernel (Catmull-Rom for a=-0.5)."""
    d = np.abs(d)
    d2 = d * d
    d3 = d2 * d
    near = (a + 2) * d3 - (a + 3) * d2 + 1
    far = a * d3 - 5 * a * d2 + 8 * a * d - 4 * a
    return np.where(d <= 1, near, np.where(d < 2, far, 0.))


def sinc_kernel(d, radius=3):
    """Hann-windowed sinc kernel of a given radius."""
    d = np.asarray(d)
    window = 0.5 * (1 + np.cos(np.pi * d / radius))
    return np.where(np.abs(d) < radius, np.sinc(d) * window, 0.)


def _sample_separable(x, grid, kernel, radius):
    """Separable convolution sampling with edge replication.

    Each axis uses ``2 * radius`` taps, from ``floor(g) - radius + 1``
    to ``floor(g) + radius``. Weights are normalised to sum to one.
    """
    dim = grid.shape[-1]
    shape = x.shape[:dim]
    nb_features = x.ndim - dim
    valid = _inside(round_half_up(grid), shape)

    offsets = np.arange(1 - radius, radius + 1)
    indices = []
    weights = []
    for d in range(dim):
        g = grid[..., d, None]
        index = np.floor(g).astype(np.int64) + offsets
        w = kernel(g - index)
        w /= w.sum(axis=-1, keepdims=True)
        indices.append(index)
        weights.append(w)

    values = np.zeros(grid.shape[:-1] + x.shape[dim:])
    for taps in itertools.product(range(len(offsets)), repeat=dim):
        w = weights[0][..., taps[0]]
        for d in range(1, dim):
            w = w * weights[d][..., taps[d]]
        index = [indices[d][..., taps[d]] for d in range(dim)]
        values += _expand(w, nb_features) * _gather(x, index, shape)
    return values, valid


def sample_cubic(x, grid):
    return _sample_separable(x, grid, cubic_kernel, 2)


def sample_sinc(x, grid, radius=3):
    return _sample_separable(x, grid,
                             lambda d: sinc_kernel(d, radius), radius)


def sample_grid(x, grid, interp='linear', radius=3):
    """Sample a volume at specified coordinates.

    Parameters
    ----------
    x : array_like of shape (*input_spatial, *features)
        Input volume
    grid : array_like of shape (*output_spatial, dim)
        Grid of coordinates, in input voxels.
    interp : {'nearest', 'linear', 'cubic', 'sinc'}, default='linear'
        Interpolation method.
    radius : int, default=3
        Radius of the windowed sinc kernel.

    Returns
    -------
    y : np.ndarray of shape (*output_spatial, *features)
        Sampled values. Floating point unless `interp` is 'nearest'.
    valid : np.ndarray[bool] of shape (*output_spatial)
        Samples whose nearest lattice point is in the field-of-view.

    """
    x = np.asarray(x)
    grid = np.asarray(grid, dtype=np.float64)
    interp = interp_name(interp)
    if interp == 'nearest':
        return sample_nearest(x, grid)
    elif interp == 'linear':
        return sample_linear(x, grid)
    elif interp == 'cubic':
        return sample_cubic(x, grid)
    else:
        return sample_sinc(x, grid, radius)


def auto_oversample(input_spacing, output_spacing, interp='cubic'):
    """Oversampling factor derived from the ratio of voxel sizes.

    Parameters
    ----------
    input_spacing : (3,) vector_like
    output_spacing : (3,) vector_like
    interp : str, default='cubic'

    Returns
    -------
    factor : tuple[int]
        ``max(1, round(output / input))`` along each axis, or ones if
        `interp` is 'nearest'.

    """
    if interp_name(interp) == 'nearest':
        return (1,) * len(output_spacing)
    ratio = np.asarray(output_spacing, dtype=np.float64) / \
        np.asarray(input_spacing, dtype=np.float64)
    return tuple(int(max(1, r)) for r in round_half_up(ratio))


class OversampledInterpolator:
    """Interpolate a volume, averaging several sub-samples per voxel.

    When an output voxel is larger than the input voxels, sampling its
    centre only aliases high frequencies. Drawing a regular grid of
    ``k`` sub-samples per axis within the output voxel and averaging
    them acts as a box low-pass filter.
    """

    def __init__(self, x, interp='cubic', oversample=None, radius=3):
        """

        Parameters
        ----------
        x : array_like of shape (*spatial, *features)
            Input volume. At least 3 spatial dimensions.
        interp : {'nearest', 'linear', 'cubic', 'sinc'}, default='cubic'
            Interpolation method.
        oversample : int or (3,) vector_like[int], default=1
            Number of sub-samples along each output axis.
            Forced to 1 for nearest neighbour interpolation.
        radius : int, default=3
            Radius of the windowed sinc kernel.
        """
        self.x = np.ascontiguousarray(x)
        self.interp = interp_name(interp)
        if self.interp == 'nearest' or oversample is None:
            oversample = 1
        oversample = tuple(int(k) for k in argpad(oversample, 3))
        if any(k < 1 for k in oversample):
            raise ConfigurationError('oversampling factors should be '
                                     'positive: {}'.format(oversample))
        self.oversample = oversample
        self.radius = int(radius)
        if self.radius < 1:
            raise ConfigurationError('sinc radius should be positive: {}'
                                     .format(radius))

    def sample(self, grid):
        """Sample the volume once per coordinate."""
        return sample_grid(self.x, grid, self.interp, self.radius)

    def offsets(self):
        """Sub-sample positions, in output voxels, along each axis."""
        return [(np.arange(k) + 0.5) / k - 0.5 for k in self.oversample]

    def __call__(self, grid, step=None):
        """Sample the volume at (the neighbourhood of) coordinates.

        Parameters
        ----------
        grid : (*output_spatial, 3) array_like
            Coordinates of the output voxel centres, in input voxels.
        step : (3, 3) array_like, optional
            Linear map from an output voxel displacement to an input
            voxel displacement. Required if oversampling.

        Returns
        -------
        y : (*output_spatial, *features) np.ndarray
        valid : (*output_spatial) np.ndarray[bool]

        """
        grid = np.asarray(grid, dtype=np.float64)
        if all(k == 1 for k in self.oversample):
            return self.sample(grid)
        if step is None:
            raise ConfigurationError('oversampling requires the size of '
                                     'output voxels')
        step = np.asarray(step, dtype=np.float64)
        nb_features = self.x.ndim - grid.shape[-1]

        total = None
        count = np.zeros(grid.shape[:-1], dtype=np.int64)
        for offset in itertools.product(*self.offsets()):
            shift = np.dot(step, offset)
            values, valid = self.sample(grid + shift)
            values = values * _expand(valid, nb_features)
            total = values if total is None else total + values
            count += valid

        valid = count > 0
        total /= _expand(np.maximum(count, 1), nb_features)
        return total, valid
