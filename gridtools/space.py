"""Grid descriptors: voxel lattices and their placement in world space.

A grid is fully described by
    * its **shape**, i.e., the number of voxels along each axis;
    * its **voxel size** (or spacing) along each axis;
    * an **affine matrix**, mapping voxel indices of the first three
      axes to world (scanner) coordinates.

Descriptors are immutable. New grids are derived through a
``GridBuilder``, which validates the combination of fields before
handing out a frozen ``GridDescriptor``.
"""

import numpy as np
from .errors import ConfigurationError
from .linalg import voxel_size, direction_cosines
from .utils import argpad, argdef


def default_affine(shape, spacing=None):
    """Create default orientation matrix.

    We follow the same convention as nibabel/SPM: (0,0,0) is in the
    center of the field-of-view.

    Parameters
    ----------
    shape : (3,) vector_like
        Spatial shape
    spacing : (3,) vector_like, default=1
        Voxel size

    Returns
    -------
    mat : (4, 4) np.ndarray

    """
    shape = np.asarray(argpad(list(shape)[:3], 3, 1), dtype=np.float64)
    spacing = np.asarray(argpad(argdef(spacing, 1.), 3), dtype=np.float64)
    mat = np.diag(spacing.tolist() + [1.])
    mat[:3, 3] = -(shape - 1) / 2 * spacing
    return mat


def _freeze(x):
    x = np.array(x, dtype=np.float64)
    x.setflags(write=False)
    return x


class GridDescriptor:
    """Immutable description of an image's sampling lattice.

    Use ``GridBuilder`` (or ``GridDescriptor.builder``) to create one.
    """

    __slots__ = ('_shape', '_spacing', '_affine', '_dtype')

    def __init__(self, shape, spacing, affine, dtype):
        self._shape = tuple(int(s) for s in shape)
        self._spacing = tuple(float(v) for v in spacing)
        self._affine = _freeze(affine)
        self._dtype = np.dtype(dtype)

    @property
    def shape(self):
        return self._shape

    @property
    def spacing(self):
        return self._spacing

    @property
    def affine(self):
        return self._affine

    @property
    def dtype(self):
        return self._dtype

    @property
    def ndim(self):
        return len(self._shape)

    @property
    def spatial_shape(self):
        return self._shape[:3]

    def size(self, axis):
        return self._shape[axis]

    def builder(self):
        """Return a builder seeded with this descriptor."""
        return GridBuilder(self)

    def voxel_to_world(self, coord):
        """Map (*, 3) voxel coordinates to (*, 3) world coordinates."""
        coord = np.asarray(coord, dtype=np.float64)
        return np.dot(coord, self._affine[:3, :3].T) + self._affine[:3, 3]

    def __repr__(self):
        return ('GridDescriptor(shape={}, spacing={}, dtype={})'
                .format(self.shape, tuple(round(v, 6) for v in self.spacing),
                        self.dtype))


class GridBuilder:
    """Incrementally assemble a ``GridDescriptor``.

    Setting the voxel size of a builder that already carries an affine
    matrix keeps its direction cosines and rescales its columns;
    setting an affine matrix updates the spatial voxel size. Both
    therefore stay consistent at all times, and ``build`` only has to
    check completeness.
    """

    def __init__(self, grid=None):
        """

        Parameters
        ----------
        grid : GridDescriptor, optional
            Descriptor whose fields are used as a starting point.
        """
        self._shape = None
        self._spacing = None
        self._affine = None
        self._dtype = None
        if grid is not None:
            self._shape = list(grid.shape)
            self._spacing = list(grid.spacing)
            self._affine = np.array(grid.affine)
            self._dtype = grid.dtype

    def shape(self, shape):
        self._shape = [int(s) for s in shape]
        return self

    def spacing(self, spacing):
        spacing = [float(v) for v in spacing]
        if self._spacing is not None:
            spacing += self._spacing[len(spacing):]
        self._spacing = spacing
        if self._affine is not None:
            vs = argpad(spacing[:3], 3, 1.)
            self._affine[:3, :3] = direction_cosines(self._affine) * vs
        return self

    def affine(self, affine):
        affine = np.array(affine, dtype=np.float64)
        if affine.shape == (3, 4):
            affine = np.concatenate([affine, [[0., 0., 0., 1.]]])
        if affine.shape != (4, 4):
            raise ConfigurationError('affine matrix should be 4x4, not {}'
                                     .format('x'.join(map(str, affine.shape))))
        self._affine = affine
        vs = voxel_size(affine).tolist()
        if self._spacing is not None:
            vs += self._spacing[3:]
        self._spacing = vs
        return self

    def dtype(self, dtype):
        self._dtype = np.dtype(dtype)
        return self

    def build(self):
        """Validate the fields and return a frozen descriptor."""
        if self._shape is None:
            raise ConfigurationError('grid shape is not defined')
        shape = argpad(self._shape, max(3, len(self._shape)), 1)
        for axis, n in enumerate(shape):
            if n < 1:
                raise ConfigurationError('axis {} has invalid size {}'
                                         .format(axis, n))
        ndim = len(shape)

        spacing = argdef(self._spacing, [1.] * 3)
        spacing = argpad(spacing, ndim, 1.)[:ndim]
        for axis, vs in enumerate(spacing):
            if not vs > 0:
                raise ConfigurationError('axis {} has invalid voxel size {}'
                                         .format(axis, vs))

        affine = self._affine
        if affine is None:
            affine = default_affine(shape, spacing[:3])
        if not np.allclose(voxel_size(affine), spacing[:3], rtol=1e-5):
            raise ConfigurationError('voxel size {} does not match the '
                                     'affine matrix'.format(spacing[:3]))

        dtype = argdef(self._dtype, np.float32)
        return GridDescriptor(shape, spacing, affine, dtype)
