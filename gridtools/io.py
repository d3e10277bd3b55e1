"""Read and write volumes together with their grid.

Inputs can be file names (NIfTI, MGH or any format nibabel knows,
plus numpy ``.npy`` arrays), in-memory nibabel images or plain arrays.
Readers describe them with a ``GridDescriptor``; writers use the
descriptor of the output to build the header of the saved image.
"""

import os.path
import nibabel as nb
import numpy as np
from nibabel.spatialimages import SpatialImage
from .space import GridBuilder, GridDescriptor
from .linalg import voxel_size
from .utils import argpad, argdef

# Image classes used to save volumes, indexed by extension.
# Anything that is not listed falls back to NIfTI-1.
image_classes = {
    '.nii': nb.Nifti1Image,
    '.nii.gz': nb.Nifti1Image,
    '.mgh': nb.MGHImage,
    '.mgz': nb.MGHImage,
}


def _fileparts(fname):
    """Split a filename into (directory, basename, extension).

    A trailing ``.gz`` is kept together with the extension that
    precedes it (``.nii.gz``).
    """
    dir = os.path.dirname(fname)
    basename, ext = os.path.splitext(os.path.basename(fname))
    if ext == '.gz':
        basename, ext0 = os.path.splitext(basename)
        ext = ext0 + ext
    return dir, basename, ext


def isfile(x):
    """Return True if ``x`` is a path or a nibabel image."""
    return isinstance(x, (str, os.PathLike, SpatialImage))


def _image_grid(x):
    """Build the grid descriptor of a nibabel image."""
    builder = GridBuilder().shape(x.shape).affine(x.affine)
    zooms = [float(z) if z > 0 else 1. for z in x.header.get_zooms()[3:]]
    if zooms:
        builder.spacing(voxel_size(x.affine).tolist() + zooms)
    return builder.dtype(x.get_data_dtype()).build()


def _array_grid(x, affine=None):
    """Build the grid descriptor of an array (default affine if None)."""
    builder = GridBuilder().shape(argpad(x.shape, max(3, x.ndim), 1))
    if affine is not None:
        builder.affine(affine)
    return builder.dtype(x.dtype).build()


class VolumeReader:
    """Load volumes and describe their grid."""

    def __init__(self, dtype=None, copy=True):
        """

        Parameters
        ----------
        dtype : type or str, optional
            Data type in which to load voxel values.
            By default, the on-disk data type is kept.
        copy : bool, default=True
            Copy in-memory arrays even when no conversion is needed.
        """
        self.dtype = dtype
        self.copy = copy

    def __call__(self, *args, **kwargs):
        return self.read(*args, **kwargs)

    @staticmethod
    def _load(x, info):
        if isinstance(x, os.PathLike):
            x = os.fspath(x)
        if isinstance(x, str):
            info['dir'], info['basename'], info['ext'] = _fileparts(x)
            info['name'] = x
            if info['ext'] == '.npy':
                x = np.load(x, mmap_mode='r')
            else:
                x = nb.load(x)
        return x

    @staticmethod
    def _describe(x, info, affine=None):
        if isinstance(x, SpatialImage):
            info['header'] = x.header
            info['extra'] = x.extra
            info['ndim'] = len(x.shape)
            grid = _image_grid(x)
        else:
            x = np.asanyarray(x)
            info['ndim'] = x.ndim
            grid = _array_grid(x, affine)
        info['grid'] = grid
        info['dtype'] = grid.dtype
        info['shape'] = grid.shape
        info['affine'] = grid.affine
        return info

    def inspect(self, x, affine=None):
        """Describe a volume without loading its voxels.

        Parameters
        ----------
        x : str or nib.SpatialImage or array_like or GridDescriptor
            An input volume, on disk or in memory.
        affine : matrix_like, optional
            Orientation matrix of arrays that do not carry one.

        Returns
        -------
        info : dict
            Contains the keys 'grid', 'dtype', 'shape', 'affine',
            'header', 'extra', 'ndim' (number of axes stored in the
            volume, before padding to three) and, for files, 'name',
            'dir', 'basename' and 'ext'.

        """
        info = dict.fromkeys(['name', 'basename', 'dir', 'ext', 'header',
                              'extra'])
        if isinstance(x, GridDescriptor):
            info['grid'] = x
            info['ndim'] = x.ndim
            info['dtype'] = x.dtype
            info['shape'] = x.shape
            info['affine'] = x.affine
            return info
        return self._describe(self._load(x, info), info, affine)

    def read(self, x, dtype=None, copy=None, read_info=True):
        """Load the voxels of a volume.

        Parameters
        ----------
        x : str or nib.SpatialImage or array_like
            An input volume, on disk or in memory.
        dtype : type or str, default=self.dtype
            Data type of the returned array. Floating point types are
            read through nibabel's scaling; booleans are obtained by
            comparison with zero.
        copy : bool, default=self.copy
            Copy in-memory arrays even when no conversion is needed.
        read_info : bool, default=True
            Also return the volume description (see ``inspect``).

        Returns
        -------
        x : np.ndarray
        info : dict, if `read_info`

        """
        dtype = argdef(dtype, self.dtype)
        copy = argdef(copy, self.copy)

        info = dict()
        x = self._load(x, info)
        info = self._describe(x, info)

        if isinstance(x, SpatialImage):
            if dtype is not None and np.dtype(dtype).kind == 'f':
                x = x.get_fdata(dtype=dtype)
            else:
                x = np.asanyarray(x.dataobj)
        if dtype is not None and np.dtype(dtype) == np.bool_:
            x = np.asarray(x) != 0
        x = np.array(x, copy=copy, dtype=dtype)

        if read_info:
            return x, info
        else:
            return x


class VolumeWriter:
    """Save volumes to disk, next to their input by default."""

    def __init__(self, dtype=None, dir=None, ext=None, prefix=None,
                 basename=None, fname=None):
        """

        Parameters
        ----------
        dtype : str or type, optional
            Output data type. By default, the data type of the output
            grid, else of the array.
        dir : str, default=same as input or current directory
        ext : str, default=same as input or '.nii.gz'
        prefix : str, optional
            Prepended to the input basename.
        basename : str, default=prefixed input basename
        fname : str, optional
            Full output path. Takes precedence over the fields above.
        """
        self.dtype = dtype
        self.dir = dir
        self.ext = ext
        self.prefix = prefix
        self.basename = basename
        self.fname = fname

    def __call__(self, *args, **kwargs):
        return self.write(*args, **kwargs)

    def write(self, x, fname=None, info=None, grid=None, dtype=None):
        """Save a volume.

        Parameters
        ----------
        x : np.ndarray
            Voxel values.
        fname : str, optional
            Output path.
        info : dict, optional
            Description of the input volume (see ``VolumeReader``).
            Its header, location and ``'descrip'`` entry are reused.
        grid : GridDescriptor, optional
            Output grid. Defines the affine, voxel size and data type.

        Returns
        -------
        obj : nib.SpatialImage or np.memmap
            The saved image.

        """
        info = argdef(info, {})
        affine = grid.affine if grid is not None else info.get('affine')
        dtype = np.dtype(argdef(dtype, self.dtype,
                                grid.dtype if grid is not None else None,
                                x.dtype))

        # Output path: argument > attributes > input location
        prefix = argdef(self.prefix, '')
        basename = argdef(self.basename, info.get('basename'), 'array')
        dir = argdef(self.dir, info.get('dir'), '.')
        ext = argdef(self.ext, info.get('ext'), '.nii.gz')
        fname = os.fspath(argdef(fname, self.fname,
                                 os.path.join(dir, prefix + basename + ext)))
        ext = _fileparts(fname)[2]

        if ext == '.npy':
            np.save(fname, x.astype(dtype), allow_pickle=False)
            return np.load(fname, mmap_mode='r')

        klass = image_classes.get(ext, nb.Nifti1Image)
        header = info.get('header')
        if not isinstance(header, klass.header_class):
            header = None
        obj = klass(x.astype(dtype), affine, header, info.get('extra'))
        obj.header.set_data_dtype(dtype)
        if grid is not None and hasattr(obj.header, 'set_zooms'):
            obj.header.set_zooms(argpad(list(grid.spacing[:x.ndim]),
                                        x.ndim, 1.))
        descrip = info.get('descrip')
        if descrip and isinstance(obj, nb.Nifti1Image):
            obj.header['descrip'] = descrip[:79]
        nb.save(obj, fname)
        return obj


class VolumeConverter:
    """Writer that keeps volumes in memory.

    It offers the same interface as ``VolumeWriter`` and is used when
    the input volume was an array rather than a file.
    """

    def __init__(self, dtype=None):
        self.dtype = dtype

    def __call__(self, *args, **kwargs):
        return self.write(*args, **kwargs)

    def write(self, x, info=None, grid=None, dtype=None, **kwargs):
        if grid is not None:
            dtype = argdef(dtype, grid.dtype)
        dtype = argdef(dtype, self.dtype, x.dtype)
        return np.asarray(x).astype(dtype, copy=False)
