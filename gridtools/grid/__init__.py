"""Tools for modifying the voxel grid of volumes.

Three operations are available:
    * **regrid:** resample the volume onto a new lattice (new voxel
      size, new shape or the lattice of a template image). Values are
      interpolated, and the content stays in place in world space;
    * **crop:** remove voxels at the edges of the volume;
    * **pad:** add voxels at the edges of the volume.

Cropping and padding do not interpolate: the affine matrix is shifted
so that the remaining voxels keep their world position.

"""

from .object import Regridder, Cropper, Padder
from .functional import regrid, crop, pad
