"""Grid operations implemented in a Functional paradigm."""

from .object import Regridder, Cropper, Padder
from ..hints import AnyArray, AnyGrid, Matrix, Vector, AxisSpec
from typing import Mapping


def regrid(x, template=None, size=None, voxel=None, scale=None,
           input_affine=None, **kwargs):
    # type: (AnyArray, AnyGrid, Vector, Vector, Vector, Matrix, Mapping) -> AnyArray
    """Resample a volume onto a new voxel grid.

    Parameters
    ----------
    x : file_like or array_like
        Input volume.

    template : file_like or array_like or GridDescriptor, optional
        Match the voxel size, shape and affine of this image.

    size : vector_like[int], optional
        Number of voxels along each spatial axis.

    voxel : float or vector_like, optional
        Output voxel size.

    scale : float or vector_like, optional
        Factor by which to scale the number of voxels.

    input_affine : matrix_like, default=read from input
        Input orientation matrix, mapping voxels to world space.

    Other Parameters
    ----------------
    interp : {'nearest', 'linear', 'cubic', 'sinc'}, default='cubic'
        Interpolation method.

    oversample : int or vector_like[int] or 'auto', default='auto'
        Number of sub-samples per output voxel.

    fill : float, default=0
        Value of output voxels outside of the input field-of-view.

    nan : bool, default=False
        Use NaN as the out-of-bounds value.

    writer : io.VolumeWriter, optional
        Writer object for the regridded image.

    Returns
    -------
    y : file_like or ndarray
        Regridded volume.

    """
    return Regridder()(x, template=template, size=size, voxel=voxel,
                       scale=scale, input_affine=input_affine, **kwargs)


def crop(x, mask=None, reference=None, uniform=None, axes=None,
         input_affine=None, **kwargs):
    # type: (AnyArray, AnyArray, AnyGrid, int, AxisSpec, Matrix, Mapping) -> AnyArray
    """Crop a volume, without interpolation.

    Parameters
    ----------
    x : file_like or array_like
        Input volume.

    mask : file_like or array_like, optional
        Crop to the extent of this mask (plus a 1 voxel margin).

    reference : file_like or array_like or GridDescriptor, optional
        Crop the end of each axis to match the shape of this image.

    uniform : int, optional
        Number of voxels removed on all sides.

    axes : dict[int, str], optional
        Per-axis specification (``'lower,upper'`` or ``'start:stop'``).

    input_affine : matrix_like, default=read from input
        Input orientation matrix, mapping voxels to world space.

    Other Parameters
    ----------------
    all_axes : bool, default=False
        Apply `reference` and `uniform` to all axes.

    fill : float, default=0
        Value of output voxels outside of the input field-of-view.

    nan : bool, default=False
        Use NaN as the out-of-bounds value.

    writer : io.VolumeWriter, optional
        Writer object for the output image.

    Returns
    -------
    y : file_like or ndarray
        Cropped volume.

    """
    return Cropper()(x, mask=mask, reference=reference, uniform=uniform,
                     axes=axes, input_affine=input_affine, **kwargs)


def pad(x, reference=None, uniform=None, axes=None, input_affine=None,
        **kwargs):
    # type: (AnyArray, AnyGrid, int, AxisSpec, Matrix, Mapping) -> AnyArray
    """Pad a volume, without interpolation.

    Parameters
    ----------
    x : file_like or array_like
        Input volume.

    reference : file_like or array_like or GridDescriptor, optional
        Pad the end of each axis to match the shape of this image.

    uniform : int, optional
        Number of voxels added on all sides.

    axes : dict[int, str], optional
        Per-axis specification (``'lower,upper'`` or ``'start:stop'``).

    input_affine : matrix_like, default=read from input
        Input orientation matrix, mapping voxels to world space.

    Other Parameters
    ----------------
    all_axes : bool, default=False
        Apply `reference` and `uniform` to all axes.

    fill : float, default=0
        Value of output voxels outside of the input field-of-view.

    nan : bool, default=False
        Use NaN as the out-of-bounds value.

    writer : io.VolumeWriter, optional
        Writer object for the output image.

    Returns
    -------
    y : file_like or ndarray
        Padded volume.

    """
    return Padder()(x, reference=reference, uniform=uniform, axes=axes,
                    input_affine=input_affine, **kwargs)
