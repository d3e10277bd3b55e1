"""Grid operations implemented in an Object-Oriented paradigm."""

# WARNING: grid.functional imports grid.object, so the opposite import
# is forbidden

import numpy as np
from ..io import VolumeReader, VolumeWriter, VolumeConverter, isfile
from ..space import GridDescriptor
from ..bounds import BoundsResolver, bounds_grid
from ..planner import ResizePlanner
from ..interpolate import OversampledInterpolator
from ..transfer import GridTransfer, out_of_bounds_value
from ..events import emit, OperationSelected
from ..errors import DimensionMismatchError
from ..utils import argdef


def _select_writer(x, writer, prefix):
    """Choose writer based on input type.

    Files and nibabel images are written to disk. Images that only
    live in memory have no location of their own: unless an output
    `fname` is given, they are saved in the current working directory
    as `<prefix>array.nii.gz`. Arrays are returned in memory.
    """
    if writer is not None:
        return writer
    if isfile(x):
        return VolumeWriter(prefix=prefix)
    return VolumeConverter()


class Regridder:
    """Resample a volume onto a new voxel grid.

    The output grid is defined by a template image and/or by one of
    a number of voxels, a voxel size or a scaling factor. The content
    of the image stays in place in world space; only the three spatial
    axes are regridded.
    """

    output_prefix = 'regridded_'

    def __init__(self, template=None, size=None, voxel=None, scale=None, *,
                 interp='cubic', oversample=None, radius=3,
                 fill=None, nan=False, dtype=None,
                 n_jobs=None, sink=None, writer=None):
        """

        Parameters
        ----------
        template : file_like or array_like or GridDescriptor, optional
            Match the voxel size, shape and affine of this image.

        size : vector_like[int], optional
            Number of voxels along each spatial axis.

        voxel : float or vector_like, optional
            Output voxel size.

        scale : float or vector_like, optional
            Factor by which to scale the number of voxels.

        Other Parameters
        ----------------
        interp : {'nearest', 'linear', 'cubic', 'sinc'}, default='cubic'
            Interpolation method.

        oversample : int or vector_like[int] or 'auto', default='auto'
            Number of sub-samples per output voxel. By default, derived
            from the ratio of voxel sizes (disabled for nearest).

        radius : int, default=3
            Radius of the windowed sinc kernel.

        fill : float, default=0
            Value of output voxels outside of the input field-of-view.

        nan : bool, default=False
            Use NaN as the out-of-bounds value.

        dtype : str or type, optional
            Output data type. By default, float32 if values are
            interpolated and the input data type otherwise.

        n_jobs : int, default=number of cores
            Number of parallel workers.

        sink : callable, optional
            Receives events. Logs them by default.

        writer : io.VolumeWriter, optional
            Writer object for the regridded image.
        """
        self.template = template
        self.size = size
        self.voxel = voxel
        self.scale = scale
        self.interp = interp
        self.oversample = oversample
        self.radius = radius
        self.fill = fill
        self.nan = nan
        self.dtype = dtype
        self.n_jobs = n_jobs
        self.sink = sink
        self.reader = VolumeReader()
        self.writer = writer

    def __call__(self, x, template=None, size=None, voxel=None, scale=None,
                 input_affine=None, *, interp=None, oversample=None,
                 radius=None, fill=None, nan=None, dtype=None, n_jobs=None,
                 sink=None, writer=None, fname=None):
        """Regrid a volume.

        Parameters
        ----------
        x : file_like or array_like
            Input volume.

        template : file_like or array_like or GridDescriptor, default=self.template
            Match the voxel size, shape and affine of this image.

        size, voxel, scale : vector_like, default=self.<...>
            Resize specification. If any of them is provided, the
            object's values are all ignored.

        input_affine : matrix_like, default=read from input
            Input orientation matrix, mapping voxels to world space.

        Other Parameters
        ----------------
        interp, oversample, radius, fill, nan, dtype, n_jobs, sink, writer
            Override the object's values.

        fname : str, optional
            Output file name.

        Returns
        -------
        y : np.ndarray or nib.SpatialImage
            Regridded volume.

        """
        sink = argdef(sink, self.sink)
        fill = out_of_bounds_value(argdef(fill, self.fill),
                                   argdef(nan, self.nan))
        if size is None and voxel is None and scale is None:
            size, voxel, scale = self.size, self.voxel, self.scale
        template = argdef(template, self.template)
        dtype = argdef(dtype, self.dtype)
        writer = _select_writer(x, argdef(writer, self.writer),
                                self.output_prefix)

        emit(sink, OperationSelected('regrid'))
        info = self.reader.inspect(x, affine=input_affine)
        grid = info['grid']
        if template is not None and not isinstance(template, GridDescriptor):
            template_info = self.reader.inspect(template)
            if template_info['ndim'] < 3:
                raise DimensionMismatchError(
                    'the template image requires at least 3 spatial '
                    'dimensions')
            template = template_info['grid']
            if template_info['name']:
                info['descrip'] = 'regridded to template image "{}"'.format(
                    template_info['name'])

        planner = ResizePlanner(size=size, voxel=voxel, scale=scale,
                                template=template,
                                interp=argdef(interp, self.interp),
                                oversample=argdef(oversample, self.oversample),
                                sink=sink)
        plan = planner(grid)

        # Load input volume
        load_dtype = None if plan.interp == 'nearest' else np.float32
        data = self.reader.read(x, dtype=load_dtype, read_info=False)
        data = data.reshape(grid.shape)

        interpolator = OversampledInterpolator(
            data, plan.interp, plan.oversample,
            radius=argdef(radius, self.radius))
        transfer = GridTransfer(fill, n_jobs=argdef(n_jobs, self.n_jobs))
        y = transfer.regrid(grid, plan.grid, interpolator, dtype)

        output_grid = plan.grid.builder().dtype(y.dtype).build()
        return writer(y, info=info, grid=output_grid, fname=fname)


class Cropper:
    """Crop a volume, without interpolation.

    The extent of the output can be defined by the bounding box of a
    mask, by a reference image, by a uniform margin and by per-axis
    specifications (which take precedence). The affine matrix is
    shifted so that voxels keep their world position.
    """

    operation = 'crop'
    output_prefix = 'cropped_'

    def __init__(self, mask=None, reference=None, uniform=None, axes=None, *,
                 all_axes=False, fill=None, nan=False, dtype=None,
                 n_jobs=None, sink=None, writer=None):
        """

        Parameters
        ----------
        mask : file_like or array_like, optional
            Crop to the extent of this mask (plus a 1 voxel margin).
            Must have the same spatial shape as the input.

        reference : file_like or array_like or GridDescriptor, optional
            Crop the end of each axis to match the shape of this image.

        uniform : int, optional
            Number of voxels removed on all sides.

        axes : dict[int, str], optional
            Per-axis specification, e.g. ``{0: '2,3'}`` (remove 2
            voxels at the beginning and 3 at the end of axis 0) or
            ``{2: '10:end'}`` (keep voxels 10 to the last one).

        Other Parameters
        ----------------
        all_axes : bool, default=False
            Apply `reference` and `uniform` to all axes, not only the
            three spatial axes.

        fill : float, default=0
            Value of output voxels outside of the input field-of-view.

        nan : bool, default=False
            Use NaN as the out-of-bounds value.

        dtype : str or type, default=input data type
            Output data type.

        n_jobs : int, default=number of cores
            Number of parallel workers.

        sink : callable, optional
            Receives events. Logs them by default.

        writer : io.VolumeWriter, optional
            Writer object for the output image.
        """
        self.mask = mask
        self.reference = reference
        self.uniform = uniform
        self.axes = axes
        self.all_axes = all_axes
        self.fill = fill
        self.nan = nan
        self.dtype = dtype
        self.n_jobs = n_jobs
        self.sink = sink
        self.reader = VolumeReader()
        self.writer = writer

    def __call__(self, x, mask=None, reference=None, uniform=None, axes=None,
                 input_affine=None, *, all_axes=None, fill=None, nan=None,
                 dtype=None, n_jobs=None, sink=None, writer=None,
                 fname=None):
        """Crop or pad a volume.

        Parameters
        ----------
        x : file_like or array_like
            Input volume.

        mask, reference, uniform, axes : default=self.<...>
            Extent specification. If any of them is provided, the
            object's values are all ignored.

        input_affine : matrix_like, default=read from input
            Input orientation matrix, mapping voxels to world space.

        Other Parameters
        ----------------
        all_axes, fill, nan, dtype, n_jobs, sink, writer
            Override the object's values.

        fname : str, optional
            Output file name.

        Returns
        -------
        y : np.ndarray or nib.SpatialImage
            Output volume.

        """
        sink = argdef(sink, self.sink)
        n_jobs = argdef(n_jobs, self.n_jobs)
        fill = out_of_bounds_value(argdef(fill, self.fill),
                                   argdef(nan, self.nan))
        if mask is None and reference is None and uniform is None \
                and axes is None:
            mask, reference = self.mask, self.reference
            uniform, axes = self.uniform, self.axes
        writer = _select_writer(x, argdef(writer, self.writer),
                                self.output_prefix)

        resolver = BoundsResolver(self.operation, mask=mask,
                                  reference=reference, uniform=uniform,
                                  axes=axes,
                                  all_axes=argdef(all_axes, self.all_axes),
                                  sink=sink, n_jobs=n_jobs)
        emit(sink, OperationSelected(self.operation))
        info = self.reader.inspect(x, affine=input_affine)
        grid = info['grid']
        bounds = resolver(grid)

        # Load input volume
        data = self.reader.read(x, read_info=False)
        data = data.reshape(grid.shape)

        transfer = GridTransfer(fill, n_jobs=n_jobs)
        y = transfer.crop_pad(data, bounds, argdef(dtype, self.dtype))

        output_grid = bounds_grid(grid, bounds).builder().dtype(y.dtype).build()
        return writer(y, info=info, grid=output_grid, fname=fname)


class Padder(Cropper):
    """Pad a volume, without interpolation.

    The extent of the output can be defined by a reference image, by a
    uniform margin and by per-axis specifications (which take
    precedence). Masks cannot be used to pad.
    """

    operation = 'pad'
    output_prefix = 'padded_'
