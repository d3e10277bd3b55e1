import logging
import sys
from argparse import ArgumentParser, ArgumentTypeError
import numpy as np
from ..errors import GridError
from ..interpolate import interp_choices
from ..io import VolumeWriter
from .object import Regridder, Cropper, Padder

operations = {
    'regrid': Regridder,
    'crop': Cropper,
    'pad': Padder,
}


def _axis_option(value):
    """Parse an 'INDEX,SPEC' axis option into an (index, spec) pair."""
    index, _, spec = value.partition(',')
    try:
        index = int(index)
    except ValueError:
        raise ArgumentTypeError('cannot parse axis index in {!r}'
                                .format(value))
    if not spec:
        raise ArgumentTypeError('missing axis specification in {!r}'
                                .format(value))
    return index, spec


def _join_axis(argv):
    """Merge '--axis INDEX SPEC' into '--axis=INDEX,SPEC'.

    Specifications may start with a minus sign (e.g. '-2,3'), which
    argparse would otherwise read as an option.
    """
    argv = list(argv)
    joined = []
    while argv:
        arg = argv.pop(0)
        if arg == '--axis' and len(argv) >= 2:
            arg = '--axis={},{}'.format(argv.pop(0), argv.pop(0))
        joined.append(arg)
    return joined


#                           ------
#                           Parser
#                           ------
parser = ArgumentParser(
    prog='gridtools.grid',
    description='Modify the grid of an image without interpolation '
                '(cropping or padding) or by regridding to a new image '
                'resolution or to a reference image grid.')
parser.add_argument('input', metavar='INPUT', help='Input image')
parser.add_argument('operation', choices=list(operations),
                    help='Operation to perform')
parser.add_argument('output', metavar='OUTPUT', help='Output image')

# ---
# regrid
# ---
regrid = parser.add_argument_group(
    'regridding options (involves image interpolation, applied to spatial '
    'axes only)')
regrid.add_argument('--template', metavar='IMAGE', default=None,
                    help='Match the image grid (voxel size, shape, '
                         'affine) to that of a reference image')
regrid.add_argument('--size', nargs='+', metavar='DIM', default=None,
                    help='Number of voxels along each spatial axis')
regrid.add_argument('--voxel', nargs='+', metavar='SIZE', default=None,
                    help='Output voxel size (one or three values)')
regrid.add_argument('--scale', nargs='+', metavar='FACTOR', default=None,
                    help='Scale the image resolution by a factor '
                         '(one or three values)')
regrid.add_argument('--interp', choices=list(interp_choices),
                    default='cubic',
                    help='Interpolation method [default: cubic]')
regrid.add_argument('--oversample', nargs='+', metavar='FACTOR',
                    default=None,
                    help='Amount of over-sampling in the target space '
                         '(one or three integers) [default: auto]')

# ---
# crop / pad
# ---
croppad = parser.add_argument_group(
    'pad and crop options (no interpolation, the affine is adjusted)')
croppad.add_argument('--as', dest='reference', metavar='IMAGE', default=None,
                     help='Pad or crop the end of each axis to match '
                          'the shape of a reference image')
croppad.add_argument('--uniform', type=int, metavar='N', default=None,
                     help='Pad or crop by a number of voxels on all sides')
croppad.add_argument('--mask', metavar='IMAGE', default=None,
                     help='Crop to the extent of a mask (crop only)')
croppad.add_argument('--axis', type=_axis_option, action='append',
                     default=None, metavar='INDEX SPEC',
                     help='Pad or crop along an axis: "lower,upper" '
                          'voxels or "start:stop" range (stop can be '
                          '"end"). Values may be negative. Also '
                          'accepted as --axis=INDEX,SPEC. Can be '
                          'repeated.')
croppad.add_argument('--all-axes', action='store_true', dest='all_axes',
                     help='Crop or pad all axes, not only spatial axes')

# ---
# general
# ---
general = parser.add_argument_group('general options')
general.add_argument('--fill', type=float, default=None,
                     help='Out-of-bounds value [default: 0]')
general.add_argument('--nan', action='store_true',
                     help='Use NaN as the out-of-bounds value')
general.add_argument('--datatype', '-dt', default=None, metavar='TYPE',
                     help='Output data type')
general.add_argument('--jobs', '-j', type=int, default=None,
                     dest='n_jobs', metavar='N',
                     help='Number of parallel workers [default: all cores]')
general.add_argument('--verbose', '-v', action='store_true',
                     help='Report changes made to the grid')
general.add_argument('--quiet', '-q', action='store_true',
                     help='Only report errors')


def _options(args):
    """Map parsed arguments onto the keywords of the operation object."""
    dtype = None
    if args.datatype:
        try:
            dtype = np.dtype(args.datatype)
        except TypeError:
            parser.error('unknown data type {!r}'.format(args.datatype))
    common = {
        'fill': args.fill,
        'nan': args.nan,
        'dtype': dtype,
        'n_jobs': args.n_jobs,
    }
    if args.operation == 'regrid':
        oversample = args.oversample
        if oversample is not None and len(oversample) == 1 \
                and oversample[0].lower() == 'auto':
            oversample = None
        return dict(template=args.template, size=args.size,
                    voxel=args.voxel, scale=args.scale, interp=args.interp,
                    oversample=oversample, **common)
    return dict(mask=args.mask, reference=args.reference,
                uniform=args.uniform, axes=args.axis,
                all_axes=args.all_axes, **common)


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(_join_axis(argv))

    level = logging.INFO if args.verbose else logging.WARNING
    if args.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format='%(name)s: %(message)s')

    obj = operations[args.operation](**_options(args))
    try:
        obj(args.input, writer=VolumeWriter(), fname=args.output)
    except GridError as e:
        parser.exit(1, '{}: error: {}\n'.format(parser.prog, e))
    return 0


if __name__ == '__main__':
    sys.exit(main())
