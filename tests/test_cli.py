import numpy as np
import nibabel as nib
import pytest
from gridtools.grid.__main__ import main


@pytest.fixture
def image(tmp_path):
    x = np.arange(10 * 12 * 14, dtype=np.float32).reshape((10, 12, 14))
    fname = str(tmp_path / 'input.nii.gz')
    nib.save(nib.Nifti1Image(x, np.eye(4)), fname)
    return fname


def output(tmp_path):
    return str(tmp_path / 'output.nii.gz')


def test_crop_uniform(image, tmp_path):
    assert main([image, 'crop', output(tmp_path), '--uniform', '2']) == 0
    assert nib.load(output(tmp_path)).shape == (6, 8, 10)


def test_pad_axis(image, tmp_path):
    assert main([image, 'pad', output(tmp_path),
                 '--axis', '0', '1,2', '--axis', '2', '0,3']) == 0
    y = nib.load(output(tmp_path))
    assert y.shape == (13, 12, 17)
    np.testing.assert_allclose(y.affine[:3, 3], [-1, 0, 0])


@pytest.mark.parametrize('spec,size,shift', [
    ('-2,3', 11, 2),
    ('-2:end', 12, -2),
])
def test_pad_axis_negative(image, tmp_path, spec, size, shift):
    assert main([image, 'pad', output(tmp_path), '--axis', '0', spec]) == 0
    y = nib.load(output(tmp_path))
    assert y.shape == (size, 12, 14)
    np.testing.assert_allclose(y.affine[:3, 3], [shift, 0, 0])


def test_crop_axis_joined(image, tmp_path):
    assert main([image, 'crop', output(tmp_path), '--axis=1,1,1']) == 0
    assert nib.load(output(tmp_path)).shape == (10, 10, 14)


def test_crop_as(image, tmp_path):
    reference = str(tmp_path / 'reference.nii.gz')
    nib.save(nib.Nifti1Image(np.zeros((5, 5, 5), dtype=np.uint8),
                             np.eye(4)), reference)
    assert main([image, 'crop', output(tmp_path), '--as', reference]) == 0
    assert nib.load(output(tmp_path)).shape == (5, 5, 5)


def test_regrid_voxel(image, tmp_path):
    assert main([image, 'regrid', output(tmp_path), '--voxel', '2',
                 '--interp', 'linear', '--jobs', '2']) == 0
    y = nib.load(output(tmp_path))
    assert y.shape == (5, 6, 7)
    assert y.header.get_zooms() == pytest.approx((2., 2., 2.))


def test_regrid_size(image, tmp_path):
    assert main([image, 'regrid', output(tmp_path), '--size', '5,6,7',
                 '--oversample', 'auto', '-dt', 'float64']) == 0
    y = nib.load(output(tmp_path))
    assert y.shape == (5, 6, 7)
    assert y.get_data_dtype() == np.float64


@pytest.mark.parametrize('args', [
    ['regrid', '--scale', '2', '--voxel', '2'],
    ['regrid'],
    ['crop'],
    ['crop', '--uniform', '2', '--fill', '1', '--nan'],
    ['crop', '--axis', '4', '1,1'],
])
def test_errors(image, tmp_path, capsys, args):
    args = [image, args[0], output(tmp_path)] + args[1:]
    with pytest.raises(SystemExit) as e:
        main(args)
    assert e.value.code == 1
    assert 'error' in capsys.readouterr().err


def test_pad_with_mask(image, tmp_path, capsys):
    with pytest.raises(SystemExit) as e:
        main([image, 'pad', output(tmp_path), '--mask', image])
    assert e.value.code == 1
    assert 'mask' in capsys.readouterr().err


def test_bad_datatype(image, tmp_path):
    with pytest.raises(SystemExit) as e:
        main([image, 'crop', output(tmp_path), '--uniform', '1',
              '-dt', 'notatype'])
    assert e.value.code == 2
