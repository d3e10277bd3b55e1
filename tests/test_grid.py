import numpy as np
import nibabel as nib
import pytest
from gridtools.grid import regrid, crop, pad, Regridder, Padder
from gridtools.errors import (ConfigurationError, UnsupportedOperationError,
                             DimensionMismatchError)
from gridtools.events import NoAxesChanged, OperationSelected
from gridtools.space import GridBuilder


def save(tmp_path, name, data, affine=None):
    fname = str(tmp_path / name)
    affine = np.eye(4) if affine is None else affine
    nib.save(nib.Nifti1Image(data, affine), fname)
    return fname


def gaussian(shape, sigma):
    center = (np.asarray(shape) - 1) / 2
    grid = np.stack(np.meshgrid(*[np.arange(s) for s in shape],
                                indexing='ij'), axis=-1)
    dist = ((grid - center) ** 2).sum(axis=-1)
    return np.exp(-0.5 * dist / sigma ** 2).astype(np.float32)


def test_identity_crop():
    rng = np.random.RandomState(0)
    x = rng.randint(0, 1000, size=(6, 7, 8)).astype(np.int16)
    events = []
    y = crop(x, axes={0: '0:end'}, sink=events.append)
    assert y.dtype == np.int16
    np.testing.assert_array_equal(y, x)
    assert OperationSelected('crop') in events
    assert any(isinstance(e, NoAxesChanged) for e in events)


def test_pad_uniform():
    rng = np.random.RandomState(0)
    x = rng.rand(4, 5, 6).astype(np.float32)
    y = pad(x, uniform=3, fill=-1, sink=[].append)
    assert y.shape == (10, 11, 12)
    np.testing.assert_array_equal(y[3:-3, 3:-3, 3:-3], x)
    assert y[0, 0, 0] == -1
    assert y[-1, 5, 5] == -1


def test_pad_with_mask():
    with pytest.raises(UnsupportedOperationError):
        Padder(mask=np.ones((4, 4, 4)))(np.ones((4, 4, 4)))


def test_crop_mask_file(tmp_path):
    affine = np.diag([2., 2., 2., 1.])
    affine[:3, 3] = [-10., 4., 0.]
    x = np.arange(10 * 10 * 10, dtype=np.int16).reshape((10, 10, 10))
    mask = np.zeros(x.shape, dtype=np.uint8)
    mask[4:6, 3:7, 5] = 1
    fx = save(tmp_path, 'x.nii.gz', x, affine)
    fmask = save(tmp_path, 'mask.nii.gz', mask, affine)
    fout = str(tmp_path / 'y.nii.gz')

    crop(fx, mask=fmask, fname=fout, sink=[].append)
    y = nib.load(fout)
    assert y.shape == (4, 6, 3)
    np.testing.assert_array_equal(np.asanyarray(y.dataobj), x[3:7, 2:8, 4:7])
    expected = np.array(affine)
    expected[:3, 3] += np.dot(affine[:3, :3], [3, 2, 4])
    np.testing.assert_allclose(y.affine, expected)


def test_crop_default_output_name(tmp_path):
    fx = save(tmp_path, 'x.nii.gz', np.ones((6, 6, 6), dtype=np.float32))
    crop(fx, uniform=1, sink=[].append)
    assert nib.load(str(tmp_path / 'cropped_x.nii.gz')).shape == (4, 4, 4)


def test_crop_image_in_memory_default_output_name(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    x = nib.Nifti1Image(np.ones((6, 6, 6), dtype=np.float32), np.eye(4))
    crop(x, uniform=1, sink=[].append)
    assert nib.load(str(tmp_path / 'cropped_array.nii.gz')).shape == (4, 4, 4)


def test_fill_and_nan():
    with pytest.raises(ConfigurationError):
        pad(np.ones((4, 4, 4)), uniform=1, fill=2, nan=True)


def test_pad_nan_promotes_integers():
    y = pad(np.ones((4, 4, 4), dtype=np.int16), uniform=1, nan=True,
            sink=[].append)
    assert y.dtype.kind == 'f'
    assert np.isnan(y[0]).all()


def test_crop_integer_dtype_rounds():
    x = np.full((4, 4, 4), 2.7)
    x[1, 2, 2] = -1.6
    y = crop(x, uniform=1, dtype=np.int16, sink=[].append)
    assert y.dtype == np.int16
    assert y.shape == (2, 2, 2)
    assert y[0, 1, 1] == -2
    y[0, 1, 1] = 3
    assert (y == 3).all()


def test_nearest_round_trip(tmp_path):
    rng = np.random.RandomState(0)
    x = rng.randint(0, 1000, size=(6, 8, 10)).astype(np.int16)
    affine = np.diag([1., 1., 1., 1.])
    affine[:3, 3] = [-2.5, -3.5, -4.5]
    fx = save(tmp_path, 'x.nii.gz', x, affine)
    fup = str(tmp_path / 'up.nii.gz')
    fdown = str(tmp_path / 'down.nii.gz')

    regrid(fx, scale=2, interp='nearest', fname=fup, sink=[].append)
    up = nib.load(fup)
    assert up.shape == (12, 16, 20)
    assert up.get_data_dtype() == np.int16
    regrid(fup, scale=0.5, interp='nearest', fname=fdown, sink=[].append)
    down = nib.load(fdown)
    assert down.shape == x.shape
    np.testing.assert_allclose(down.affine, affine, atol=1e-6)
    np.testing.assert_array_equal(np.asanyarray(down.dataobj), x)


def test_cubic_round_trip(tmp_path):
    x = gaussian((24, 24, 24), 4.)
    fx = save(tmp_path, 'x.nii.gz', x)
    fup = str(tmp_path / 'up.nii.gz')
    fdown = str(tmp_path / 'down.nii.gz')

    regrid(fx, scale=2, interp='cubic', fname=fup, sink=[].append)
    regrid(fup, scale=0.5, interp='cubic', fname=fdown, sink=[].append)
    y = nib.load(fdown).get_fdata()
    assert y.shape == x.shape
    assert np.abs(y - x)[2:-2, 2:-2, 2:-2].max() < 0.02


def test_oversampling_reduces_aliasing():
    x = np.ones((33, 4, 4)) * ((-1.) ** np.arange(33))[:, None, None]
    kwargs = dict(scale=(1/3, 1, 1), interp='linear', sink=[].append)
    plain = regrid(x, oversample=1, **kwargs)
    smooth = regrid(x, oversample=(4, 1, 1), **kwargs)
    assert plain.shape == smooth.shape == (11, 4, 4)
    plain_error = (plain[1:10] ** 2).mean()
    smooth_error = (smooth[1:10] ** 2).mean()
    assert smooth_error < plain_error


def test_regrid_dtype():
    x = np.ones((4, 4, 4), dtype=np.int16)
    assert regrid(x, scale=2, sink=[].append).dtype == np.float32
    assert regrid(x, scale=2, interp='nearest',
                  sink=[].append).dtype == np.int16
    assert regrid(x, scale=2, dtype=np.float64,
                  sink=[].append).dtype == np.float64


def test_regrid_template_grid():
    template = GridBuilder().shape([5, 5, 5]).spacing([2., 2., 2.]).build()
    x = np.full((10, 10, 10), 3., dtype=np.float32)
    y = regrid(x, template=template, interp='linear', sink=[].append)
    assert y.shape == (5, 5, 5)
    np.testing.assert_allclose(y, 3.)


def test_regrid_template_needs_three_axes():
    with pytest.raises(DimensionMismatchError):
        regrid(np.ones((4, 4, 4)), template=np.zeros((5, 5)), sink=[].append)


def test_regrid_out_of_field_of_view():
    template = GridBuilder().shape([20, 4, 4]).build()
    x = np.full((4, 4, 4), 3., dtype=np.float32)
    y = regrid(x, template=template, interp='linear', nan=True,
               sink=[].append)
    assert np.isnan(y[0]).all()
    np.testing.assert_allclose(y[8:12], 3.)


def test_object_values_are_defaults():
    regridder = Regridder(scale=2, interp='nearest', sink=[].append)
    x = np.ones((3, 3, 3), dtype=np.uint8)
    assert regridder(x).shape == (6, 6, 6)
    assert regridder(x, voxel=3).shape == (1, 1, 1)
    with pytest.raises(ConfigurationError):
        regridder(x, voxel=3, size=[2, 2, 2])
