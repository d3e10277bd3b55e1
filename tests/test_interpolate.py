import numpy as np
import pytest
from gridtools.interpolate import (sample_grid, identity_grid, affine_grid,
                                   interp_name, auto_oversample,
                                   cubic_kernel, OversampledInterpolator)
from gridtools.errors import ConfigurationError


def ramp(shape=(8, 8, 8), coef=(1., 2., 3.)):
    grid = identity_grid(shape, dtype=np.float64)
    return np.dot(grid, coef)


def test_interp_name():
    assert interp_name(2) == 'cubic'
    assert interp_name('Linear') == 'linear'
    for bad in ('bogus', 4, True, None):
        with pytest.raises(ConfigurationError):
            interp_name(bad)


def test_affine_grid_start():
    mat = np.eye(4)
    mat[:3, 3] = [0.5, 0, 0]
    grid = affine_grid(mat, (2, 3, 4), start=(5, 0, 0))
    assert grid.shape == (2, 3, 4, 3)
    np.testing.assert_allclose(grid[0, 1, 2], [5.5, 1, 2])


def test_nearest():
    x = np.arange(4 * 5 * 6).reshape((4, 5, 6)).astype(np.int16)
    grid = [[1.4, 2.6, 0.5], [-0.5, 0, 0], [-0.6, 0, 0], [3.4, 4.4, 5.4]]
    values, valid = sample_grid(x, grid, 'nearest')
    assert values.dtype == np.int16
    assert values[0] == x[1, 3, 1]
    assert values[1] == x[0, 0, 0]
    assert values[3] == x[3, 4, 5]
    np.testing.assert_array_equal(valid, [True, True, False, True])


@pytest.mark.parametrize('interp', ['linear', 'cubic', 'sinc'])
def test_exact_at_lattice_points(interp):
    rng = np.random.RandomState(1)
    x = rng.rand(5, 6, 7)
    values, valid = sample_grid(x, identity_grid(x.shape), interp)
    np.testing.assert_allclose(values, x, atol=1e-10)
    assert valid.all()


def test_linear_interior():
    x = ramp()
    values, _ = sample_grid(x, [[1.25, 2.5, 3.75]], 'linear')
    np.testing.assert_allclose(values, [17.5])


def test_linear_drops_outside_corners():
    x = ramp((4, 4, 4), (1., 0., 0.))
    values, valid = sample_grid(x, [[3.3, 1, 1], [-0.4, 1, 1], [3.6, 1, 1]],
                                'linear')
    np.testing.assert_allclose(values[:2], [3., 0.])
    np.testing.assert_array_equal(valid, [True, True, False])


def test_cubic_reproduces_ramp():
    x = ramp()
    values, _ = sample_grid(x, [[3.25, 4.5, 2.75]], 'cubic')
    np.testing.assert_allclose(values, [20.5])


@pytest.mark.parametrize('interp', ['cubic', 'sinc'])
def test_edges_are_replicated(interp):
    x = np.full((6, 6, 6), 5.)
    values, valid = sample_grid(x, [[-0.3, 0, 5.2], [2.5, 2.5, 2.5]], interp)
    np.testing.assert_allclose(values, [5., 5.])
    assert valid.all()


def test_cubic_kernel():
    assert cubic_kernel(0.) == 1.
    np.testing.assert_allclose(cubic_kernel(np.array([1., 2., 2.5])), 0.)
    d = np.arange(-2, 2) + 0.3
    assert cubic_kernel(d).sum() == pytest.approx(1.)


def test_features():
    x = np.stack([ramp((4, 4, 4)), -ramp((4, 4, 4))], axis=-1)
    values, valid = sample_grid(x, [[1.5, 1, 1], [9, 9, 9]], 'linear')
    assert values.shape == (2, 2)
    np.testing.assert_allclose(values[0], [6.5, -6.5])
    np.testing.assert_array_equal(valid, [True, False])


def test_auto_oversample():
    assert auto_oversample([1, 1, 1], [3, 1.5, 0.5]) == (3, 2, 1)
    assert auto_oversample([1, 1, 1], [3, 3, 3], 'nearest') == (1, 1, 1)


def test_no_oversampling_matches_sampling():
    rng = np.random.RandomState(2)
    x = rng.rand(6, 6, 6)
    grid = rng.rand(3, 3, 3, 3) * 5
    interpolator = OversampledInterpolator(x, 'cubic', 1)
    values, valid = interpolator(grid)
    expected, expected_valid = sample_grid(x, grid, 'cubic')
    np.testing.assert_allclose(values, expected)
    np.testing.assert_array_equal(valid, expected_valid)


def test_oversampling_preserves_ramp():
    x = ramp((12, 4, 4), (1., 0., 0.))
    interpolator = OversampledInterpolator(x, 'linear', (2, 1, 1))
    values, _ = interpolator([[5., 1., 1.]], step=np.eye(3))
    np.testing.assert_allclose(values, [5.])


def test_oversampling_attenuates_nyquist():
    x = np.ones((12, 4, 4)) * ((-1.) ** np.arange(12))[:, None, None]
    interpolator = OversampledInterpolator(x, 'linear', (2, 1, 1))
    values, _ = interpolator([[5., 1., 1.], [6., 1., 1.]], step=np.eye(3))
    np.testing.assert_allclose(values, [-0.5, 0.5])


def test_oversampling_ignores_invalid_subsamples():
    x = np.full((4, 4, 4), 2.)
    interpolator = OversampledInterpolator(x, 'linear', (4, 1, 1))
    # sub-samples at -1.5, -0.5, 0.5, 1.5: only the first one is outside
    values, valid = interpolator([[0., 1., 1.], [-3., 1., 1.]],
                                 step=4 * np.eye(3))
    np.testing.assert_array_equal(valid, [True, False])
    assert values[0] == pytest.approx(2.)


def test_oversampling_requires_step():
    interpolator = OversampledInterpolator(np.zeros((4, 4, 4)), 'linear', 2)
    with pytest.raises(ConfigurationError):
        interpolator([[1, 1, 1]])


def test_nearest_is_never_oversampled():
    interpolator = OversampledInterpolator(np.zeros((4, 4, 4)), 'nearest', 4)
    assert interpolator.oversample == (1, 1, 1)
