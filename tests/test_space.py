import numpy as np
import pytest
from gridtools.space import GridBuilder, default_affine
from gridtools.errors import ConfigurationError


def rotated_affine():
    rotation = np.array([[0., -1., 0.],
                         [1., 0., 0.],
                         [0., 0., 1.]])
    affine = np.eye(4)
    affine[:3, :3] = rotation * [2., 3., 4.]
    affine[:3, 3] = [10., 20., 30.]
    return rotation, affine


def test_default_affine_centers_field_of_view():
    mat = default_affine([3, 5, 7], [2., 1., 1.])
    center = np.dot(mat[:3, :3], [1, 2, 3]) + mat[:3, 3]
    np.testing.assert_allclose(center, 0, atol=1e-12)


def test_builder_requires_shape():
    with pytest.raises(ConfigurationError):
        GridBuilder().build()


def test_builder_rejects_empty_axis():
    with pytest.raises(ConfigurationError):
        GridBuilder().shape([0, 3, 3]).build()


def test_builder_pads_to_three_axes():
    grid = GridBuilder().shape([4, 5]).build()
    assert grid.shape == (4, 5, 1)
    assert grid.spacing == (1., 1., 1.)
    assert grid.ndim == 3


def test_spacing_follows_affine():
    _, affine = rotated_affine()
    grid = GridBuilder().shape([4, 4, 4]).affine(affine).build()
    assert grid.spacing == pytest.approx((2., 3., 4.))


def test_spacing_rescales_affine():
    rotation, affine = rotated_affine()
    grid = GridBuilder().shape([4, 4, 4]).affine(affine).build()
    new = grid.builder().spacing([1., 1., 1.]).build()
    np.testing.assert_allclose(new.affine[:3, :3], rotation, atol=1e-10)
    np.testing.assert_allclose(new.affine[:3, 3], [10., 20., 30.])
    # the original descriptor is untouched
    assert grid.spacing == pytest.approx((2., 3., 4.))


def test_higher_axes_keep_their_spacing():
    grid = GridBuilder().shape([2, 2, 2, 5]).spacing([1., 1., 1., 2.5]).build()
    assert grid.ndim == 4
    assert grid.spacing == (1., 1., 1., 2.5)
    assert grid.spatial_shape == (2, 2, 2)


def test_descriptor_is_frozen():
    grid = GridBuilder().shape([2, 3, 4]).build()
    with pytest.raises(ValueError):
        grid.affine[0, 0] = 2.
    with pytest.raises(AttributeError):
        grid.shape = (1, 2, 3)


def test_voxel_to_world():
    _, affine = rotated_affine()
    grid = GridBuilder().shape([4, 4, 4]).affine(affine).build()
    world = grid.voxel_to_world([[1, 0, 0], [0, 0, 0]])
    np.testing.assert_allclose(world, [[10., 22., 30.], [10., 20., 30.]],
                               atol=1e-12)

