import numpy as np


def lmdiv(A, B, rcond=None):
    r"""Left matrix division A\B.

    Parameters
    ----------
    A : (M, [N]) array_like
    B : (M, [K]) array_like

    Returns
    -------
    X : (N, [K]) np.ndarray

    """
    A = np.asarray(A)
    B = np.asarray(B)
    if len(A.shape) == 1:
        A = A[..., None]
    X = np.linalg.lstsq(A, B, rcond=rcond)[0]
    return X


def rmdiv(A, B, rcond=None):
    r"""Right matrix division A/B.

    Parameters
    ----------
    A : (M, [N]) array_like
    B : (K, [N]) array_like

    Returns
    -------
    X : (M, K) np.ndarray

    """
    A = np.asarray(A)
    B = np.asarray(B)
    if len(A.shape) == 1:
        A = A[..., None]
    if len(B.shape) == 1:
        B = B[..., None]
    return np.linalg.lstsq(B.transpose(), A.transpose(),
                           rcond=rcond)[0].transpose()


def voxel_size(mat):
    """Return the voxel size associated with an affine matrix."""
    mat = np.asarray(mat)
    return np.sqrt((mat[:-1, :-1] ** 2).sum(axis=0))


def direction_cosines(mat):
    """Return the linear part of an affine matrix with unit columns."""
    mat = np.asarray(mat, dtype=np.float64)
    return rmdiv(mat[:-1, :-1], np.diag(voxel_size(mat)))
