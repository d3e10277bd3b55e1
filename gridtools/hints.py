from typing import Union, Iterable, Mapping, Tuple
import numpy as np
import nibabel as nib
from .space import GridDescriptor

Array = Union[np.ndarray, Iterable, int, float]
Matrix = Array
Vector = Matrix
FileArray = Union[str, nib.spatialimages.SpatialImage]
AnyArray = Union[Array, FileArray]
AnyGrid = Union[AnyArray, GridDescriptor]
AxisSpec = Union[Mapping[int, str], Iterable[Tuple[int, str]]]
