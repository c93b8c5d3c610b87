"""Array-module dispatch: mesh and field arrays may be numpy or cupy arrays."""
import numpy as np


try:
    from cupy import get_array_module
except ImportError:

    def get_array_module(*args):
        return np


# fields and mesh arrays; cupy arrays pass through the same code paths
ArrayType = np.ndarray


def empty_like_module(shape, dtype, like=None):
    """Allocate an uninitialized array with the array module of ``like``.

    Scratch fields follow the mesh: if the mesh arrays live on the GPU, so do
    the working arrays of the tensor operator.
    """
    xp = get_array_module(like) if like is not None else np
    return xp.empty(shape, dtype=dtype)
