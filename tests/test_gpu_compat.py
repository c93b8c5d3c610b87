import numpy as np

from hmix_del2.gpu_compat import empty_like_module, get_array_module


def test_empty_like_module_follows_numpy_arrays():
    like = np.ones(3, dtype=np.float32)
    assert get_array_module(like) is np

    out = empty_like_module((2, 5), np.float64, like=like)
    assert isinstance(out, np.ndarray)
    assert out.shape == (2, 5)
    assert out.dtype == np.float64

    out = empty_like_module((4,), np.float32)
    assert isinstance(out, np.ndarray)
    assert out.dtype == np.float32
