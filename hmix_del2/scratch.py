"""Call-scoped working arrays for the tensor operator."""
import threading

from contextlib import contextmanager
from typing import Dict, Tuple

from .gpu_compat import empty_like_module
from .mesh import Mesh


class ScratchPool:
    """Named scratch fields with scoped acquisition.

    Fields are allocated fresh on every :meth:`acquire` and dropped when the
    ``with`` block is left, whatever the exit path. They are not zeroed.
    A field can be held by one invocation at a time.

    Parameters
    ----------
    shapes : dict
        Field name -> shape
    dtype : numpy dtype
        Working precision of the fields
    like : array, optional
        Fields are allocated with the same array module (numpy or cupy)
    """

    def __init__(self, shapes: Dict[str, Tuple[int, ...]], dtype, like=None):
        self.shapes = dict(shapes)
        self.dtype = dtype
        self._like = like
        self._in_use = set()
        self._lock = threading.Lock()

    @classmethod
    def for_mesh(cls, mesh: Mesh, dtype=None):
        """Pool holding the intermediate fields of the tensor Laplacian on ``mesh``."""
        n_levels = mesh.nVertLevels
        shapes = {
            "strainRateR3Cell": (6, n_levels, mesh.nCells),
            "strainRateR3Edge": (6, n_levels, mesh.nEdges),
            "divTensorR3Cell": (3, n_levels, mesh.nCells),
            "outerProductEdge": (3, 3, n_levels, mesh.nEdges),
            "normalVectorEdge": (n_levels, mesh.nEdges),
        }
        if dtype is None:
            dtype = mesh.dcEdge.dtype
        return cls(shapes, dtype, like=mesh.dcEdge)

    @property
    def in_use(self):
        """Names of the fields currently acquired."""
        with self._lock:
            return frozenset(self._in_use)

    @contextmanager
    def acquire(self, *names: str):
        """Allocate the named fields for the duration of a ``with`` block.

        Yields the arrays in the order of ``names``. Raises ``RuntimeError`` if
        any of them is already held.
        """
        unknown = [name for name in names if name not in self.shapes]
        if unknown:
            raise KeyError(f"Unknown scratch fields {unknown}.")

        with self._lock:
            busy = self._in_use.intersection(names)
            if busy:
                raise RuntimeError(
                    f"Scratch fields {sorted(busy)} are already in use; "
                    "concurrent invocations need their own ScratchPool."
                )
            self._in_use.update(names)

        try:
            yield [
                empty_like_module(self.shapes[name], self.dtype, like=self._like)
                for name in names
            ]
        finally:
            with self._lock:
                self._in_use.difference_update(names)
