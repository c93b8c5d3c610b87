"""
Laplacian horizontal momentum mixing on unstructured staggered ocean meshes.
"""

try:
    from ._version import __version__
except ImportError:
    __version__ = "unknown"


from .config import HmixDel2Config
from .del2 import (
    HmixDel2State,
    hmix_del2_init,
    hmix_del2_tend,
    hmix_del2_tensor_tend,
)
from .mesh import Mesh
from .mixing import HorizontalMomentumMixing
from .scratch import ScratchPool


__all__ = [
    "HmixDel2Config",
    "HmixDel2State",
    "HorizontalMomentumMixing",
    "Mesh",
    "ScratchPool",
    "hmix_del2_init",
    "hmix_del2_tend",
    "hmix_del2_tensor_tend",
]
