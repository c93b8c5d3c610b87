"""Dataset-level driver for Laplacian momentum mixing."""
import warnings

from dataclasses import dataclass

import numpy as np
import xarray as xr

from .config import HmixDel2Config
from .del2 import hmix_del2_init, hmix_del2_tend, hmix_del2_tensor_tend
from .mesh import Mesh
from .scratch import ScratchPool


def _create_tendency_func(mesh: Mesh, state):
    """Returns a function computing ``(tend, viscosity)`` from the four input fields,
    each given as a ``(nVertLevels, nEntities)`` array
    """

    def tendency_func(divergence, relative_vorticity, normal_velocity, tangential_velocity):
        tend = np.zeros_like(normal_velocity)
        viscosity = np.zeros_like(normal_velocity)

        hmix_del2_tend(state, mesh, divergence, relative_vorticity, viscosity, tend)
        # a pool per invocation: dask may run several chunks at once
        scratch = ScratchPool.for_mesh(mesh, dtype=normal_velocity.dtype)
        hmix_del2_tensor_tend(
            state,
            mesh,
            normal_velocity,
            tangential_velocity,
            viscosity,
            scratch,
            tend,
        )
        return tend, viscosity

    return tendency_func


@dataclass
class HorizontalMomentumMixing:
    """A class for computing Laplacian momentum mixing tendencies of MPAS-style datasets.

    Parameters
    ----------
    mesh : Mesh
        Mesh the velocity fields live on
    config : HmixDel2Config
        Which of the scalar and tensor forms are active, and their viscosities
    n_workers : int, optional
        Number of threads sharing each edge loop

    Attributes
    ----------
    state: HmixDel2State
    """

    mesh: Mesh
    config: HmixDel2Config
    n_workers: int = 1

    def __post_init__(self):
        self.state = hmix_del2_init(self.config, n_workers=self.n_workers)

    @property
    def required_vars(self):
        """Names of the dataset variables :meth:`tendency` reads."""
        names = []
        if self.state.hmixDel2On:
            names += ["divergence", "relativeVorticity"]
        names += ["normalVelocity", "tangentialVelocity"]
        return names

    def tendency(self, ds):
        """Laplacian mixing tendency of the normal velocity in ``ds``.

        Parameters
        ----------
        ds : xarray.Dataset
            Must contain ``normalVelocity`` and ``tangentialVelocity`` (dims
            ``nEdges``, ``nVertLevels``), and, if the scalar form is active,
            ``divergence`` (``nCells``, ``nVertLevels``) and ``relativeVorticity``
            (``nVertices``, ``nVertLevels``). Any other dimensions, e.g. ``Time``,
            are looped over and may be chunked with dask.

        Returns
        -------
        xarray.Dataset
            ``tendNormalVelocity`` and ``viscosity``, both starting from zero, with the
            scalar form applied before the tensor form.
        """
        missing = [name for name in self.required_vars if name not in ds]
        if missing:
            raise ValueError(
                f"Dataset is missing variables {missing}; "
                f"expected {self.required_vars}."
            )

        if not (self.state.hmixDel2On or self.config.use_del2_tensor):
            warnings.warn(
                "Neither the scalar nor the tensor Laplacian is enabled, "
                "so the tendency is zero.",
                stacklevel=2,
            )

        normal_velocity = ds["normalVelocity"]
        tangential_velocity = ds["tangentialVelocity"]
        if self.state.hmixDel2On:
            divergence = ds["divergence"]
            relative_vorticity = ds["relativeVorticity"]
        else:
            # never read; keep the signature of the ufunc fixed
            divergence = xr.zeros_like(normal_velocity).rename(nEdges="nCells")
            relative_vorticity = xr.zeros_like(normal_velocity).rename(
                nEdges="nVertices"
            )

        tendency_func = _create_tendency_func(self.mesh, self.state)
        edge_dims = ["nVertLevels", "nEdges"]
        tend, viscosity = xr.apply_ufunc(
            tendency_func,
            divergence,
            relative_vorticity,
            normal_velocity,
            tangential_velocity,
            input_core_dims=[
                ["nVertLevels", "nCells"],
                ["nVertLevels", "nVertices"],
                edge_dims,
                edge_dims,
            ],
            output_core_dims=[edge_dims, edge_dims],
            output_dtypes=[normal_velocity.dtype, normal_velocity.dtype],
            vectorize=True,
            dask="parallelized",
        )

        out = xr.Dataset({"tendNormalVelocity": tend, "viscosity": viscosity})
        leading = [dim for dim in normal_velocity.dims if dim not in edge_dims]
        return out.transpose(*leading, "nEdges", "nVertLevels")
