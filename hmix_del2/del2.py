"""
Horizontal momentum mixing with a Laplacian (del2) parameterization.

Two formulations are provided. :func:`hmix_del2_tend` takes the form
``nu (grad(divergence) + k x grad(relativeVorticity))``, which is strictly
valid only for constant ``nu``. :func:`hmix_del2_tensor_tend` computes
``div(nu strain_rate)`` through the strain-rate tensor, so that ``nu`` may
vary in space.

Both add their contribution to ``tend`` and ``viscosity`` in place; neither
ever resets them.
"""
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Optional

from .config import HmixDel2Config
from .gpu_compat import ArrayType, get_array_module
from .mesh import Mesh
from .operators import (
    divergence_of_tensor_r3_cell,
    matrix_cell_to_edge,
    strain_rate_r3_cell,
    vector_r3_cell_to_normal_vector_edge,
)
from .parallel import make_executor, parallel_for
from .scratch import ScratchPool


@dataclass
class HmixDel2State:
    """Setup-time state of the del2 operators.

    Attributes
    ----------
    config: the configuration the state was initialized from
    hmixDel2On: whether the scalar Laplacian term is active
    n_workers: number of threads sharing each edge loop
    executor: thread pool reused by every edge loop, None when n_workers is 1
    """

    config: HmixDel2Config
    hmixDel2On: bool
    n_workers: int = 1
    executor: Optional[Executor] = field(default=None, repr=False, compare=False)


def hmix_del2_init(config: HmixDel2Config, n_workers: int = 1) -> HmixDel2State:
    """Decide once whether the scalar Laplacian term is active.

    The term is on if ``config.use_del2`` is set and ``config.del2_coefficient > 0``.
    """
    hmixDel2On = bool(config.use_del2) and config.del2_coefficient > 0
    return HmixDel2State(
        config=config,
        hmixDel2On=hmixDel2On,
        n_workers=n_workers,
        executor=make_executor(n_workers),
    )


def hmix_del2_tend(
    state: HmixDel2State,
    mesh: Mesh,
    divergence: ArrayType,
    relative_vorticity: ArrayType,
    viscosity: ArrayType,
    tend: ArrayType,
):
    """Add the Laplacian momentum mixing tendency, scalar form.

    On every owned edge and every active level,

    ``u_diffusion = (div(cell2) - div(cell1)) / dcEdge - (vort(vertex2) - vort(vertex1)) / dvEdge``

    is scaled by ``visc2 = del2_coefficient * meshScalingDel2`` and added to
    ``tend`` (masked by ``edgeMask``), while ``visc2`` is added to ``viscosity``.

    Parameters
    ----------
    state : HmixDel2State
        Result of :func:`hmix_del2_init`
    mesh : Mesh
    divergence : (nVertLevels, nCells)
        Velocity divergence
    relative_vorticity : (nVertLevels, nVertices)
        Relative vorticity
    viscosity : (nVertLevels, nEdges)
        Viscosity accumulator, updated in place
    tend : (nVertLevels, nEdges)
        Normal velocity tendency, updated in place
    """
    if not state.hmixDel2On:
        return

    np = get_array_module(tend)
    coefficient = state.config.del2_coefficient

    def _edge_loop(edges):
        cell1 = mesh.cellsOnEdge[edges, 0]
        cell2 = mesh.cellsOnEdge[edges, 1]
        vertex1 = mesh.verticesOnEdge[edges, 0]
        vertex2 = mesh.verticesOnEdge[edges, 1]

        # -(vort(vertex2) - vort(vertex1)) / dvEdge is -grad(vort) pointing from
        # vertex2 to vertex1, i.e. +k x grad(vort) pointing from cell1 to cell2
        grad_divergence = (
            divergence[:, cell2] - divergence[:, cell1]
        ) / mesh.dcEdge[edges]
        grad_vorticity = (
            relative_vorticity[:, vertex2] - relative_vorticity[:, vertex1]
        ) / mesh.dvEdge[edges]
        u_diffusion = grad_divergence - grad_vorticity

        visc2 = np.broadcast_to(
            coefficient * mesh.meshScalingDel2[edges], u_diffusion.shape
        )
        active = mesh.activeLevels[:, edges]

        tend_edges = tend[:, edges]
        tend_edges[active] += (mesh.edgeMask[:, edges] * visc2 * u_diffusion)[active]
        viscosity_edges = viscosity[:, edges]
        viscosity_edges[active] += visc2[active]

    parallel_for(_edge_loop, mesh.nEdgesOwned, state.n_workers, state.executor)


def hmix_del2_tensor_tend(
    state: HmixDel2State,
    mesh: Mesh,
    normal_velocity: ArrayType,
    tangential_velocity: ArrayType,
    viscosity: ArrayType,
    scratch: ScratchPool,
    tend: ArrayType,
):
    """Add the Laplacian momentum mixing tendency, tensor form ``div(nu strain_rate)``.

    The strain rate is computed at cells, interpolated to edges and scaled there
    by ``visc2 = del2_tensor_coefficient * meshScalingDel2`` on all edges, halo
    included, since the divergence that follows needs neighbour values. Below
    ``maxLevelEdgeTop`` the strain rate is set to zero. The divergence of the
    scaled tensor is projected onto the edge normals and added to ``tend`` on
    owned edges only.

    Unlike the scalar form, the switch is read from the config on every call
    and the coefficient may have any sign.

    Parameters
    ----------
    state : HmixDel2State
        Result of :func:`hmix_del2_init`
    mesh : Mesh
    normal_velocity : (nVertLevels, nEdges)
        Velocity normal to the edges
    tangential_velocity : (nVertLevels, nEdges)
        Velocity tangent to the edges
    viscosity : (nVertLevels, nEdges)
        Viscosity accumulator, updated in place
    scratch : ScratchPool
        Provider of the intermediate fields; see :meth:`ScratchPool.for_mesh`
    tend : (nVertLevels, nEdges)
        Normal velocity tendency, updated in place
    """
    config = state.config
    if not config.use_del2_tensor:
        return

    np = get_array_module(tend)
    coefficient = config.del2_tensor_coefficient

    with scratch.acquire(
        "strainRateR3Cell",
        "strainRateR3Edge",
        "divTensorR3Cell",
        "outerProductEdge",
        "normalVectorEdge",
    ) as (
        strainRateR3Cell,
        strainRateR3Edge,
        divTensorR3Cell,
        outerProductEdge,
        normalVectorEdge,
    ):
        strain_rate_r3_cell(
            normal_velocity,
            tangential_velocity,
            mesh,
            outerProductEdge,
            strainRateR3Cell,
        )
        matrix_cell_to_edge(strainRateR3Cell, mesh, strainRateR3Edge)

        def _scale_loop(edges):
            active = mesh.activeLevels[:, edges]
            visc2 = np.broadcast_to(
                coefficient * mesh.meshScalingDel2[edges], active.shape
            )
            strain_rate = strainRateR3Edge[:, :, edges]
            strain_rate[:, active] *= visc2[active]
            # zero strain rate below the sea floor
            strain_rate[:, ~active] = 0.0
            viscosity_edges = viscosity[:, edges]
            viscosity_edges[active] += visc2[active]

        # every edge, halo included; returns only when all edges are scaled
        parallel_for(_scale_loop, mesh.nEdgesFull, state.n_workers, state.executor)

        divergence_of_tensor_r3_cell(strainRateR3Edge, mesh, divTensorR3Cell)
        vector_r3_cell_to_normal_vector_edge(divTensorR3Cell, mesh, normalVectorEdge)

        def _tend_loop(edges):
            active = mesh.activeLevels[:, edges]
            tend_edges = tend[:, edges]
            tend_edges[active] += (
                mesh.edgeMask[:, edges] * normalVectorEdge[:, edges]
            )[active]

        # owned edges only; joined before the scratch fields are released
        parallel_for(_tend_loop, mesh.nEdgesOwned, state.n_workers, state.executor)
