from typing import Tuple

import numpy as np
import pytest

from numpy.random import PCG64, Generator

from hmix_del2 import HmixDel2Config, Mesh


def _make_random_data(shape: Tuple[int, ...], seed: int) -> np.ndarray:
    rng = Generator(PCG64(seed))
    return rng.random(shape)


def _make_quad_mesh_vars(nx: int, ny: int, n_levels: int, dc: float = 1.0):
    """Mesh variables of a doubly periodic planar mesh of square cells.

    Cell (i, j) is centered at ((i + 1/2) dc, (j + 1/2) dc) and vertex (i, j) sits
    at (i dc, j dc). The first nx * ny edges are x-normal edges at
    (i dc, (j + 1/2) dc), the next nx * ny are y-normal edges at ((i + 1/2) dc, j dc).
    """
    jj, ii = np.meshgrid(np.arange(ny), np.arange(nx), indexing="ij")
    ii = ii.ravel()
    jj = jj.ravel()
    n_cells = nx * ny

    def index(i, j):
        return (j % ny) * nx + (i % nx)

    # normal points from cell1 to cell2, vertex1 -> vertex2 runs along k x n
    x_cells = np.stack([index(ii - 1, jj), index(ii, jj)], axis=1)
    x_vertices = np.stack([index(ii, jj), index(ii, jj + 1)], axis=1)
    y_cells = np.stack([index(ii, jj - 1), index(ii, jj)], axis=1)
    y_vertices = np.stack([index(ii + 1, jj), index(ii, jj)], axis=1)

    cellsOnEdge = np.concatenate([x_cells, y_cells])
    verticesOnEdge = np.concatenate([x_vertices, y_vertices])
    n_edges = cellsOnEdge.shape[0]

    # west, east, south, north
    edgesOnCell = np.stack(
        [
            index(ii, jj),
            index(ii + 1, jj),
            n_cells + index(ii, jj),
            n_cells + index(ii, jj + 1),
        ],
        axis=1,
    )
    edgeSignOnCell = np.tile([1.0, -1.0, 1.0, -1.0], (n_cells, 1))

    edgeNormalVectors = np.zeros((3, n_edges))
    edgeNormalVectors[0, :n_cells] = 1.0
    edgeNormalVectors[1, n_cells:] = 1.0
    edgeTangentVectors = np.zeros((3, n_edges))
    edgeTangentVectors[1, :n_cells] = 1.0
    edgeTangentVectors[0, n_cells:] = -1.0

    mesh_vars = dict(
        nEdgesOnCell=np.full(n_cells, 4),
        edgesOnCell=edgesOnCell,
        edgeSignOnCell=edgeSignOnCell,
        cellsOnEdge=cellsOnEdge,
        verticesOnEdge=verticesOnEdge,
        dcEdge=np.full(n_edges, dc),
        dvEdge=np.full(n_edges, dc),
        areaCell=np.full(n_cells, dc * dc),
        edgeNormalVectors=edgeNormalVectors,
        edgeTangentVectors=edgeTangentVectors,
        maxLevelEdgeTop=np.full(n_edges, n_levels),
        edgeMask=np.ones((n_levels, n_edges), dtype=int),
        meshScalingDel2=np.ones(n_edges),
        nEdgesArray=(n_edges, n_edges),
    )

    geometry = dict(
        x_cell=(ii + 0.5) * dc,
        y_cell=(jj + 0.5) * dc,
        x_vertex=ii * dc,
        y_vertex=jj * dc,
        x_edge=np.concatenate([ii * dc, (ii + 0.5) * dc]),
        y_edge=np.concatenate([(jj + 0.5) * dc, jj * dc]),
    )
    return mesh_vars, geometry


def _make_quad_mesh(nx=8, ny=6, n_levels=3, dc=1.0, **overrides):
    mesh_vars, geometry = _make_quad_mesh_vars(nx, ny, n_levels, dc)
    mesh_vars.update(overrides)
    return Mesh(**mesh_vars), geometry


def _make_random_fields(mesh: Mesh, seed: int):
    """Random divergence, vorticity, normal and tangential velocity on ``mesh``."""
    n_levels = mesh.nVertLevels
    n_vertices = int(mesh.verticesOnEdge.max()) + 1
    return dict(
        divergence=_make_random_data((n_levels, mesh.nCells), seed),
        relative_vorticity=_make_random_data((n_levels, n_vertices), seed + 1),
        normal_velocity=_make_random_data((n_levels, mesh.nEdges), seed + 2) - 0.5,
        tangential_velocity=_make_random_data((n_levels, mesh.nEdges), seed + 3) - 0.5,
    )


def _make_shear_flow(geometry, n_levels: int, ny: int, dc: float, amplitude=1.0):
    """Zonal shear flow u = amplitude * sin(k y), v = 0, one period across the domain.

    Returns the edge velocities, the exact divergence and vorticity, and the exact
    Laplacian of u projected onto the edge normals.
    """
    k = 2 * np.pi / (ny * dc)
    n_cells = geometry["x_cell"].size
    u_edge = amplitude * np.sin(k * geometry["y_edge"])

    normal_velocity = np.zeros(u_edge.size)
    normal_velocity[:n_cells] = u_edge[:n_cells]
    tangential_velocity = np.zeros(u_edge.size)
    tangential_velocity[n_cells:] = -u_edge[n_cells:]  # tangent is -x on y-normal edges

    laplacian = np.zeros(u_edge.size)
    laplacian[:n_cells] = -(k**2) * u_edge[:n_cells]

    def levels(field):
        return np.tile(field, (n_levels, 1))

    return dict(
        normal_velocity=levels(normal_velocity),
        tangential_velocity=levels(tangential_velocity),
        divergence=levels(np.zeros(n_cells)),
        relative_vorticity=levels(-amplitude * k * np.cos(k * geometry["y_vertex"])),
        laplacian=levels(laplacian),
        scale=amplitude * k**2,
    )


@pytest.fixture(scope="session")
def quad_mesh_and_geometry():
    return _make_quad_mesh(nx=8, ny=6, n_levels=3)


@pytest.fixture(scope="session")
def random_fields(quad_mesh_and_geometry):
    mesh, _ = quad_mesh_and_geometry
    return _make_random_fields(mesh, 100)


@pytest.fixture(scope="session")
def shallow_mesh():
    """Quad mesh with varying depth, including edges without any active level,
    and a random edge mask."""
    mesh_vars, _ = _make_quad_mesh_vars(8, 6, 4)
    n_edges = mesh_vars["cellsOnEdge"].shape[0]
    rng = Generator(PCG64(7))
    mesh_vars["maxLevelEdgeTop"] = rng.integers(0, 5, size=n_edges)
    mesh_vars["edgeMask"] = rng.integers(0, 2, size=(4, n_edges))
    mesh_vars["meshScalingDel2"] = 0.5 + rng.random(n_edges)
    return Mesh(**mesh_vars)


@pytest.fixture(
    params=[
        HmixDel2Config(use_del2=True, del2_coefficient=0.5),
        HmixDel2Config(use_del2_tensor=True, del2_tensor_coefficient=0.5),
        HmixDel2Config(
            use_del2=True,
            del2_coefficient=0.5,
            use_del2_tensor=True,
            del2_tensor_coefficient=1.0,
        ),
    ],
    ids=["scalar", "tensor", "both"],
)
def enabled_config(request):
    return request.param
