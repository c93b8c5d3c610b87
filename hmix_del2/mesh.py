"""
Read-only mesh topology and metrics for unstructured staggered (MPAS-style) meshes.
"""
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .gpu_compat import ArrayType, get_array_module


@dataclass
class Mesh:
    """Mesh arrays needed by the Laplacian momentum operators.

    Indices are zero-based; a missing neighbour is ``-1``. Fields defined per
    level are indexed ``(level, entity)``, geometric vectors ``(3, entity)``.

    Attributes
    ----------
    nEdgesOnCell: number of edges bounding each cell, shape (nCells,)
    edgesOnCell: edges bounding each cell, padded, shape (nCells, maxEdges)
    edgeSignOnCell: -1 where the cell is cell1 of the edge, +1 otherwise, shape (nCells, maxEdges)
    cellsOnEdge: the two cells sharing each edge, shape (nEdges, 2); the edge normal points from the first to the second
    verticesOnEdge: the two vertices of each edge, shape (nEdges, 2), ordered along the edge tangent
    dcEdge: distance between the cell centers across an edge, shape (nEdges,)
    dvEdge: distance between the vertices of an edge, shape (nEdges,)
    areaCell: cell area, shape (nCells,)
    edgeNormalVectors: unit normal of each edge in R3, shape (3, nEdges)
    edgeTangentVectors: unit tangent of each edge in R3, shape (3, nEdges)
    maxLevelEdgeTop: number of active levels at each edge, shape (nEdges,)
    edgeMask: 1 where an edge contributes to the tendency, 0 otherwise, shape (nVertLevels, nEdges)
    meshScalingDel2: local scaling of the Laplacian viscosity, shape (nEdges,)
    nEdgesArray: edge counts, first owned edges only, last including halo edges
    """

    nEdgesOnCell: ArrayType
    edgesOnCell: ArrayType
    edgeSignOnCell: ArrayType
    cellsOnEdge: ArrayType
    verticesOnEdge: ArrayType
    dcEdge: ArrayType
    dvEdge: ArrayType
    areaCell: ArrayType
    edgeNormalVectors: ArrayType
    edgeTangentVectors: ArrayType
    maxLevelEdgeTop: ArrayType
    edgeMask: ArrayType
    meshScalingDel2: ArrayType
    nEdgesArray: Sequence[int]

    def __post_init__(self):
        np = get_array_module(self.dcEdge)

        self.nEdgesArray = tuple(int(n) for n in self.nEdgesArray)
        self.nCells, self.maxEdges = self.edgesOnCell.shape
        self.nEdges = self.cellsOnEdge.shape[0]
        self.nVertLevels = self.edgeMask.shape[0]
        self._check_shapes()

        if not np.all(self.dcEdge > 0):
            raise ValueError("dcEdge must be strictly positive on every edge.")
        if not np.all(self.dvEdge > 0):
            raise ValueError("dvEdge must be strictly positive on every edge.")
        if not np.all(self.areaCell > 0):
            raise ValueError("areaCell must be strictly positive on every cell.")

        if np.any(self.maxLevelEdgeTop < 0) or np.any(
            self.maxLevelEdgeTop > self.nVertLevels
        ):
            raise ValueError(
                f"maxLevelEdgeTop must lie in [0, nVertLevels = {self.nVertLevels}]."
            )

        if len(self.nEdgesArray) == 0:
            raise ValueError("nEdgesArray needs at least one edge count.")
        if any(b < a for a, b in zip(self.nEdgesArray, self.nEdgesArray[1:])):
            raise ValueError(f"nEdgesArray {self.nEdgesArray} must be non-decreasing.")
        if self.nEdgesArray[0] < 0 or self.nEdgesArray[-1] > self.nEdges:
            raise ValueError(
                f"nEdgesArray {self.nEdgesArray} must lie in [0, nEdges = {self.nEdges}]."
            )

        if np.any(self.nEdgesOnCell < 0) or np.any(self.nEdgesOnCell > self.maxEdges):
            raise ValueError(f"nEdgesOnCell must lie in [0, maxEdges = {self.maxEdges}].")

        # level k (zero-based) of an edge is active iff k < maxLevelEdgeTop
        self.activeLevels = (
            np.arange(self.nVertLevels)[:, np.newaxis]
            < self.maxLevelEdgeTop[np.newaxis, :]
        )
        self._check_adjacency()

        # weights of the discrete Gauss theorem: the outward normal of a cell
        # across its i-th edge is -edgeSignOnCell * n; padding slots get weight 0
        on_cell = np.arange(self.maxEdges)[np.newaxis, :] < self.nEdgesOnCell[:, np.newaxis]
        edges = np.where(on_cell, self.edgesOnCell, 0)
        self.outwardFluxWeights = np.where(
            on_cell,
            -self.edgeSignOnCell * self.dvEdge[edges] / self.areaCell[:, np.newaxis],
            0,
        )
        self._edgesOnCellPadded = edges

    def _check_shapes(self):
        expected = {
            "nEdgesOnCell": (self.nCells,),
            "edgeSignOnCell": (self.nCells, self.maxEdges),
            "cellsOnEdge": (self.nEdges, 2),
            "verticesOnEdge": (self.nEdges, 2),
            "dcEdge": (self.nEdges,),
            "dvEdge": (self.nEdges,),
            "areaCell": (self.nCells,),
            "edgeNormalVectors": (3, self.nEdges),
            "edgeTangentVectors": (3, self.nEdges),
            "maxLevelEdgeTop": (self.nEdges,),
            "edgeMask": (self.nVertLevels, self.nEdges),
            "meshScalingDel2": (self.nEdges,),
        }
        for name, shape in expected.items():
            actual = tuple(getattr(self, name).shape)
            if actual != shape:
                raise ValueError(f"{name} has shape {actual}, expected {shape}.")

    def _check_adjacency(self):
        np = get_array_module(self.cellsOnEdge)

        dry = self.maxLevelEdgeTop == 0
        for name in ["cellsOnEdge", "verticesOnEdge"]:
            indices = getattr(self, name)
            if np.any(indices < -1):
                raise ValueError(f"{name} contains indices < -1.")
            # a missing neighbour is only acceptable on an edge without active levels
            if np.any((indices == -1).any(axis=1) & ~dry):
                raise ValueError(
                    f"{name} has missing neighbours on edges with active levels."
                )
        if np.any(self.cellsOnEdge >= self.nCells):
            raise ValueError(f"cellsOnEdge contains indices >= nCells = {self.nCells}.")

        on_cell = np.arange(self.maxEdges)[np.newaxis, :] < self.nEdgesOnCell[:, np.newaxis]
        edges = self.edgesOnCell[on_cell]
        if np.any(edges < 0) or np.any(edges >= self.nEdges):
            raise ValueError(f"edgesOnCell must lie in [0, nEdges = {self.nEdges}).")

    @classmethod
    def required_mesh_vars(cls):
        """Names of the arrays a mesh is built from, in constructor order."""
        try:
            return list(cls.__annotations__)
        except AttributeError:
            return []

    @property
    def nEdgesOwned(self):
        """Number of edges this partition writes tendencies for."""
        return self.nEdgesArray[0]

    @property
    def nEdgesFull(self):
        """Number of edges including the halo."""
        return self.nEdgesArray[-1]

    def edge_to_cell_sum(self, edge_field: ArrayType):
        """Discrete Gauss theorem: contract an edge field ``(..., nEdges)``, already
        dotted with the edge normal, into a cell field ``(..., nCells)`` holding
        ``1/A sum(field * n_out/n * dvEdge)``.
        """
        np = get_array_module(edge_field)
        gathered = edge_field[..., self._edgesOnCellPadded]
        return np.sum(gathered * self.outwardFluxWeights, axis=-1)

    @classmethod
    def from_dataset(cls, ds, n_edges_owned=None, scale_with_mesh=False):
        """Build a mesh from an MPAS-style `xarray.Dataset` that is already open.

        Parameters
        ----------
        ds : xarray.Dataset
            Mesh variables with one-based connectivity, as found in MPAS mesh
            and restart files. ``edgeSignOnCell``, ``edgeNormalVectors``,
            ``edgeTangentVectors``, ``maxLevelEdgeTop``, ``edgeMask`` and
            ``meshScalingDel2`` are derived when absent.
        n_edges_owned : int, optional
            Number of owned edges; defaults to all edges (single partition).
        scale_with_mesh : bool, optional
            Scale the viscosity with ``meshDensity`` when deriving ``meshScalingDel2``.
        """
        n_vert_levels = ds.sizes.get("nVertLevels", 1)

        cellsOnEdge = ds["cellsOnEdge"].values.astype(int) - 1
        verticesOnEdge = ds["verticesOnEdge"].values.astype(int) - 1
        edgesOnCell = ds["edgesOnCell"].values.astype(int) - 1
        nEdgesOnCell = ds["nEdgesOnCell"].values.astype(int)
        n_edges = cellsOnEdge.shape[0]

        if "edgeSignOnCell" in ds:
            edgeSignOnCell = ds["edgeSignOnCell"].values
        else:
            edgeSignOnCell = _edge_sign_on_cell(cellsOnEdge, edgesOnCell)

        if "edgeNormalVectors" in ds and "edgeTangentVectors" in ds:
            edgeNormalVectors = ds["edgeNormalVectors"].transpose("R3", "nEdges").values
            edgeTangentVectors = ds["edgeTangentVectors"].transpose("R3", "nEdges").values
        else:
            edgeNormalVectors, edgeTangentVectors = _edge_vectors(ds)

        if "maxLevelEdgeTop" in ds:
            maxLevelEdgeTop = ds["maxLevelEdgeTop"].values.astype(int)
        elif "maxLevelCell" in ds:
            # a missing cell has no active levels
            maxLevelCell = np.append(ds["maxLevelCell"].values.astype(int), 0)
            maxLevelEdgeTop = np.minimum(
                maxLevelCell[cellsOnEdge[:, 0]], maxLevelCell[cellsOnEdge[:, 1]]
            )
        else:
            maxLevelEdgeTop = np.full(n_edges, n_vert_levels)
            maxLevelEdgeTop[(cellsOnEdge == -1).any(axis=1)] = 0

        if "edgeMask" in ds:
            edgeMask = ds["edgeMask"].transpose("nVertLevels", "nEdges").values
        else:
            edgeMask = (
                np.arange(n_vert_levels)[:, np.newaxis] < maxLevelEdgeTop[np.newaxis, :]
            ).astype(int)

        if "meshScalingDel2" in ds:
            meshScalingDel2 = ds["meshScalingDel2"].values
        elif scale_with_mesh:
            meshDensity = ds["meshDensity"].values
            mean_density = 0.5 * (
                meshDensity[cellsOnEdge[:, 0]] + meshDensity[cellsOnEdge[:, 1]]
            )
            meshScalingDel2 = 1.0 / mean_density**0.25
        else:
            meshScalingDel2 = np.ones(n_edges)

        if n_edges_owned is None:
            n_edges_owned = n_edges

        return cls(
            nEdgesOnCell=nEdgesOnCell,
            edgesOnCell=edgesOnCell,
            edgeSignOnCell=edgeSignOnCell,
            cellsOnEdge=cellsOnEdge,
            verticesOnEdge=verticesOnEdge,
            dcEdge=ds["dcEdge"].values,
            dvEdge=ds["dvEdge"].values,
            areaCell=ds["areaCell"].values,
            edgeNormalVectors=edgeNormalVectors,
            edgeTangentVectors=edgeTangentVectors,
            maxLevelEdgeTop=maxLevelEdgeTop,
            edgeMask=edgeMask,
            meshScalingDel2=meshScalingDel2,
            nEdgesArray=(n_edges_owned, n_edges),
        )


def _edge_sign_on_cell(cellsOnEdge, edgesOnCell):
    """-1 where a cell is the first cell of its edge (normal points outward), +1 otherwise."""
    n_cells = edgesOnCell.shape[0]
    cell_index = np.arange(n_cells)[:, np.newaxis]
    first_cell = cellsOnEdge[np.where(edgesOnCell >= 0, edgesOnCell, 0), 0]
    sign = np.where(first_cell == cell_index, -1.0, 1.0)
    return np.where(edgesOnCell >= 0, sign, 0.0)


def _edge_vectors(ds):
    """Unit normal and tangent vectors in R3 from ``angleEdge``.

    ``angleEdge`` is the angle between the local eastward direction and the edge
    normal. On a sphere the local east/north basis is taken at (lonEdge, latEdge),
    on a plane it is simply x/y. The tangent is k x n.
    """
    angle = ds["angleEdge"].values
    on_a_sphere = str(ds.attrs.get("on_a_sphere", "YES")).strip().upper() == "YES"

    if on_a_sphere:
        lon = ds["lonEdge"].values
        lat = ds["latEdge"].values
        east = np.stack([-np.sin(lon), np.cos(lon), np.zeros_like(lon)])
        north = np.stack(
            [-np.sin(lat) * np.cos(lon), -np.sin(lat) * np.sin(lon), np.cos(lat)]
        )
    else:
        east = np.zeros((3, angle.size))
        east[0] = 1.0
        north = np.zeros((3, angle.size))
        north[1] = 1.0

    normal = np.cos(angle) * east + np.sin(angle) * north
    tangent = -np.sin(angle) * east + np.cos(angle) * north
    return normal, tangent
