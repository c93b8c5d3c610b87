"""
Vector and tensor operators on unstructured staggered meshes.

Tensors and vectors are expressed in R3 Cartesian components. Symmetric
tensors keep their six unique components in the order xx, yy, zz, xy, xz, yz,
stored component-first: ``(6, nVertLevels, nEntities)``. All operators act on
every cell and edge, halo included, and write into the output array they are
given.
"""
from .gpu_compat import ArrayType, get_array_module
from .mesh import Mesh


SYM_TENSOR_COMPONENTS = [(0, 0), (1, 1), (2, 2), (0, 1), (0, 2), (1, 2)]

# position of the full-tensor entry (i, j) in the six-component storage
_SYM_INDEX = [[0, 3, 4], [3, 1, 5], [4, 5, 2]]


def full_tensor(sym_tensor: ArrayType):
    """Expand ``(6, ...)`` symmetric storage into a full ``(3, 3, ...)`` tensor."""
    np = get_array_module(sym_tensor)
    return np.stack(
        [np.stack([sym_tensor[_SYM_INDEX[i][j]] for j in range(3)]) for i in range(3)]
    )


def strain_rate_r3_cell(
    normal_velocity: ArrayType,
    tangential_velocity: ArrayType,
    mesh: Mesh,
    outer_product_edge: ArrayType,
    strain_rate_r3_cell: ArrayType,
):
    """Strain rate tensor at cell centers from normal and tangential edge velocities.

    The velocity at each edge is reconstructed in R3 as ``u_n n + u_t t``. Its
    outer product with the edge normal, ``n (x) u``, is summed around each cell
    (discrete Gauss theorem) to give the velocity gradient; the strain rate is
    its symmetric part, ``1/2 (grad u + grad u^T)``.

    Parameters
    ----------
    normal_velocity : (nVertLevels, nEdges)
    tangential_velocity : (nVertLevels, nEdges)
    mesh : Mesh
    outer_product_edge : (3, 3, nVertLevels, nEdges), overwritten
    strain_rate_r3_cell : (6, nVertLevels, nCells), overwritten
    """
    np = get_array_module(normal_velocity)

    normal = mesh.edgeNormalVectors[:, np.newaxis, :]
    tangent = mesh.edgeTangentVectors[:, np.newaxis, :]
    velocity_edge = normal_velocity * normal + tangential_velocity * tangent

    # outer_product_edge[i, j] = n_i u_j
    outer_product_edge[...] = normal[:, np.newaxis] * velocity_edge[np.newaxis, :]

    # gradient[i, j] = d u_j / d x_i
    gradient = mesh.edge_to_cell_sum(outer_product_edge)

    for m, (i, j) in enumerate(SYM_TENSOR_COMPONENTS):
        strain_rate_r3_cell[m] = 0.5 * (gradient[i, j] + gradient[j, i])

    return strain_rate_r3_cell


def matrix_cell_to_edge(cell_tensor: ArrayType, mesh: Mesh, edge_tensor: ArrayType):
    """Interpolate a cell-centered tensor to edges by averaging the two adjacent cells.

    Parameters
    ----------
    cell_tensor : (ncomp, nVertLevels, nCells)
    mesh : Mesh
    edge_tensor : (ncomp, nVertLevels, nEdges), overwritten
    """
    cell1 = mesh.cellsOnEdge[:, 0]
    cell2 = mesh.cellsOnEdge[:, 1]
    edge_tensor[...] = 0.5 * (cell_tensor[..., cell1] + cell_tensor[..., cell2])
    return edge_tensor


def divergence_of_tensor_r3_cell(
    edge_tensor: ArrayType, mesh: Mesh, div_tensor_r3_cell: ArrayType
):
    """Divergence of a symmetric edge tensor field, giving an R3 vector at cell centers.

    ``div T = 1/A sum(T . n_out dvEdge)`` over the edges of each cell.

    Parameters
    ----------
    edge_tensor : (6, nVertLevels, nEdges)
    mesh : Mesh
    div_tensor_r3_cell : (3, nVertLevels, nCells), overwritten
    """
    np = get_array_module(edge_tensor)

    # flux[i] = sum_j T_ij n_j
    flux = np.einsum("ijke,je->ike", full_tensor(edge_tensor), mesh.edgeNormalVectors)
    div_tensor_r3_cell[...] = mesh.edge_to_cell_sum(flux)
    return div_tensor_r3_cell


def vector_r3_cell_to_normal_vector_edge(
    cell_vector: ArrayType, mesh: Mesh, normal_vector_edge: ArrayType
):
    """Project a cell-centered R3 vector onto the edge normals.

    The vector is averaged from the two cells of each edge, then dotted with
    the edge normal.

    Parameters
    ----------
    cell_vector : (3, nVertLevels, nCells)
    mesh : Mesh
    normal_vector_edge : (nVertLevels, nEdges), overwritten
    """
    np = get_array_module(cell_vector)

    cell1 = mesh.cellsOnEdge[:, 0]
    cell2 = mesh.cellsOnEdge[:, 1]
    vector_edge = 0.5 * (cell_vector[..., cell1] + cell_vector[..., cell2])
    normal_vector_edge[...] = np.einsum(
        "ike,ie->ke", vector_edge, mesh.edgeNormalVectors
    )
    return normal_vector_edge
