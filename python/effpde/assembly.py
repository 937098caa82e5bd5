#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   assembly.py

@date   18 Oct 2026

@brief  Assembly of linear finite-element stiffness and mass matrices for
        the anisotropic diffusion operator -div(A grad u)

Copyright © 2026 effpde developers

effpde is free software; you can redistribute it and/or
modify it under the terms of the GNU Lesser General Public License as
published by the Free Software Foundation, either version 3, or (at
your option) any later version.

effpde is distributed in the hope that it will be useful, but
WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
Lesser General Public License for more details.

You should have received a copy of the GNU Lesser General Public License
along with effpde; see the file COPYING. If not, write to the
Free Software Foundation, Inc., 59 Temple Place - Suite 330,
Boston, MA 02111-1307, USA.

Additional permission under GNU GPL version 3 section 7

If you modify this Program, or any covered work, by linking or combining it
with proprietary FFT implementations or numerical libraries, containing parts
covered by the terms of those libraries' licenses, the licensors of this
Program grant you additional permission to convey the resulting work.
"""

import numpy as np
from scipy.sparse import coo_matrix

# NOTATION
# _l, _m are local node indices (0, 1 or 2)
# _c, _d are Cartesian indices (0 or 1)
# _e is the element index
# _n is the global node index


def _per_element(value, nb_elements, name):
    value_e = np.asarray(value, dtype=float)
    if value_e.ndim == 0:
        return np.full(nb_elements, float(value_e))
    if value_e.shape != (nb_elements,):
        raise ValueError("'{}' must be a scalar or have one entry per "
                         "element ({}), got shape {}."
                         .format(name, nb_elements, value_e.shape))
    return value_e


def _scatter(mesh, element_matrix_elm):
    """Sum element matrices into a sparse global matrix."""
    grid_el = mesh.triangles_el
    rows_elm = np.broadcast_to(grid_el[:, :, np.newaxis],
                               element_matrix_elm.shape)
    cols_elm = np.broadcast_to(grid_el[:, np.newaxis, :],
                               element_matrix_elm.shape)
    nb_nodes = mesh.nb_total_nodes
    # `coo_matrix` will automatically sum duplicate entries
    return coo_matrix(
        (element_matrix_elm.reshape(-1),
         (rows_elm.reshape(-1), cols_elm.reshape(-1))),
        shape=(nb_nodes, nb_nodes)).tocsr()


def assemble_stiffness(mesh, a11, a12, a22):
    """
    Assemble the stiffness matrix of -div(A grad u) on all nodes of the
    mesh (boundary conditions are not applied).

    Parameters
    ----------
    mesh : StructuredMesh
        Triangulation of the domain
    a11, a12, a22 : float or array_like
        Components of the diffusion tensor, either constant or with one value
        per element

    Returns
    -------
    stiffness_nn : scipy.sparse.csr_matrix
        Symmetric stiffness matrix
    """
    nb_elements = mesh.nb_elements
    a11_e = _per_element(a11, nb_elements, 'a11')
    a12_e = _per_element(a12, nb_elements, 'a12')
    a22_e = _per_element(a22, nb_elements, 'a22')
    tensor_ecd = np.stack([np.stack([a11_e, a12_e], axis=1),
                           np.stack([a12_e, a22_e], axis=1)], axis=1)

    gradients_elc = mesh.shape_function_gradients()
    element_matrix_elm = mesh.areas_e[:, np.newaxis, np.newaxis] * np.einsum(
        'elc,ecd,emd->elm', gradients_elc, tensor_ecd, gradients_elc)
    return _scatter(mesh, element_matrix_elm)


def assemble_mass(mesh):
    """
    Assemble the consistent mass matrix of linear triangles on all nodes.
    """
    reference_lm = (np.ones((3, 3)) + np.eye(3)) / 12
    element_matrix_elm = mesh.areas_e[:, np.newaxis, np.newaxis] * \
        reference_lm
    return _scatter(mesh, element_matrix_elm)


def restrict_to_interior(matrix_nn, mesh):
    """
    Remove the rows and columns of the boundary nodes, which enforces the
    homogeneous Dirichlet condition.
    """
    interior = mesh.interior_nodes
    return matrix_nn.tocsr()[interior][:, interior].tocsr()


class ComponentStiffness:
    """
    The stiffness matrix of a spatially constant tensor is linear in its
    components,

        K(A) = A11 Kxx + A12 K12 + A22 Kyy,

    with Kxx, K12 and Kyy assembled once for the tensors (1, 0, 0),
    (0, 1, 0) and (0, 0, 1). All matrices act on interior degrees of
    freedom only.

    For a discrete field u the quadratic forms yield the gradient integrals

        u.Kxx.u = int (du/dx)^2,
        u.K12.u = 2 int (du/dx)(du/dy),
        u.Kyy.u = int (du/dy)^2.

    Parameters
    ----------
    mesh : StructuredMesh
        Triangulation of the domain
    """

    def __init__(self, mesh):
        self.mesh = mesh
        self.Kxx = restrict_to_interior(
            assemble_stiffness(mesh, 1.0, 0.0, 0.0), mesh)
        self.K12 = restrict_to_interior(
            assemble_stiffness(mesh, 0.0, 1.0, 0.0), mesh)
        self.Kyy = restrict_to_interior(
            assemble_stiffness(mesh, 0.0, 0.0, 1.0), mesh)

    def matrix(self, tensor):
        a11, a12, a22 = tensor
        return (a11 * self.Kxx + a12 * self.K12 + a22 * self.Kyy).tocsc()

    def integrals(self, u):
        """
        Return the array (int (du/dx)^2, int (du/dx)(du/dy), int (du/dy)^2).
        """
        return np.array([u @ (self.Kxx @ u),
                         0.5 * (u @ (self.K12 @ u)),
                         u @ (self.Kyy @ u)])


def assemble_coefficient_stiffness(mesh, coefficient):
    """
    Stiffness matrix on the interior degrees of freedom for a coefficient
    field (x, y) -> (a11, a12, a22) sampled at the element centroids.
    """
    centroids_ec = mesh.centroids_e
    a11_e, a12_e, a22_e = coefficient(centroids_ec[:, 0], centroids_ec[:, 1])
    return restrict_to_interior(
        assemble_stiffness(mesh, a11_e, a12_e, a22_e), mesh)
