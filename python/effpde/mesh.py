#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   mesh.py

@date   18 Oct 2026

@brief  Structured triangulation of a rectangular domain with homogeneous
        Dirichlet boundary

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


def node_index(i, j, nb_nodes):
    """
    Turn node coordinates (i, j) into their global node index.

    Parameters
    ----------
    i : int or array_like
        x-coordinate (integer) of the node
    j : int or array_like
        y-coordinate (integer) of the node
    nb_nodes : tuple of ints
        Number of nodes in the Cartesian directions

    Returns
    -------
    g : int or numpy.ndarray
        Global node index
    """
    Nx, Ny = nb_nodes
    return Ny*np.asarray(i) + np.asarray(j)


def make_grid(nb_grid_pts):
    r"""
    Make an array that contains all elements of the grid. The elements are
    described by the global node indices of their corners, listed in
    counter-clockwise order. Each grid box is split into two triangles that
    are stored consecutively:

        2                  1 ---0
        | \                 \   |
        |  \                 \  |
        |   \                 \ |
        0 --- 1                 2    (reversed numbering of the upper one)

    Parameters
    ----------
    nb_grid_pts : tuple of ints
        Number of grid boxes in the Cartesian directions

    Returns
    -------
    triangles_el : numpy.ndarray
        Array of shape (2*Nx*Ny, 3). The first index (suffix _e) identifies
        the element, the second index (suffix _l) the local node.
    """
    Nx, Ny = nb_grid_pts
    nb_nodes = Nx + 1, Ny + 1
    # Node positions on the subgrid that excludes the rightmost and topmost
    # nodes (suffix _G)
    x_G, y_G = np.mgrid[:Nx, :Ny]
    x_G = x_G.ravel()
    y_G = y_G.ravel()

    lower_triangles = np.vstack((node_index(x_G, y_G, nb_nodes),
                                 node_index(x_G + 1, y_G, nb_nodes),
                                 node_index(x_G, y_G + 1, nb_nodes)))
    upper_triangles = np.vstack((node_index(x_G + 1, y_G + 1, nb_nodes),
                                 node_index(x_G, y_G + 1, nb_nodes),
                                 node_index(x_G + 1, y_G, nb_nodes)))
    return np.vstack(
        (lower_triangles, upper_triangles)).T.reshape(-1, 3)


class StructuredMesh:
    """
    Rectangle [0, Lx] x [0, Ly] divided into Nx x Ny boxes, each of which is
    split into two linear triangles. Degrees of freedom are the interior
    nodes; boundary nodes carry the homogeneous Dirichlet value zero.

    Parameters
    ----------
    nb_grid_pts : tuple of ints
        Number of grid boxes (Nx, Ny)
    lengths : tuple of floats
        Physical size (Lx, Ly) of the domain (Default: (1, 1))
    """

    def __init__(self, nb_grid_pts, lengths=(1.0, 1.0)):
        nb_grid_pts = tuple(int(n) for n in nb_grid_pts)
        lengths = tuple(float(length) for length in lengths)
        if len(nb_grid_pts) != 2 or len(lengths) != 2:
            raise ValueError('Only two-dimensional domains are supported.')
        if min(nb_grid_pts) < 2:
            raise ValueError('Need at least two grid boxes per direction to '
                             'have interior nodes, got {}.'
                             .format(nb_grid_pts))
        if min(lengths) <= 0:
            raise ValueError('Domain lengths must be positive, got {}.'
                             .format(lengths))
        self.nb_grid_pts = nb_grid_pts
        self.lengths = lengths

        Nx, Ny = nb_grid_pts
        self.nb_nodes = (Nx + 1, Ny + 1)
        i_n, j_n = np.mgrid[:Nx + 1, :Ny + 1]
        # Suffix _n indicates global node index
        self.positions_n = np.stack(
            [i_n.ravel() * self.spacing[0], j_n.ravel() * self.spacing[1]],
            axis=1)
        self.triangles_el = make_grid(nb_grid_pts)

        on_boundary = ((i_n == 0) | (i_n == Nx) |
                       (j_n == 0) | (j_n == Ny)).ravel()
        self.boundary_nodes = np.flatnonzero(on_boundary)
        self.interior_nodes = np.flatnonzero(~on_boundary)

    @property
    def spacing(self):
        return tuple(length / n
                     for length, n in zip(self.lengths, self.nb_grid_pts))

    @property
    def nb_elements(self):
        return len(self.triangles_el)

    @property
    def nb_total_nodes(self):
        return len(self.positions_n)

    @property
    def nb_dofs(self):
        return len(self.interior_nodes)

    @property
    def areas_e(self):
        dx, dy = self.spacing
        return np.full(self.nb_elements, dx * dy / 2)

    @property
    def centroids_e(self):
        return self.positions_n[self.triangles_el].mean(axis=1)

    def shape_function_gradients(self):
        """
        Gradients of the linear shape functions, constant per element.

        Returns
        -------
        gradients_elc : numpy.ndarray
            Array of shape (nb_elements, 3, 2); element, local node and
            Cartesian direction.
        """
        x_el = self.positions_n[self.triangles_el, 0]
        y_el = self.positions_n[self.triangles_el, 1]
        twice_area_e = ((x_el[:, 1] - x_el[:, 0]) * (y_el[:, 2] - y_el[:, 0]) -
                        (x_el[:, 2] - x_el[:, 0]) * (y_el[:, 1] - y_el[:, 0]))
        # Cyclic permutations of the local nodes
        nxt = [1, 2, 0]
        prv = [2, 0, 1]
        gx_el = (y_el[:, nxt] - y_el[:, prv]) / twice_area_e[:, np.newaxis]
        gy_el = (x_el[:, prv] - x_el[:, nxt]) / twice_area_e[:, np.newaxis]
        return np.stack([gx_el, gy_el], axis=2)

    def extend(self, values_d):
        """Insert zero boundary values into a vector of interior values."""
        values_d = np.asarray(values_d)
        if values_d.shape[0] != self.nb_dofs:
            raise ValueError('Expected {} interior values, got {}.'
                             .format(self.nb_dofs, values_d.shape[0]))
        values_n = np.zeros((self.nb_total_nodes,) + values_d.shape[1:],
                            dtype=values_d.dtype)
        values_n[self.interior_nodes] = values_d
        return values_n

    def restrict(self, values_n):
        """Pick the interior values from a vector of nodal values."""
        values_n = np.asarray(values_n)
        if values_n.shape[0] != self.nb_total_nodes:
            raise ValueError('Expected {} nodal values, got {}.'
                             .format(self.nb_total_nodes, values_n.shape[0]))
        return values_n[self.interior_nodes]

    def evaluate(self, func):
        """Evaluate func(x, y) at all nodes."""
        return np.asarray(func(self.positions_n[:, 0], self.positions_n[:, 1]),
                          dtype=float) * np.ones(self.nb_total_nodes)

    def __repr__(self):
        return 'StructuredMesh(nb_grid_pts={}, lengths={})'.format(
            self.nb_grid_pts, self.lengths)
