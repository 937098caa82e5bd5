#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   loadings.py

@date   18 Oct 2026

@brief  Trigonometric right-hand sides used to probe the energy response of
        the medium

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

from .assembly import assemble_mass

LOADING_KINDS = ('coscos', 'sinsin')


def mode_pair(index):
    """
    Enumerate wavenumber pairs (k, l) by increasing total order k + l and,
    within one order, by decreasing k:

        0 -> (0, 0), 1 -> (1, 0), 2 -> (0, 1), 3 -> (2, 0), 4 -> (1, 1), ...
    """
    if index < 0:
        raise ValueError('Mode index must be non-negative, got {}.'
                         .format(index))
    order = 0
    while index > order:
        index -= order + 1
        order += 1
    return order - index, index


def trigonometric_mode(kind, index, lengths=(1.0, 1.0)):
    """
    Return the loading function f(x, y) number `index` of the given family.

    Parameters
    ----------
    kind : str
        'coscos' for cos(k pi x / Lx) cos(l pi y / Ly) or 'sinsin' for
        sin((k+1) pi x / Lx) sin((l+1) pi y / Ly)
    index : int
        Position in the enumeration of `mode_pair`
    lengths : tuple of floats
        Size of the domain (Default: (1, 1))
    """
    Lx, Ly = lengths
    k, l = mode_pair(index)
    if kind == 'coscos':
        def f(x, y):
            return np.cos(k * np.pi * x / Lx) * np.cos(l * np.pi * y / Ly)
    elif kind == 'sinsin':
        def f(x, y):
            return np.sin((k + 1) * np.pi * x / Lx) * \
                np.sin((l + 1) * np.pi * y / Ly)
    else:
        raise ValueError("Unknown loading kind '{}', choose one of {}."
                         .format(kind, LOADING_KINDS))
    return f


def orthonormalize(values_pn, mass_nn):
    """
    Modified Gram-Schmidt orthonormalization of nodal functions with respect
    to the discrete L2 inner product <f, g> = f.M.g.

    Parameters
    ----------
    values_pn : numpy.ndarray
        Nodal values, one function per row
    mass_nn : scipy.sparse matrix
        Mass matrix

    Returns
    -------
    basis_pn : numpy.ndarray
        Orthonormal functions spanning the same space, in the same order
    """
    basis_pn = np.array(values_pn, dtype=float)
    for p in range(len(basis_pn)):
        for q in range(p):
            basis_pn[p] -= (basis_pn[q] @ (mass_nn @ basis_pn[p])) * \
                basis_pn[q]
        norm = np.sqrt(basis_pn[p] @ (mass_nn @ basis_pn[p]))
        if norm <= 1e-12:
            raise ValueError('Loading {} is linearly dependent on the '
                             'previous ones.'.format(p))
        basis_pn[p] /= norm
    return basis_pn


class LoadingSet:
    """
    Ordered, read-only collection of load vectors on the interior degrees of
    freedom of a mesh.

    Parameters
    ----------
    vectors_pd : array_like
        Load vectors, one per row
    """

    def __init__(self, vectors_pd):
        vectors_pd = np.array(vectors_pd, dtype=float)
        if vectors_pd.ndim != 2 or len(vectors_pd) == 0:
            raise ValueError('Need a non-empty two-dimensional array of load '
                             'vectors, got shape {}.'.format(vectors_pd.shape))
        vectors_pd.flags.writeable = False
        self._vectors_pd = vectors_pd

    @classmethod
    def trigonometric(cls, mesh, nb_loadings, kind='coscos',
                      orthonormal=False):
        """
        Load vectors b_p = M f_p of the first `nb_loadings` trigonometric
        functions of a family, restricted to the interior nodes.

        Parameters
        ----------
        mesh : StructuredMesh
            Triangulation of the domain
        nb_loadings : int
            Number P of loadings
        kind : str
            Loading family, see `trigonometric_mode` (Default: 'coscos')
        orthonormal : bool
            Orthonormalize the functions in L2 before projection
            (Default: False)
        """
        if nb_loadings < 1:
            raise ValueError('Need at least one loading, got {}.'
                             .format(nb_loadings))
        mass_nn = assemble_mass(mesh)
        values_pn = np.array([
            mesh.evaluate(trigonometric_mode(kind, p, mesh.lengths))
            for p in range(nb_loadings)])
        if orthonormal:
            values_pn = orthonormalize(values_pn, mass_nn)
        rhs_pn = (mass_nn @ values_pn.T).T
        return cls(rhs_pn[:, mesh.interior_nodes])

    @property
    def nb_dofs(self):
        return self._vectors_pd.shape[1]

    def get(self, index):
        """Return load vector number `index` (read-only)."""
        if not 0 <= index < len(self):
            raise IndexError('Loading index {} out of range for {} loadings.'
                             .format(index, len(self)))
        return self._vectors_pd[index]

    def __len__(self):
        return len(self._vectors_pd)

    def __iter__(self):
        return iter(self._vectors_pd)

    def __getitem__(self, index):
        return self.get(index)
