#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   energy.py

@date   18 Oct 2026

@brief  Strain energies of oscillating solutions, the target values of the
        energy-matching optimization

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

from .assembly import assemble_coefficient_stiffness


def strain_energy(matrix, u):
    """Quadratic form u.K.u, i.e. int grad u . a grad u for the discrete u."""
    return float(u @ (matrix @ u))


class EnergyOracle:
    """
    Computes the strain energies int grad u . a_eps grad u of persisted
    oscillating solutions on the mesh they were computed on.

    Parameters
    ----------
    mesh : StructuredMesh
        Fine triangulation of the oscillating solutions
    coefficient : callable
        Oscillating coefficient (x, y) -> (a11, a12, a22)
    """

    def __init__(self, mesh, coefficient):
        self.mesh = mesh
        self.matrix = assemble_coefficient_stiffness(mesh, coefficient)

    def energy(self, solution):
        solution = np.asarray(solution, dtype=float)
        if solution.shape != (self.mesh.nb_dofs,):
            raise ValueError('Solution has shape {} but the mesh has {} '
                             'degrees of freedom.'
                             .format(solution.shape, self.mesh.nb_dofs))
        return strain_energy(self.matrix, solution)

    def energies(self, solutions):
        """
        Energies of a sequence of solutions as a read-only array, in the
        order of the solutions.
        """
        energies = np.array([self.energy(u) for u in solutions])
        energies.flags.writeable = False
        return energies
