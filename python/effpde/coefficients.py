#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   coefficients.py

@date   18 Oct 2026

@brief  Rapidly oscillating diffusion coefficients of model microstructures

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

from .tensor import EffectiveTensor


def periodic(epsilon, amplitude=1.5, mean=2.0):
    """
    Isotropic periodic coefficient

        a(x, y) = (mean + amplitude sin(2 pi x / eps))
                  (mean + amplitude sin(2 pi y / eps))

    Returns a function (x, y) -> (a11, a12, a22).
    """
    if abs(amplitude) >= mean:
        raise ValueError('The coefficient must stay positive: need '
                         '|amplitude| < mean.')

    def coefficient(x, y):
        a = (mean + amplitude * np.sin(2 * np.pi * x / epsilon)) * \
            (mean + amplitude * np.sin(2 * np.pi * y / epsilon))
        return a, np.zeros_like(a), a
    return coefficient


def laminate(epsilon, a1=1.0, a2=10.0, volume_fraction=0.5):
    """
    Two-phase isotropic laminate with layers normal to x. Phase 1 occupies
    the fraction `volume_fraction` of every period of length eps.
    """
    if min(a1, a2) <= 0:
        raise ValueError('Phase coefficients must be positive.')
    if not 0 < volume_fraction < 1:
        raise ValueError('Volume fraction must lie in (0, 1).')

    def coefficient(x, y):
        phase1 = np.mod(np.asarray(x) / epsilon, 1.0) < volume_fraction
        a = np.where(phase1, a1, a2) * np.ones_like(y, dtype=float)
        return a, np.zeros_like(a), a
    return coefficient


def checkerboard(epsilon, a1=1.0, a2=10.0):
    """
    Two-phase isotropic checkerboard with square cells of side eps/2.
    """
    if min(a1, a2) <= 0:
        raise ValueError('Phase coefficients must be positive.')

    def coefficient(x, y):
        parity = (np.floor(2 * np.asarray(x) / epsilon) +
                  np.floor(2 * np.asarray(y) / epsilon)).astype(int) % 2
        a = np.where(parity == 0, a1, a2).astype(float)
        return a, np.zeros_like(a), a
    return coefficient


COEFFICIENT_CASES = {
    'periodic': periodic,
    'laminate': laminate,
    'checkerboard': checkerboard,
}


def make_coefficient(case, epsilon, **kwargs):
    """
    Construct the oscillating coefficient of a named microstructure.

    Parameters
    ----------
    case : str
        One of 'periodic', 'laminate' or 'checkerboard'
    epsilon : float
        Period of the microstructure
    kwargs
        Parameters passed on to the microstructure factory
    """
    try:
        factory = COEFFICIENT_CASES[case]
    except KeyError:
        raise ValueError("Unknown coefficient case '{}', choose one of {}."
                         .format(case, sorted(COEFFICIENT_CASES))) from None
    if epsilon <= 0:
        raise ValueError('Period must be positive, got {}.'.format(epsilon))
    return factory(epsilon, **kwargs)


def reference_tensor(case, **kwargs):
    """
    Analytically known homogenized tensor of a microstructure, or None when
    there is no closed form.
    """
    if case == 'laminate':
        a1 = kwargs.get('a1', 1.0)
        a2 = kwargs.get('a2', 10.0)
        phi = kwargs.get('volume_fraction', 0.5)
        harmonic = 1 / (phi / a1 + (1 - phi) / a2)
        arithmetic = phi * a1 + (1 - phi) * a2
        return EffectiveTensor(harmonic, 0.0, arithmetic)
    if case == 'checkerboard':
        a1 = kwargs.get('a1', 1.0)
        a2 = kwargs.get('a2', 10.0)
        return EffectiveTensor.isotropic(np.sqrt(a1 * a2))
    return None


def mean_bounds(mesh, coefficient):
    """
    Arithmetic (Voigt-type) and harmonic (Reuss-type) means of the
    coefficient components sampled at the element centroids of a mesh.

    Returns
    -------
    arithmetic, harmonic : EffectiveTensor
        Componentwise means; the harmonic mean of a vanishing off-diagonal
        component is reported as zero
    """
    centroids_ec = mesh.centroids_e
    components_ce = np.array(coefficient(centroids_ec[:, 0],
                                         centroids_ec[:, 1]), dtype=float)
    weights_e = mesh.areas_e / mesh.areas_e.sum()
    arithmetic = components_ce @ weights_e
    harmonic = np.zeros(3)
    for c in (0, 2):
        harmonic[c] = 1 / (weights_e @ (1 / components_ce[c]))
    return (EffectiveTensor.from_array(arithmetic),
            EffectiveTensor.from_array(harmonic))
