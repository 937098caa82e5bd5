#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   tensor.py

@date   18 Oct 2026

@brief  Symmetric 2x2 diffusion tensor described by its three independent
        components

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


class EffectiveTensor:
    """
    Symmetric 2x2 tensor

        A = [[a11, a12],
             [a12, a22]]

    stored as the component vector (a11, a12, a22). Instances are immutable;
    arithmetic returns new tensors. No positivity constraint is imposed on
    the components, `is_positive_definite` only reports the state.

    Parameters
    ----------
    a11 : float
        xx-component
    a12 : float
        xy-component (equal to the yx-component)
    a22 : float
        yy-component
    """

    __slots__ = ('_components',)

    def __init__(self, a11, a12, a22):
        components = np.array([a11, a12, a22], dtype=float)
        components.flags.writeable = False
        self._components = components

    @classmethod
    def from_array(cls, components):
        """Construct from a sequence (a11, a12, a22)."""
        components = np.asarray(components, dtype=float)
        if components.shape != (3,):
            raise ValueError('A tensor needs exactly three components '
                             '(a11, a12, a22), got shape {}.'
                             .format(components.shape))
        return cls(*components)

    @classmethod
    def from_matrix(cls, matrix):
        """Construct from a symmetric 2x2 matrix."""
        matrix = np.asarray(matrix, dtype=float)
        if matrix.shape != (2, 2):
            raise ValueError('Expected a 2x2 matrix, got shape {}.'
                             .format(matrix.shape))
        if matrix[0, 1] != matrix[1, 0]:
            raise ValueError('Matrix is not symmetric.')
        return cls(matrix[0, 0], matrix[0, 1], matrix[1, 1])

    @classmethod
    def isotropic(cls, value):
        return cls(value, 0.0, value)

    @property
    def a11(self):
        return float(self._components[0])

    @property
    def a12(self):
        return float(self._components[1])

    @property
    def a22(self):
        return float(self._components[2])

    def array(self):
        """Return a (read-only) view of the components (a11, a12, a22)."""
        return self._components

    def matrix(self):
        a11, a12, a22 = self._components
        return np.array([[a11, a12], [a12, a22]])

    @property
    def trace(self):
        return self.a11 + self.a22

    @property
    def determinant(self):
        return self.a11 * self.a22 - self.a12 ** 2

    def is_positive_definite(self):
        return self.a11 > 0 and self.determinant > 0

    def is_finite(self):
        return bool(np.all(np.isfinite(self._components)))

    def axpy(self, alpha, direction):
        """Return the tensor with components self + alpha * direction."""
        return EffectiveTensor.from_array(
            self._components + alpha * np.asarray(direction, dtype=float))

    def __iter__(self):
        return iter(float(c) for c in self._components)

    def __eq__(self, other):
        if not isinstance(other, EffectiveTensor):
            return NotImplemented
        return bool(np.array_equal(self._components, other._components))

    def __hash__(self):
        return hash(self._components.tobytes())

    def __repr__(self):
        return 'EffectiveTensor(a11={!r}, a12={!r}, a22={!r})'.format(
            self.a11, self.a12, self.a22)

    def __str__(self):
        return '(A11={:.6g}, A12={:.6g}, A22={:.6g})'.format(*self)
