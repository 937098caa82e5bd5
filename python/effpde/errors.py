#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   errors.py

@date   18 Oct 2026

@brief  Exceptions and warnings raised by the energy-matching optimizer and
        its finite-element backend

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


class SolveFailure(RuntimeError):
    """
    The macroscopic linear system could not be solved, e.g. because the
    candidate tensor renders the stiffness matrix singular or the iterative
    solver did not converge.

    Attributes
    ----------
    loading_index : int or None
        Index of the loading whose solve failed
    iteration : int or None
        Optimizer iteration during which the failure occurred
    tensor : EffectiveTensor or None
        Candidate tensor at the time of failure
    """

    def __init__(self, message, loading_index=None, iteration=None,
                 tensor=None):
        super().__init__(message)
        self.loading_index = loading_index
        self.iteration = iteration
        self.tensor = tensor


class ConfigurationMismatch(ValueError):
    """
    Number of loadings, number of oscillating energies and size of the
    loading set disagree.
    """
    pass


class OptimizationCancelled(RuntimeError):
    """
    The optimization was cancelled between two iterations.
    """

    def __init__(self, message, iteration=None, tensor=None):
        super().__init__(message)
        self.iteration = iteration
        self.tensor = tensor


class LineSearchExhausted(UserWarning):
    """
    Armijo backtracking used its full budget without satisfying the
    sufficient decrease condition. The run continues with the candidate at
    the smallest step size that was tried.
    """

    def __init__(self, message, iteration=None, step=None):
        super().__init__(message)
        self.iteration = iteration
        self.step = step
