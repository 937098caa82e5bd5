#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   optimization.py

@date   18 Oct 2026

@brief  Energy-matching optimization of the effective diffusion tensor:
        cost functional, analytical gradient, step policies and the
        fixed-budget iteration driver

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

import threading
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .errors import ConfigurationMismatch, LineSearchExhausted, \
    OptimizationCancelled, SolveFailure
from .tensor import EffectiveTensor

# Factors that turn the gradient integrals (Ixx, Ixy, Iyy) into the energy
# A11 Ixx + 2 A12 Ixy + A22 Iyy and into the derivatives of the cost
_ENERGY_WEIGHTS = np.array([1.0, 2.0, 1.0])
_GRADIENT_WEIGHTS = np.array([2.0, 4.0, 2.0])

# Relative change of the tensor below which a run is reported as stalled
SMALL_RELATIVE_CHANGE = 1e-3


class CostGradientEvaluator:
    """
    Evaluates the energy mismatch

        J(A) = sum_p (E_osc_p - E_p(A))^2

    between the oscillating energies E_osc_p and the macroscopic energies
    E_p(A) = int grad u_p . A grad u_p, where u_p is the macroscopic solution
    for loading p, and its exact gradient

        dJ/dA11 = sum_p 2 (E_osc_p - E_p) int (du_p/dx)^2
        dJ/dA12 = sum_p 4 (E_osc_p - E_p) int (du_p/dx)(du_p/dy)
        dJ/dA22 = sum_p 2 (E_osc_p - E_p) int (du_p/dy)^2

    Parameters
    ----------
    oracle : object
        Macroscopic solve oracle providing `nb_loadings`,
        `solve(tensor, index)`, `gradient_integrals(solution)` and
        `energy(tensor, solution)`
    oscillating_energies : array_like
        Target energies, one per loading
    nb_threads : int, optional
        Number of worker threads for the independent per-loading solves.
        Serial if None or 1. (Default: None)
    """

    def __init__(self, oracle, oscillating_energies, nb_threads=None):
        energies = np.array(oscillating_energies, dtype=float)
        if energies.ndim != 1:
            raise ValueError('Oscillating energies must be a sequence of '
                             'scalars, got shape {}.'.format(energies.shape))
        energies.flags.writeable = False
        self.oracle = oracle
        self.oscillating_energies = energies
        self.nb_threads = nb_threads
        self._nb_solves = 0
        self._lock = threading.Lock()

    @property
    def nb_loadings(self):
        return len(self.oscillating_energies)

    @property
    def nb_solves(self):
        """Number of oracle solves issued so far."""
        return self._nb_solves

    def _solve(self, tensor, loading_index):
        with self._lock:
            self._nb_solves += 1
        try:
            return self.oracle.solve(tensor, loading_index)
        except SolveFailure as err:
            if err.loading_index is None:
                err.loading_index = loading_index
            raise

    def solutions(self, tensor):
        """Macroscopic solutions for all loadings, in loading order."""
        indices = range(self.nb_loadings)
        if self.nb_threads is not None and self.nb_threads > 1 and \
                self.nb_loadings > 1:
            with ThreadPoolExecutor(max_workers=self.nb_threads) as executor:
                return list(executor.map(
                    lambda p: self._solve(tensor, p), indices))
        return [self._solve(tensor, p) for p in indices]

    def energies(self, tensor):
        """Macroscopic energies E_p(A) for all loadings."""
        return np.array([self.oracle.energy(tensor, u)
                         for u in self.solutions(tensor)])

    def cost(self, tensor):
        """Cost J(A) without the gradient integrals."""
        residual_p = self.oscillating_energies - self.energies(tensor)
        return float(residual_p @ residual_p)

    def evaluate(self, tensor):
        """
        Cost and gradient at a tensor.

        Parameters
        ----------
        tensor : EffectiveTensor
            Candidate tensor

        Returns
        -------
        cost : float
            J(A)
        gradient : numpy.ndarray
            (dJ/dA11, dJ/dA12, dJ/dA22)

        Raises
        ------
        SolveFailure
            If the oracle fails for any loading
        """
        integrals_pc = np.array([self.oracle.gradient_integrals(u)
                                 for u in self.solutions(tensor)])
        energies_p = integrals_pc @ (_ENERGY_WEIGHTS * tensor.array())
        residual_p = self.oscillating_energies - energies_p
        cost = float(residual_p @ residual_p)
        gradient = _GRADIENT_WEIGHTS * (residual_p @ integrals_pc)
        return cost, gradient


@dataclass(frozen=True)
class StepResult:
    """Outcome of one step policy application."""
    tensor: EffectiveTensor
    step: float
    nb_backtracks: int = 0
    exhausted: bool = False


@dataclass(frozen=True)
class FixedStep:
    """
    Gradient step with constant step size,

        A_next = A - rho grad J(A).

    Convergence depends on rho and is not guaranteed.
    """
    rho: float

    def __post_init__(self):
        if not np.isfinite(self.rho):
            raise ValueError('Step size must be finite, got {}.'
                             .format(self.rho))

    def next_candidate(self, tensor, cost, gradient, evaluator=None):
        return StepResult(tensor.axpy(-self.rho, gradient), self.rho)


@dataclass(frozen=True)
class Armijo:
    """
    Backtracking line search along d = -grad J(A). The step rho is accepted
    if

        J(A + rho d) <= J(A) + m1 rho <grad J(A), d>.

    Trial steps are rho0, rho0/2, ..., rho0/2**max_backtracks. If none of
    them is accepted the candidate at the smallest trial step is returned
    and flagged as exhausted.
    """
    rho0: float
    m1: float
    max_backtracks: int = 7

    def __post_init__(self):
        if not self.rho0 > 0:
            raise ValueError('Initial step must be positive, got {}.'
                             .format(self.rho0))
        if not 0 < self.m1 < 1:
            raise ValueError('Armijo parameter m1 must lie in (0, 1), got {}.'
                             .format(self.m1))
        if isinstance(self.max_backtracks, bool) or \
                int(self.max_backtracks) != self.max_backtracks or \
                self.max_backtracks < 0:
            raise ValueError('Number of backtracks must be a non-negative '
                             'integer, got {}.'.format(self.max_backtracks))
        object.__setattr__(self, 'max_backtracks', int(self.max_backtracks))

    def next_candidate(self, tensor, cost, gradient, evaluator):
        direction = -np.asarray(gradient, dtype=float)
        slope = float(np.asarray(gradient) @ direction)
        for nb_backtracks in range(self.max_backtracks + 1):
            rho = self.rho0 / 2 ** nb_backtracks
            candidate = tensor.axpy(rho, direction)
            if evaluator.cost(candidate) <= cost + self.m1 * rho * slope:
                return StepResult(candidate, rho, nb_backtracks)
        return StepResult(candidate, rho, self.max_backtracks, exhausted=True)


@dataclass(frozen=True)
class OptimizerConfig:
    """
    Immutable configuration of the energy-matching optimizer.

    Parameters
    ----------
    loading_count : int
        Number P of loadings; must match the oscillating energies and the
        loading set
    initial_tensor : EffectiveTensor or sequence of 3 floats
        Starting point (Default: (16, 0, 4))
    max_iterations : int
        Number of iterations that are carried out (Default: 400)
    step_policy : FixedStep or Armijo
        Step selection (Default: FixedStep(0.1))
    """
    loading_count: int
    initial_tensor: EffectiveTensor = EffectiveTensor(16.0, 0.0, 4.0)
    max_iterations: int = 400
    step_policy: object = FixedStep(0.1)

    def __post_init__(self):
        if not isinstance(self.initial_tensor, EffectiveTensor):
            object.__setattr__(self, 'initial_tensor',
                               EffectiveTensor.from_array(self.initial_tensor))
        if isinstance(self.max_iterations, bool) or \
                int(self.max_iterations) != self.max_iterations or \
                self.max_iterations < 1:
            raise ValueError('Maximum number of iterations must be a positive '
                             'integer, got {}.'.format(self.max_iterations))
        if self.loading_count < 1:
            raise ValueError('Need at least one loading, got {}.'
                             .format(self.loading_count))
        if not hasattr(self.step_policy, 'next_candidate'):
            raise ValueError('Step policy {!r} does not provide '
                             'next_candidate.'.format(self.step_policy))


@dataclass
class IterationRecord:
    """Cost and gradient at the candidate of one iteration and the step
    that was taken from it."""
    iteration: int
    tensor: EffectiveTensor
    cost: float
    gradient: np.ndarray
    step: float
    nb_backtracks: int = 0


@dataclass
class OptimizationResult:
    tensor: EffectiveTensor
    nb_iterations: int
    nb_solves: int
    trace: List[IterationRecord] = field(default_factory=list)
    warnings: List[LineSearchExhausted] = field(default_factory=list)
    initial_tensor: Optional[EffectiveTensor] = None

    @property
    def costs(self):
        return np.array([record.cost for record in self.trace])

    @property
    def relative_change(self):
        """
        Euclidean distance between the final and the initial tensor
        components, relative to the size of the initial tensor. Small values
        mean that the step size was too small to move the tensor.
        """
        if self.initial_tensor is None:
            return None
        initial = self.initial_tensor.array()
        change = np.linalg.norm(self.tensor.array() - initial)
        scale = np.linalg.norm(initial)
        # absolute change for a zero starting tensor
        return float(change / scale if scale > 0 else change)

    @property
    def stalled(self):
        """True if the tensor barely moved away from its starting point."""
        change = self.relative_change
        return change is not None and change < SMALL_RELATIVE_CHANGE

    @property
    def line_search_exhausted(self):
        return len(self.warnings) > 0


class Optimizer:
    """
    Fixed-budget descent for the effective tensor. Every iteration evaluates
    cost and gradient at the current candidate and replaces the candidate by
    the one proposed by the step policy. There is no convergence-based early
    stopping and no clamping of the tensor components.

    Parameters
    ----------
    config : OptimizerConfig
        Configuration of the run
    evaluator : CostGradientEvaluator
        Cost and gradient of the energy mismatch

    Raises
    ------
    ConfigurationMismatch
        If the loading count of the configuration, the number of oscillating
        energies and the number of loadings of the oracle disagree
    """

    def __init__(self, config, evaluator):
        nb_energies = evaluator.nb_loadings
        nb_oracle_loadings = evaluator.oracle.nb_loadings
        if not config.loading_count == nb_energies == nb_oracle_loadings:
            raise ConfigurationMismatch(
                'Loading count ({}), number of oscillating energies ({}) and '
                'size of the loading set ({}) disagree.'
                .format(config.loading_count, nb_energies,
                        nb_oracle_loadings))
        self.config = config
        self.evaluator = evaluator

    def run(self, callback: callable = None, verbose: bool = False,
            record_trace: bool = True,
            cancel: Optional[threading.Event] = None):
        """
        Carry out `config.max_iterations` iterations.

        Parameters
        ----------
        callback : callable, optional
            Function to call after each iteration with signature:
            callback(iteration, state_dict) where state_dict contains:
            - "tensor": candidate the iteration started from
            - "cost": cost at that candidate
            - "gradient": gradient at that candidate
            - "next": candidate for the next iteration
            - "step": accepted step size
        verbose : bool, optional
            Print one line per iteration. (Default: False)
        record_trace : bool, optional
            Keep an `IterationRecord` per iteration. (Default: True)
        cancel : threading.Event, optional
            Checked between iterations; if set, the run is aborted.

        Returns
        -------
        result : OptimizationResult
            Final tensor, trace and line search warnings

        Raises
        ------
        SolveFailure
            If a macroscopic solve fails; carries the iteration index and
            the candidate tensor of that iteration
        OptimizationCancelled
            If `cancel` is set between two iterations
        """
        policy = self.config.step_policy
        tensor = self.config.initial_tensor
        nb_solves_start = self.evaluator.nb_solves
        trace = []
        exhausted = []

        for iteration in range(self.config.max_iterations):
            if cancel is not None and cancel.is_set():
                raise OptimizationCancelled(
                    'Optimization cancelled before iteration {}.'
                    .format(iteration), iteration=iteration, tensor=tensor)
            try:
                cost, gradient = self.evaluator.evaluate(tensor)
                step = policy.next_candidate(tensor, cost, gradient,
                                             self.evaluator)
            except SolveFailure as err:
                raise SolveFailure(
                    'Macroscopic solve failed in iteration {} at tensor {}: '
                    '{}'.format(iteration, tensor, err),
                    loading_index=err.loading_index, iteration=iteration,
                    tensor=tensor) from err

            if step.exhausted:
                warning = LineSearchExhausted(
                    'Line search exhausted in iteration {}; continuing with '
                    'step {:.6g}.'.format(iteration, step.step),
                    iteration=iteration, step=step.step)
                warnings.warn(warning, stacklevel=2)
                exhausted.append(warning)

            if record_trace:
                trace.append(IterationRecord(iteration, tensor, cost,
                                             gradient, step.step,
                                             step.nb_backtracks))
            if verbose:
                print('iteration {:5d}: cost = {:.6e}, |grad| = {:.3e}, '
                      'tensor = {}, step = {:.3e}'
                      .format(iteration, cost, np.linalg.norm(gradient),
                              tensor, step.step))
            if callback:
                callback(iteration, {"tensor": tensor, "cost": cost,
                                     "gradient": gradient,
                                     "next": step.tensor,
                                     "step": step.step})
            tensor = step.tensor

        return OptimizationResult(
            tensor=tensor,
            nb_iterations=self.config.max_iterations,
            nb_solves=self.evaluator.nb_solves - nb_solves_start,
            trace=trace,
            warnings=exhausted,
            initial_tensor=self.config.initial_tensor)
