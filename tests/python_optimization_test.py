#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   python_optimization_test.py

@date   18 Oct 2026

@brief  Tests of the energy-matching cost, the step policies and the
        fixed-budget optimizer

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

import numpy as np
import pytest

from effpde import Armijo, ConfigurationMismatch, CostGradientEvaluator, \
    EffectiveTensor, FixedStep, LineSearchExhausted, OptimizationCancelled, \
    Optimizer, OptimizerConfig, SolveFailure

from python_plane_wave_oracle import PlaneWaveOracle


def finite_difference_gradient(evaluator, tensor, h=1e-6):
    gradient = np.zeros(3)
    for c in range(3):
        direction = np.zeros(3)
        direction[c] = h
        gradient[c] = (evaluator.cost(tensor.axpy(1, direction)) -
                       evaluator.cost(tensor.axpy(-1, direction))) / (2 * h)
    return gradient


class StubOracle:
    def __init__(self, nb_loadings):
        self.nb_loadings = nb_loadings


class StubEvaluator:
    """
    Evaluator with a prescribed constant gradient and a cost that grows
    along every trial step, so that no Armijo step is ever accepted.
    """

    def __init__(self, gradient, nb_loadings=3, nb_oracle_loadings=None):
        self.gradient = np.array(gradient, dtype=float)
        self.nb_loadings = nb_loadings
        self.oracle = StubOracle(nb_loadings if nb_oracle_loadings is None
                                 else nb_oracle_loadings)
        self.nb_solves = 0

    def evaluate(self, tensor):
        self.nb_solves += self.nb_loadings
        return 1.0, self.gradient

    def cost(self, tensor):
        self.nb_solves += self.nb_loadings
        return 2.0


def test_cost_vanishes_at_generating_tensor(plane_wave_oracle, true_tensor):
    energies = plane_wave_oracle.exact_energies(true_tensor)
    evaluator = CostGradientEvaluator(plane_wave_oracle, energies)
    cost, gradient = evaluator.evaluate(true_tensor)
    assert cost == pytest.approx(0, abs=1e-20)
    np.testing.assert_allclose(gradient, 0, atol=1e-10)


def test_evaluate_and_cost_agree(plane_wave_oracle, true_tensor):
    energies = plane_wave_oracle.exact_energies(true_tensor)
    evaluator = CostGradientEvaluator(plane_wave_oracle, energies)
    tensor = EffectiveTensor(16.0, 0.0, 4.0)
    cost, _ = evaluator.evaluate(tensor)
    assert evaluator.cost(tensor) == pytest.approx(cost, rel=1e-12)
    np.testing.assert_allclose(
        evaluator.energies(tensor),
        plane_wave_oracle.exact_energies(tensor), rtol=1e-12)


@pytest.mark.parametrize("tensor", [
    EffectiveTensor(2.5, 0.1, 1.5),
    EffectiveTensor(16.0, 0.0, 4.0),
    EffectiveTensor(1.0, -0.4, 3.0),
])
def test_gradient_plane_wave_finite_differences(plane_wave_oracle,
                                                true_tensor, tensor):
    energies = plane_wave_oracle.exact_energies(true_tensor)
    evaluator = CostGradientEvaluator(plane_wave_oracle, energies)
    _, gradient = evaluator.evaluate(tensor)
    np.testing.assert_allclose(
        gradient, finite_difference_gradient(evaluator, tensor),
        rtol=1e-6, atol=1e-9 * np.abs(gradient).max())


def test_gradient_finite_elements_finite_differences(fe_oracle, true_tensor):
    energies = [fe_oracle.energy(true_tensor,
                                 fe_oracle.solve(true_tensor, p))
                for p in range(fe_oracle.nb_loadings)]
    evaluator = CostGradientEvaluator(fe_oracle, energies)
    tensor = EffectiveTensor(2.5, 0.1, 1.5)
    _, gradient = evaluator.evaluate(tensor)
    np.testing.assert_allclose(
        gradient, finite_difference_gradient(evaluator, tensor),
        rtol=1e-5, atol=1e-9 * np.abs(gradient).max())


def test_threaded_evaluation_matches_serial(fe_oracle, true_tensor):
    energies = [1e-3, 2e-3, 3e-3]
    serial = CostGradientEvaluator(fe_oracle, energies)
    threaded = CostGradientEvaluator(fe_oracle, energies, nb_threads=3)
    cost, gradient = serial.evaluate(true_tensor)
    threaded_cost, threaded_gradient = threaded.evaluate(true_tensor)
    assert threaded_cost == pytest.approx(cost, rel=1e-12)
    np.testing.assert_allclose(threaded_gradient, gradient, rtol=1e-12)
    assert threaded.nb_solves == 3


def test_fixed_step_is_plain_gradient_step():
    tensor = EffectiveTensor(16.0, 0.0, 4.0)
    gradient = np.array([1.0, -2.0, 0.5])
    step = FixedStep(0.1).next_candidate(tensor, 3.0, gradient)
    np.testing.assert_allclose(step.tensor.array(), [15.9, 0.2, 3.95])
    assert step.step == 0.1
    assert not step.exhausted


def test_fixed_step_rejects_non_finite_step():
    with pytest.raises(ValueError):
        FixedStep(float('nan'))


@pytest.mark.parametrize("rho0,m1,max_backtracks", [
    (0.0, 0.5, 7),
    (-1.0, 0.5, 7),
    (0.1, 0.0, 7),
    (0.1, 1.0, 7),
    (0.1, 0.5, -1),
    (0.1, 0.5, 2.5),
    (0.1, 0.5, True),
])
def test_armijo_rejects_invalid_parameters(rho0, m1, max_backtracks):
    with pytest.raises(ValueError):
        Armijo(rho0, m1, max_backtracks)


def test_armijo_integral_backtracks_become_int():
    policy = Armijo(0.1, 0.1, 7.0)
    assert isinstance(policy.max_backtracks, int)
    assert policy == Armijo(0.1, 0.1, 7)
    gradient = np.array([1.0, 0.0, 0.0])
    step = policy.next_candidate(EffectiveTensor(16.0, 0.0, 4.0), 1.0,
                                 gradient, StubEvaluator(gradient))
    assert step.nb_backtracks == 7
    assert step.step == 0.1 / 128


def test_armijo_sufficient_decrease(plane_wave_oracle, true_tensor):
    energies = plane_wave_oracle.exact_energies(true_tensor)
    evaluator = CostGradientEvaluator(plane_wave_oracle, energies)
    tensor = EffectiveTensor(2.5, 0.1, 1.5)
    cost, gradient = evaluator.evaluate(tensor)
    # rho0 small enough that every trial tensor stays positive definite
    policy = Armijo(0.01, 1e-4, max_backtracks=30)
    step = policy.next_candidate(tensor, cost, gradient, evaluator)
    assert not step.exhausted
    assert step.step == 0.01 / 2 ** step.nb_backtracks
    assert step.tensor.is_positive_definite()
    assert evaluator.cost(step.tensor) <= \
        cost - 1e-4 * step.step * (gradient @ gradient)


def test_armijo_accepts_first_trial_on_easy_descent(plane_wave_oracle,
                                                     true_tensor):
    energies = plane_wave_oracle.exact_energies(true_tensor)
    evaluator = CostGradientEvaluator(plane_wave_oracle, energies)
    tensor = EffectiveTensor(2.5, 0.1, 1.5)
    cost, gradient = evaluator.evaluate(tensor)
    step = Armijo(1e-5, 1e-4).next_candidate(tensor, cost, gradient,
                                             evaluator)
    assert step.nb_backtracks == 0
    assert step.step == 1e-5


@pytest.mark.parametrize("m1", [1e-4, 0.1])
def test_armijo_exhausted_returns_smallest_trial(m1):
    tensor = EffectiveTensor(16.0, 0.0, 4.0)
    gradient = np.array([1.0, 0.0, 0.0])
    step = Armijo(0.1, m1).next_candidate(tensor, 1.0, gradient,
                                          StubEvaluator(gradient))
    assert step.exhausted
    assert step.step == 0.1 / 128
    assert step.nb_backtracks == 7
    np.testing.assert_allclose(step.tensor.array(),
                               [16.0 - 0.1 / 128, 0.0, 4.0])


def test_optimizer_config_defaults():
    config = OptimizerConfig(loading_count=3)
    assert config.initial_tensor == EffectiveTensor(16.0, 0.0, 4.0)
    assert config.max_iterations == 400
    assert config.step_policy == FixedStep(0.1)


@pytest.mark.parametrize("kwargs", [
    dict(loading_count=0),
    dict(loading_count=3, max_iterations=0),
    dict(loading_count=3, max_iterations=2.5),
    dict(loading_count=3, initial_tensor=(1.0, 2.0)),
    dict(loading_count=3, step_policy='fixed'),
])
def test_optimizer_config_validation(kwargs):
    with pytest.raises(ValueError):
        OptimizerConfig(**kwargs)


def test_fixed_step_iterations_are_pure_gradient_steps(plane_wave_oracle,
                                                       true_tensor):
    energies = plane_wave_oracle.exact_energies(true_tensor)
    evaluator = CostGradientEvaluator(plane_wave_oracle, energies)
    rho = 1e-3
    config = OptimizerConfig(loading_count=3, initial_tensor=(2.5, 0.1, 1.5),
                             max_iterations=5, step_policy=FixedStep(rho))
    result = Optimizer(config, evaluator).run()

    assert len(result.trace) == 5
    assert result.trace[0].tensor == EffectiveTensor(2.5, 0.1, 1.5)
    for record, following in zip(result.trace[:-1], result.trace[1:]):
        assert following.tensor == record.tensor.axpy(-rho, record.gradient)
    last = result.trace[-1]
    assert result.tensor == last.tensor.axpy(-rho, last.gradient)


def test_fixed_step_solve_count(true_tensor):
    oracle = PlaneWaveOracle([(1, 0), (0, 1), (1, 1)])
    evaluator = CostGradientEvaluator(oracle,
                                      oracle.exact_energies(true_tensor))
    config = OptimizerConfig(loading_count=3, initial_tensor=(2.5, 0.1, 1.5),
                             max_iterations=7, step_policy=FixedStep(1e-3))
    result = Optimizer(config, evaluator).run()
    assert result.nb_iterations == 7
    assert result.nb_solves == 7 * 3
    assert oracle.nb_solves == 7 * 3


def test_armijo_solve_count(true_tensor):
    oracle = PlaneWaveOracle([(1, 0), (0, 1), (1, 1)])
    evaluator = CostGradientEvaluator(oracle,
                                      oracle.exact_energies(true_tensor))
    config = OptimizerConfig(loading_count=3, initial_tensor=(2.5, 0.1, 1.5),
                             max_iterations=7,
                             step_policy=Armijo(0.01, 1e-4))
    result = Optimizer(config, evaluator).run()
    assert result.nb_solves >= 7 * 3 + 7 * 3
    assert result.nb_solves == oracle.nb_solves


def test_armijo_run_decreases_cost_monotonically(plane_wave_oracle,
                                                 true_tensor):
    energies = plane_wave_oracle.exact_energies(true_tensor)
    evaluator = CostGradientEvaluator(plane_wave_oracle, energies)
    config = OptimizerConfig(loading_count=3, initial_tensor=(2.2, 0.2, 1.1),
                             max_iterations=300,
                             step_policy=Armijo(0.005, 1e-4,
                                                max_backtracks=20))
    with warnings.catch_warnings():
        warnings.simplefilter("error", LineSearchExhausted)
        result = Optimizer(config, evaluator).run()

    costs = result.costs
    assert np.all(np.diff(costs) <= 0)
    assert costs[-1] < 1e-4 * costs[0]
    np.testing.assert_allclose(result.tensor.array(), true_tensor.array(),
                               atol=1e-2)
    assert not result.line_search_exhausted

    # Sufficient decrease along d = -grad J for every accepted step; the
    # trace costs come from the gradient path, hence the round-off slack
    m1 = config.step_policy.m1
    slack = 1e-10 * costs[0]
    next_costs = list(costs[1:]) + [evaluator.cost(result.tensor)]
    for record, next_cost in zip(result.trace, next_costs):
        decrease = m1 * record.step * (record.gradient @ record.gradient)
        assert next_cost <= record.cost - decrease + slack


def test_relative_change_flags_a_stalled_run(plane_wave_oracle, true_tensor):
    energies = plane_wave_oracle.exact_energies(true_tensor)
    initial = EffectiveTensor(2.5, 0.1, 1.5)
    results = []
    for rho in (1e-9, 1e-3):
        evaluator = CostGradientEvaluator(plane_wave_oracle, energies)
        config = OptimizerConfig(loading_count=3, initial_tensor=initial,
                                 max_iterations=5, step_policy=FixedStep(rho))
        results.append(Optimizer(config, evaluator).run())
    stalled, moving = results

    assert stalled.initial_tensor == initial
    assert stalled.stalled
    assert stalled.relative_change < 1e-6
    assert not moving.stalled
    np.testing.assert_allclose(
        moving.relative_change,
        np.linalg.norm(moving.tensor.array() - initial.array()) /
        np.linalg.norm(initial.array()))


def test_relative_change_from_zero_tensor_is_absolute():
    evaluator = StubEvaluator([1.0, 0.0, 0.0])
    config = OptimizerConfig(loading_count=3, initial_tensor=(0.0, 0.0, 0.0),
                             max_iterations=2, step_policy=FixedStep(0.5))
    result = Optimizer(config, evaluator).run()
    assert result.tensor == EffectiveTensor(-1.0, 0.0, 0.0)
    assert result.relative_change == 1.0
    assert not result.stalled


def test_no_clamping_of_components():
    evaluator = StubEvaluator([-5.0, 10.0, 30.0])
    config = OptimizerConfig(loading_count=3, initial_tensor=(1.0, 0.0, 1.0),
                             max_iterations=3, step_policy=FixedStep(0.1))
    result = Optimizer(config, evaluator).run()
    np.testing.assert_allclose(result.tensor.array(), [2.5, -3.0, -8.0])
    assert not result.tensor.is_positive_definite()


@pytest.mark.parametrize("m1", [1e-4, 0.1])
def test_line_search_exhausted_warning(m1):
    evaluator = StubEvaluator([1.0, 0.0, 0.0])
    config = OptimizerConfig(loading_count=3, max_iterations=2,
                             step_policy=Armijo(0.1, m1))
    with pytest.warns(LineSearchExhausted) as record:
        result = Optimizer(config, evaluator).run()

    assert len(record) == 2
    assert [w.message.iteration for w in record] == [0, 1]
    assert all(w.message.step == 0.1 / 128 for w in record)
    assert result.line_search_exhausted
    assert len(result.warnings) == 2
    assert [r.step for r in result.trace] == [0.1 / 128] * 2
    np.testing.assert_allclose(result.tensor.array(),
                               [16.0 - 2 * 0.1 / 128, 0.0, 4.0])
    # one evaluation and eight rejected trials per iteration
    assert result.nb_solves == 2 * (1 + 8) * 3


def test_loading_count_mismatch(plane_wave_oracle):
    evaluator = CostGradientEvaluator(plane_wave_oracle, [1.0, 2.0, 3.0])
    with pytest.raises(ConfigurationMismatch):
        Optimizer(OptimizerConfig(loading_count=4), evaluator)


def test_energy_count_mismatch(plane_wave_oracle):
    evaluator = CostGradientEvaluator(plane_wave_oracle, [1.0, 2.0])
    with pytest.raises(ConfigurationMismatch):
        Optimizer(OptimizerConfig(loading_count=2), evaluator)


def test_oracle_loading_count_mismatch():
    # Three energies and a matching configuration, but two loadings
    evaluator = StubEvaluator([1.0, 0.0, 0.0], nb_oracle_loadings=2)
    with pytest.raises(ConfigurationMismatch) as excinfo:
        Optimizer(OptimizerConfig(loading_count=3), evaluator)
    assert "(2)" in str(excinfo.value)
    assert evaluator.nb_solves == 0


def test_three_loadings_two_energies_rejected_before_iterating(
        plane_wave_oracle):
    evaluator = CostGradientEvaluator(plane_wave_oracle, [1.0, 2.0])
    with pytest.raises(ConfigurationMismatch):
        Optimizer(OptimizerConfig(loading_count=3), evaluator)
    assert plane_wave_oracle.nb_solves == 0


def test_mismatch_is_a_value_error(plane_wave_oracle):
    evaluator = CostGradientEvaluator(plane_wave_oracle, [1.0])
    with pytest.raises(ValueError):
        Optimizer(OptimizerConfig(loading_count=1), evaluator)


def test_solve_failure_carries_iteration_context(true_tensor):
    # Solves 0-5 belong to iterations 0 and 1, solve 7 is loading 1 of
    # iteration 2
    oracle = PlaneWaveOracle([(1, 0), (0, 1), (1, 1)], fail_at_solve=7)
    evaluator = CostGradientEvaluator(oracle,
                                      oracle.exact_energies(true_tensor))
    config = OptimizerConfig(loading_count=3, initial_tensor=(2.5, 0.1, 1.5),
                             max_iterations=10, step_policy=FixedStep(1e-3))
    with pytest.raises(SolveFailure) as excinfo:
        Optimizer(config, evaluator).run()

    err = excinfo.value
    assert err.iteration == 2
    assert err.loading_index == 1
    assert isinstance(err.tensor, EffectiveTensor)
    assert isinstance(err.__cause__, SolveFailure)


def test_solve_failure_for_indefinite_candidate(plane_wave_oracle):
    evaluator = CostGradientEvaluator(plane_wave_oracle, [1.0, 1.0, 1.0])
    config = OptimizerConfig(loading_count=3,
                             initial_tensor=(-1.0, 0.0, 1.0),
                             max_iterations=1)
    with pytest.raises(SolveFailure) as excinfo:
        Optimizer(config, evaluator).run()
    assert excinfo.value.iteration == 0
    assert excinfo.value.loading_index == 0
    assert excinfo.value.tensor == EffectiveTensor(-1.0, 0.0, 1.0)


def test_cancellation_between_iterations(plane_wave_oracle, true_tensor):
    evaluator = CostGradientEvaluator(
        plane_wave_oracle, plane_wave_oracle.exact_energies(true_tensor))
    config = OptimizerConfig(loading_count=3, initial_tensor=(2.5, 0.1, 1.5),
                             max_iterations=10, step_policy=FixedStep(1e-3))
    cancel = threading.Event()

    def callback(iteration, state):
        if iteration == 1:
            cancel.set()

    with pytest.raises(OptimizationCancelled) as excinfo:
        Optimizer(config, evaluator).run(callback=callback, cancel=cancel)
    assert excinfo.value.iteration == 2
    assert evaluator.nb_solves == 2 * 3


def test_callback_and_trace(plane_wave_oracle, true_tensor):
    evaluator = CostGradientEvaluator(
        plane_wave_oracle, plane_wave_oracle.exact_energies(true_tensor))
    config = OptimizerConfig(loading_count=3, initial_tensor=(2.5, 0.1, 1.5),
                             max_iterations=4, step_policy=FixedStep(1e-3))
    states = []
    result = Optimizer(config, evaluator).run(
        callback=lambda it, state: states.append((it, state)),
        record_trace=False)

    assert [it for it, _ in states] == [0, 1, 2, 3]
    assert result.trace == []
    for (_, state), (_, following) in zip(states[:-1], states[1:]):
        assert following["tensor"] == state["next"]
    assert states[-1][1]["next"] == result.tensor


def test_verbose_output(plane_wave_oracle, true_tensor, capsys):
    evaluator = CostGradientEvaluator(
        plane_wave_oracle, plane_wave_oracle.exact_energies(true_tensor))
    config = OptimizerConfig(loading_count=3, initial_tensor=(2.5, 0.1, 1.5),
                             max_iterations=2, step_policy=FixedStep(1e-3))
    Optimizer(config, evaluator).run(verbose=True)
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2
    assert lines[0].startswith('iteration     0')


def test_reference_scenario_is_deterministic(fe_oracle):
    # Oscillating energies of the periodic reference microstructure with
    # three coscos loadings
    energies = [5.63185e-05, 5.07312e-05, 4.89079e-05]
    config = OptimizerConfig(loading_count=3)

    results = []
    for _ in range(2):
        evaluator = CostGradientEvaluator(fe_oracle, energies)
        results.append(Optimizer(config, evaluator).run())
    first, second = results

    assert first.nb_iterations == 400
    assert first.nb_solves == 1200
    assert len(first.trace) == 400
    assert first.tensor == second.tensor
    np.testing.assert_array_equal(first.costs, second.costs)
    assert first.tensor.is_finite()
    assert first.costs[-1] <= first.costs[0]
