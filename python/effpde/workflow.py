#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   workflow.py

@date   18 Oct 2026

@brief  Two-phase workflow: generation of oscillating reference solutions and
        estimation of the effective tensor from their energies

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

import copy
import os

import numpy as np

from .coefficients import make_coefficient
from .energy import EnergyOracle, strain_energy
from .file_io import PARAMETERS_FILE_NAME, case_directory, read_parameters, \
    read_solution, solution_path, write_parameters, write_solution, write_vtk
from .loadings import LoadingSet
from .mesh import StructuredMesh
from .optimization import Armijo, CostGradientEvaluator, FixedStep, \
    Optimizer, OptimizerConfig
from .solvers import MacroscopicSolveOracle, OscillatingSolver

STEP_POLICIES = ('fixed', 'armijo')

DEFAULT_CONFIG = {
    # Microstructure
    'case': 'periodic',
    'epsilon': 0.125,
    'coefficient_parameters': {},
    # Domain and discretizations
    'lengths': [1.0, 1.0],
    'fine_nb_grid_pts': [64, 64],
    'coarse_nb_grid_pts': [16, 16],
    # Loadings
    'nb_loadings': 3,
    'loading_kind': 'coscos',
    'orthonormal': False,
    # Linear solver
    'solve_method': 'direct',
    'tol': 1e-10,
    # Persistence
    'output_dir': 'Solution',
    'write_vtk': False,
    # Target energies; read from the persisted solutions if None
    'oscillating_energies': None,
    # Optimizer
    'initial_tensor': [16.0, 0.0, 4.0],
    'max_iterations': 400,
    'step_policy': 'fixed',
    'rho': 0.1,
    'm1': 1e-4,
    'max_backtracks': 7,
    'nb_threads': None,
}


def load_config(file_name=None, **overrides):
    """
    Assemble a workflow configuration from the defaults, an optional JSON
    file and keyword overrides (in increasing priority). Overrides that are
    None are ignored.

    Raises
    ------
    ValueError
        For keys that are not part of `DEFAULT_CONFIG`
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    updates = {}
    if file_name is not None:
        updates.update(read_parameters(file_name))
    updates.update({key: value for key, value in overrides.items()
                    if value is not None})
    unknown = sorted(set(updates) - set(DEFAULT_CONFIG))
    if unknown:
        raise ValueError('Unknown configuration keys: {}'
                         .format(', '.join(unknown)))
    config.update(updates)
    return config


def make_step_policy(config):
    policy = config['step_policy']
    if policy == 'fixed':
        return FixedStep(config['rho'])
    elif policy == 'armijo':
        return Armijo(config['rho'], config['m1'], config['max_backtracks'])
    raise ValueError("Unknown step policy '{}', choose one of {}."
                     .format(policy, STEP_POLICIES))


def _case_directory(config):
    return case_directory(config['output_dir'], config['case'],
                          config['loading_kind'])


def _coefficient(config):
    return make_coefficient(config['case'], config['epsilon'],
                            **config['coefficient_parameters'])


def _fine_mesh(config):
    return StructuredMesh(config['fine_nb_grid_pts'], config['lengths'])


def generate_oscillating_solutions(config, verbose=False):
    """
    Solve the oscillating problem for every loading on the fine mesh and
    persist the solutions together with the parameters of the run.

    Parameters
    ----------
    config : dict
        Workflow configuration, see `DEFAULT_CONFIG`
    verbose : bool, optional
        Print progress. (Default: False)

    Returns
    -------
    paths : list of str
        Files of the solutions, in loading order
    energies : numpy.ndarray
        Strain energies of the solutions
    """
    mesh = _fine_mesh(config)
    coefficient = _coefficient(config)
    loadings = LoadingSet.trigonometric(
        mesh, config['nb_loadings'], config['loading_kind'],
        config['orthonormal'])
    solver = OscillatingSolver(mesh, coefficient, config['solve_method'],
                               config['tol'])

    paths = []
    energies = []
    solutions = {}
    for p, rhs in enumerate(loadings):
        u = solver.solve(rhs)
        path = solution_path(config['output_dir'], config['case'],
                             config['loading_kind'], p)
        write_solution(path, u)
        paths.append(path)
        energies.append(strain_energy(solver.matrix, u))
        solutions['solution_{}'.format(p)] = u
        if verbose:
            print('loading {}: energy = {:.6e} -> {}'
                  .format(p, energies[-1], path))

    directory = _case_directory(config)
    parameters = {key: config[key] for key in (
        'case', 'epsilon', 'coefficient_parameters', 'lengths',
        'fine_nb_grid_pts', 'nb_loadings', 'loading_kind', 'orthonormal')}
    parameters['nb_dofs'] = mesh.nb_dofs
    parameters['energies'] = energies
    write_parameters(os.path.join(directory, PARAMETERS_FILE_NAME),
                     parameters)
    if config['write_vtk']:
        write_vtk(os.path.join(directory, 'solutions.vtu'), mesh, solutions)
    energies = np.array(energies)
    energies.flags.writeable = False
    return paths, energies


def read_oscillating_energies(config):
    """
    Read the persisted oscillating solutions of a configuration and compute
    their strain energies on the fine mesh they were computed on.

    The discretization and microstructure are taken from the parameter file
    written by `generate_oscillating_solutions`, so that the energies are
    always evaluated with the coefficient the solutions belong to.
    """
    directory = _case_directory(config)
    parameters = read_parameters(os.path.join(directory, PARAMETERS_FILE_NAME))
    mesh = StructuredMesh(parameters['fine_nb_grid_pts'],
                          parameters['lengths'])
    coefficient = make_coefficient(parameters['case'], parameters['epsilon'],
                                   **parameters['coefficient_parameters'])
    solutions = [
        read_solution(solution_path(config['output_dir'], config['case'],
                                    config['loading_kind'], p),
                      nb_dofs=mesh.nb_dofs)
        for p in range(parameters['nb_loadings'])]
    return EnergyOracle(mesh, coefficient).energies(solutions)


def make_macroscopic_oracle(config):
    """Finite-element solve oracle for the macroscopic problem on the coarse
    mesh."""
    mesh = StructuredMesh(config['coarse_nb_grid_pts'], config['lengths'])
    loadings = LoadingSet.trigonometric(
        mesh, config['nb_loadings'], config['loading_kind'],
        config['orthonormal'])
    return MacroscopicSolveOracle(mesh, loadings, config['solve_method'],
                                  config['tol'])


def estimate_effective_tensor(config, callback=None, verbose=False,
                              cancel=None, oracle=None):
    """
    Fit the constant tensor of the macroscopic problem to the energies of
    the oscillating solutions.

    Parameters
    ----------
    config : dict
        Workflow configuration, see `DEFAULT_CONFIG`
    callback : callable, optional
        Passed on to `Optimizer.run`
    verbose : bool, optional
        Print one line per iteration. (Default: False)
    cancel : threading.Event, optional
        Passed on to `Optimizer.run`
    oracle : object, optional
        Macroscopic solve oracle; a finite-element oracle on the coarse mesh
        is built from the configuration if None

    Returns
    -------
    result : OptimizationResult
        Final tensor, trace and warnings of the run
    energies : numpy.ndarray
        Oscillating energies the tensor was fitted to

    Raises
    ------
    ConfigurationMismatch
        If the number of loadings, of energies and of load vectors disagree
    """
    if config['oscillating_energies'] is not None:
        energies = np.array(config['oscillating_energies'], dtype=float)
    else:
        energies = read_oscillating_energies(config)
    if oracle is None:
        oracle = make_macroscopic_oracle(config)

    evaluator = CostGradientEvaluator(oracle, energies,
                                      nb_threads=config['nb_threads'])
    optimizer_config = OptimizerConfig(
        loading_count=config['nb_loadings'],
        initial_tensor=config['initial_tensor'],
        max_iterations=config['max_iterations'],
        step_policy=make_step_policy(config))
    optimizer = Optimizer(optimizer_config, evaluator)
    result = optimizer.run(callback=callback, verbose=verbose, cancel=cancel)
    return result, evaluator.oscillating_energies
