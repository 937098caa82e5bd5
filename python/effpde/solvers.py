#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   solvers.py

@date   18 Oct 2026

@brief  Linear solvers and the solve oracles for the macroscopic and the
        oscillating diffusion problems

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

import numpy as np
from scipy.sparse.linalg import splu

from .assembly import ComponentStiffness, assemble_coefficient_stiffness
from .errors import SolveFailure
from .tensor import EffectiveTensor

SOLVE_METHODS = ('direct', 'cg')


def conjugate_gradients(
    hessp: callable,
    b,
    x=None,
    tol: float = 1e-10,
    maxiter: int = 1000,
    callback: callable = None,
):
    """
    Conjugate gradient method for matrix-free solution of the linear problem
    Ax = b, where A is represented by the function hessp (which computes the
    product of A with a vector). The method iteratively refines the solution x
    until the residual ||Ax - b|| is less than tol*||b|| or until maxiter
    iterations are reached.

    Parameters
    ----------
    hessp : callable
        Function that computes the product of the Hessian matrix A with a
        vector. Signature: hessp(p) -> A.p
    b : numpy.ndarray
        Right-hand side vector.
    x : numpy.ndarray, optional
        Initial guess for the solution (modified in place). The default is
        a vector of zeros.
    tol : float, optional
        Relative tolerance for convergence. The default is 1e-10.
    maxiter : int, optional
        Maximum number of iterations. The default is 1000.
    callback : callable, optional
        Function to call after each iteration with signature:
        callback(iteration, state_dict) where state_dict contains:
        - "x": solution vector
        - "r": residual vector
        - "p": search direction
        - "rr": squared residual norm (float)

    Returns
    -------
    x : numpy.ndarray
        Solution to the system Ax = b.

    Raises
    ------
    RuntimeError
        If the algorithm does not converge within maxiter iterations,
        or if the residual becomes NaN (indicating numerical issues).
    """
    b = np.asarray(b, dtype=float)
    if x is None:
        x = np.zeros_like(b)
    tol_sq = tol * tol * (b @ b)

    # Initial residual and search direction
    r = b - hessp(x)
    p = r.copy()
    rr = r @ r

    if callback:
        callback(0, {"x": x, "r": r, "p": p, "rr": rr})

    if rr <= tol_sq:
        return x

    for iteration in range(maxiter):
        Ap = hessp(p)
        pAp = p @ Ap

        alpha = rr / pAp
        x += alpha * p
        r -= alpha * Ap
        next_rr = r @ r

        if callback:
            callback(iteration + 1, {"x": x, "r": r, "p": p, "rr": next_rr})

        # NaN indicates a matrix that is not positive definite
        if next_rr != next_rr:
            raise RuntimeError(
                "Residual became NaN - matrix may not be positive definite"
            )

        if next_rr <= tol_sq:
            return x

        beta = next_rr / rr
        rr = next_rr
        p = r + beta * p

    raise RuntimeError("Conjugate gradient algorithm did not converge")


class _LinearSolver:
    """
    Solves repeatedly with the same sparse matrix, either through a sparse
    LU factorization or through conjugate gradients.
    """

    def __init__(self, matrix, method='direct', tol=1e-10, maxiter=None):
        if method not in SOLVE_METHODS:
            raise ValueError("Unknown solve method '{}', choose one of {}."
                             .format(method, SOLVE_METHODS))
        self.matrix = matrix.tocsc()
        self.method = method
        self.tol = tol
        self.maxiter = maxiter if maxiter is not None else \
            10 * matrix.shape[0]
        self._lu = None
        if method == 'direct':
            try:
                self._lu = splu(self.matrix)
            except RuntimeError as err:
                raise SolveFailure(
                    'Factorization of the stiffness matrix failed: {}'
                    .format(err)) from err

    def solve(self, rhs):
        if self._lu is not None:
            x = self._lu.solve(np.asarray(rhs, dtype=float))
        else:
            try:
                x = conjugate_gradients(lambda p: self.matrix @ p, rhs,
                                        tol=self.tol, maxiter=self.maxiter)
            except RuntimeError as err:
                raise SolveFailure(str(err)) from err
        if not np.all(np.isfinite(x)):
            raise SolveFailure('Linear solve produced non-finite values.')
        return x


def solve_spd(matrix, rhs, method='direct', tol=1e-10, maxiter=None):
    """
    Solve a sparse symmetric positive-definite system.

    Parameters
    ----------
    matrix : scipy.sparse matrix
        System matrix
    rhs : numpy.ndarray
        Right-hand side
    method : str
        'direct' (sparse LU) or 'cg' (conjugate gradients)
        (Default: 'direct')
    tol : float
        Relative residual tolerance of conjugate gradients (Default: 1e-10)
    maxiter : int
        Iteration limit of conjugate gradients (Default: 10 x system size)

    Raises
    ------
    SolveFailure
        If the matrix is singular or the iteration does not converge
    """
    return _LinearSolver(matrix, method, tol, maxiter).solve(rhs)


class MacroscopicSolveOracle:
    """
    Solves the macroscopic problem -div(A grad u) = f_p with a spatially
    constant tensor A and homogeneous Dirichlet boundary conditions for the
    loadings of a loading set.

    The tensor-independent component matrices are assembled once. The
    factorization for the most recently requested tensor is kept so that
    the solves for all loadings of one cost evaluation share it; it is
    replaced as soon as a different tensor is requested.

    Parameters
    ----------
    mesh : StructuredMesh
        Coarse triangulation of the domain
    loadings : LoadingSet
        Load vectors on the interior degrees of freedom of `mesh`
    method : str
        'direct' or 'cg' (Default: 'direct')
    tol : float
        Relative tolerance for conjugate gradients (Default: 1e-10)
    maxiter : int
        Iteration limit for conjugate gradients (Default: 10 x nb_dofs)
    """

    def __init__(self, mesh, loadings, method='direct', tol=1e-10,
                 maxiter=None):
        if loadings.nb_dofs != mesh.nb_dofs:
            raise ValueError('Loading vectors have {} entries but the mesh '
                             'has {} degrees of freedom.'
                             .format(loadings.nb_dofs, mesh.nb_dofs))
        if method not in SOLVE_METHODS:
            raise ValueError("Unknown solve method '{}', choose one of {}."
                             .format(method, SOLVE_METHODS))
        self.mesh = mesh
        self.loadings = loadings
        self.method = method
        self.tol = tol
        self.maxiter = maxiter
        self.stiffness = ComponentStiffness(mesh)
        self._lock = threading.Lock()
        self._cached_tensor = None
        self._cached_solver = None

    @property
    def nb_loadings(self):
        return len(self.loadings)

    def _solver(self, tensor):
        with self._lock:
            if self._cached_tensor != tensor:
                if not tensor.is_finite():
                    raise SolveFailure(
                        'Tensor {} has non-finite components.'.format(tensor))
                self._cached_solver = _LinearSolver(
                    self.stiffness.matrix(tensor), self.method, self.tol,
                    self.maxiter)
                self._cached_tensor = tensor
            return self._cached_solver

    def solve(self, tensor, loading_index):
        """
        Return the interior values of the macroscopic solution for the given
        tensor and loading.
        """
        if not isinstance(tensor, EffectiveTensor):
            tensor = EffectiveTensor.from_array(tensor)
        try:
            return self._solver(tensor).solve(
                self.loadings.get(loading_index))
        except SolveFailure as err:
            err.loading_index = loading_index
            err.tensor = tensor
            raise

    def gradient_integrals(self, solution):
        return self.stiffness.integrals(solution)

    def energy(self, tensor, solution):
        """Strain energy int grad u . A grad u of a macroscopic solution."""
        return float(solution @ (self.stiffness.matrix(tensor) @ solution))


class OscillatingSolver:
    """
    Solves the fine-scale problem -div(a_eps grad u) = f with the oscillating
    coefficient sampled at the element centroids of a fine mesh.

    Parameters
    ----------
    mesh : StructuredMesh
        Fine triangulation that resolves the microstructure
    coefficient : callable
        Function (x, y) -> (a11, a12, a22) evaluated on arrays of positions
    method : str
        'direct' or 'cg' (Default: 'direct')
    """

    def __init__(self, mesh, coefficient, method='direct', tol=1e-10,
                 maxiter=None):
        self.mesh = mesh
        self.matrix = assemble_coefficient_stiffness(mesh, coefficient)
        self._solver = _LinearSolver(self.matrix, method, tol, maxiter)

    def solve(self, rhs):
        return self._solver.solve(rhs)
