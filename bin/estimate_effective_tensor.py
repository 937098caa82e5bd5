#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   estimate_effective_tensor.py

@date   18 Oct 2026

@brief  Fit the constant tensor of the macroscopic problem to the energies
        of persisted oscillating solutions (second phase of the estimation)

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

import argparse
import json
import warnings

try:
    import matplotlib.pyplot as plt
except ModuleNotFoundError:
    plt = None

from effpde.coefficients import mean_bounds, make_coefficient, \
    reference_tensor
from effpde.errors import LineSearchExhausted
from effpde.mesh import StructuredMesh
from effpde.workflow import STEP_POLICIES, estimate_effective_tensor, \
    load_config

parser = argparse.ArgumentParser(
    prog="estimate_effective_tensor",
    description="Estimate the effective diffusion tensor by matching the "
                "energies of macroscopic and oscillating solutions",
)

parser.add_argument(
    "-c",
    "--config",
    default=None,
    help="JSON file with workflow parameters (default: built-in defaults)",
)

parser.add_argument(
    "-n",
    "--nb-grid-pts",
    default=None,
    type=lambda s: [int(x) for x in s.split(",")],
    help="Coarse grid boxes as nx,ny (default: 16,16)",
)

parser.add_argument(
    "-a",
    "--initial-tensor",
    default=None,
    type=lambda s: [float(x) for x in s.split(",")],
    help="Initial tensor as a11,a12,a22 (default: 16,0,4)",
)

parser.add_argument(
    "-i",
    "--max-iterations",
    type=int,
    default=None,
    help="Number of optimizer iterations (default: 400)",
)

parser.add_argument(
    "-s",
    "--step-policy",
    choices=STEP_POLICIES,
    default=None,
    help="Step size selection (default: fixed)",
)

parser.add_argument(
    "-r",
    "--rho",
    type=float,
    default=None,
    help="Fixed step size or initial Armijo step (default: 0.1)",
)

parser.add_argument(
    "--m1",
    type=float,
    default=None,
    help="Armijo sufficient decrease parameter (default: 1e-4)",
)

parser.add_argument(
    "--max-backtracks",
    type=int,
    default=None,
    help="Maximum number of Armijo step halvings (default: 7)",
)

parser.add_argument(
    "-t",
    "--nb-threads",
    type=int,
    default=None,
    help="Threads for the per-loading solves (default: serial)",
)

parser.add_argument(
    "-p",
    "--plot",
    action="store_true",
    help="Show plot of the cost history (default: off)",
)

parser.add_argument(
    "-q",
    "--quiet",
    action="store_true",
    help="Suppress per-iteration output (default: off)",
)

parser.add_argument(
    "--json",
    action="store_true",
    help="Output results in JSON format (implies --quiet)",
)

args = parser.parse_args()

# JSON implies quiet mode
if args.json:
    args.quiet = True

config = load_config(
    args.config,
    coarse_nb_grid_pts=args.nb_grid_pts,
    initial_tensor=args.initial_tensor,
    max_iterations=args.max_iterations,
    step_policy=args.step_policy,
    rho=args.rho,
    m1=args.m1,
    max_backtracks=args.max_backtracks,
    nb_threads=args.nb_threads,
)

with warnings.catch_warnings():
    # Exhausted line searches are reported in the summary
    warnings.simplefilter("ignore", LineSearchExhausted)
    result, energies = estimate_effective_tensor(config,
                                                 verbose=not args.quiet)

tensor = result.tensor
reference = reference_tensor(config["case"],
                             **config["coefficient_parameters"])
arithmetic, harmonic = mean_bounds(
    StructuredMesh(config["fine_nb_grid_pts"], config["lengths"]),
    make_coefficient(config["case"], config["epsilon"],
                     **config["coefficient_parameters"]))

if args.json:
    results = {
        "config": config,
        "results": {
            "tensor": list(tensor),
            "positive_definite": bool(tensor.is_positive_definite()),
            "final_cost": float(result.costs[-1]),
            "nb_iterations": int(result.nb_iterations),
            "nb_solves": int(result.nb_solves),
            "nb_exhausted_line_searches": len(result.warnings),
            "relative_change": result.relative_change,
            "stalled": bool(result.stalled),
            "oscillating_energies": [float(e) for e in energies],
            "arithmetic_mean": list(arithmetic),
            "harmonic_mean": list(harmonic),
            "reference_tensor": None if reference is None else
            list(reference),
        },
    }
    print(json.dumps(results, indent=2))
else:
    print("\n" + "=" * 60)
    print("Effective tensor")
    print("=" * 60)
    print(f"A11 = {tensor.a11:.6f}")
    print(f"A12 = {tensor.a12:.6f}")
    print(f"A22 = {tensor.a22:.6f}")
    print(f"Positive definite: {tensor.is_positive_definite()}")
    print(f"Final cost: {result.costs[-1]:.6e}")
    print(f"Iterations: {result.nb_iterations}")
    print(f"Macroscopic solves: {result.nb_solves}")
    if result.line_search_exhausted:
        print(f"Exhausted line searches: {len(result.warnings)}")
    print(f"Relative change of the tensor: {result.relative_change:.3e}")
    if result.stalled:
        print("Warning: the tensor barely moved from its initial value; "
              "consider a larger step size (--rho) or more iterations")

    print("\n" + "=" * 60)
    print("Comparison with coefficient means")
    print("=" * 60)
    print(f"Arithmetic mean (upper): {arithmetic}")
    print(f"Harmonic mean (lower):   {harmonic}")
    if reference is not None:
        print(f"Homogenized tensor:      {reference}")

# Optional plotting
if args.plot:
    if plt is None:
        print("Warning: matplotlib not available, cannot show plot")
    else:
        fig, ax = plt.subplots(figsize=(6, 4))
        ax.semilogy(result.costs)
        ax.set_xlabel("Iteration")
        ax.set_ylabel("Cost J(A)")
        ax.set_title("Energy mismatch")
        plt.tight_layout()
        plt.show()
