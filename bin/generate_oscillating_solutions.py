#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   generate_oscillating_solutions.py

@date   18 Oct 2026

@brief  Solve the oscillating problem for a family of loadings and persist
        the solutions (first phase of the estimation)

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

from effpde.coefficients import COEFFICIENT_CASES
from effpde.loadings import LOADING_KINDS
from effpde.solvers import SOLVE_METHODS
from effpde.workflow import generate_oscillating_solutions, load_config

parser = argparse.ArgumentParser(
    prog="generate_oscillating_solutions",
    description="Solve -div(a_eps grad u) = f_p on a fine mesh and write the "
                "solutions to disk",
)

parser.add_argument(
    "-c",
    "--config",
    default=None,
    help="JSON file with workflow parameters (default: built-in defaults)",
)

parser.add_argument(
    "--case",
    choices=sorted(COEFFICIENT_CASES),
    default=None,
    help="Microstructure of the oscillating coefficient (default: periodic)",
)

parser.add_argument(
    "-e",
    "--epsilon",
    type=float,
    default=None,
    help="Period of the microstructure (default: 0.125)",
)

parser.add_argument(
    "-n",
    "--nb-grid-pts",
    default=None,
    type=lambda s: [int(x) for x in s.split(",")],
    help="Fine grid boxes as nx,ny (default: 64,64)",
)

parser.add_argument(
    "-p",
    "--nb-loadings",
    type=int,
    default=None,
    help="Number of loadings (default: 3)",
)

parser.add_argument(
    "-k",
    "--loading-kind",
    choices=LOADING_KINDS,
    default=None,
    help="Family of trigonometric loadings (default: coscos)",
)

parser.add_argument(
    "--orthonormal",
    action="store_true",
    default=None,
    help="Orthonormalize the loadings in L2 (default: off)",
)

parser.add_argument(
    "-m",
    "--method",
    choices=SOLVE_METHODS,
    default=None,
    help="Linear solver (default: direct)",
)

parser.add_argument(
    "-o",
    "--output-dir",
    default=None,
    help="Root directory of the solution files (default: Solution)",
)

parser.add_argument(
    "--vtk",
    action="store_true",
    default=None,
    help="Also write the solutions as a VTU file (default: off)",
)

parser.add_argument(
    "-q",
    "--quiet",
    action="store_true",
    help="Suppress per-loading output (default: off)",
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
    case=args.case,
    epsilon=args.epsilon,
    fine_nb_grid_pts=args.nb_grid_pts,
    nb_loadings=args.nb_loadings,
    loading_kind=args.loading_kind,
    orthonormal=args.orthonormal,
    solve_method=args.method,
    output_dir=args.output_dir,
    write_vtk=args.vtk,
)

paths, energies = generate_oscillating_solutions(config,
                                                 verbose=not args.quiet)

if args.json:
    results = {
        "config": config,
        "results": {
            "solution_files": paths,
            "energies": [float(energy) for energy in energies],
        },
    }
    print(json.dumps(results, indent=2))
elif not args.quiet:
    print("Wrote {} solutions for case '{}' ({} loadings)".format(
        len(paths), config["case"], config["loading_kind"]))
