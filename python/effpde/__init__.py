#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   __init__.py

@date   18 Oct 2026

@brief  Estimation of effective diffusion tensors by energy matching

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

from .errors import (  # noqa: F401
    ConfigurationMismatch,
    LineSearchExhausted,
    OptimizationCancelled,
    SolveFailure,
)
from .tensor import EffectiveTensor  # noqa: F401
from .mesh import StructuredMesh  # noqa: F401
from .loadings import LoadingSet  # noqa: F401
from .solvers import (  # noqa: F401
    MacroscopicSolveOracle,
    OscillatingSolver,
    conjugate_gradients,
    solve_spd,
)
from .energy import EnergyOracle  # noqa: F401
from .optimization import (  # noqa: F401
    Armijo,
    CostGradientEvaluator,
    FixedStep,
    IterationRecord,
    OptimizationResult,
    Optimizer,
    OptimizerConfig,
    StepResult,
)
from .workflow import (  # noqa: F401
    DEFAULT_CONFIG,
    estimate_effective_tensor,
    generate_oscillating_solutions,
    load_config,
)

__version__ = '0.1.0'

# Define public API
__all__ = [
    # Errors and warnings
    "ConfigurationMismatch",
    "LineSearchExhausted",
    "OptimizationCancelled",
    "SolveFailure",
    # Finite elements
    "EffectiveTensor",
    "StructuredMesh",
    "LoadingSet",
    "MacroscopicSolveOracle",
    "OscillatingSolver",
    "EnergyOracle",
    "conjugate_gradients",
    "solve_spd",
    # Optimization
    "Armijo",
    "CostGradientEvaluator",
    "FixedStep",
    "IterationRecord",
    "OptimizationResult",
    "Optimizer",
    "OptimizerConfig",
    "StepResult",
    # Workflow
    "DEFAULT_CONFIG",
    "estimate_effective_tensor",
    "generate_oscillating_solutions",
    "load_config",
]
