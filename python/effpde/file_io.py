#!/usr/bin/env python3
# -*- coding:utf-8 -*-
"""
@file   file_io.py

@date   18 Oct 2026

@brief  Persistence of solution vectors and run parameters, and export of
        nodal fields for visualisation

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

import json
import os

import numpy as np

PARAMETERS_FILE_NAME = 'parameters.json'


def case_directory(directory, case, kind):
    """Directory of the solutions of one microstructure and loading family."""
    return os.path.join(directory, 'case{}'.format(case),
                        '{}loading'.format(kind))


def solution_path(directory, case, kind, index):
    return os.path.join(case_directory(directory, case, kind),
                        'solution_{}.txt'.format(index))


def write_solution(file_name, values):
    """
    Write a solution vector as a flat text file with one value per line in
    full double precision.
    """
    values = np.asarray(values, dtype=float)
    if values.ndim != 1:
        raise ValueError('Only one-dimensional vectors can be written, got '
                         'shape {}.'.format(values.shape))
    os.makedirs(os.path.dirname(os.path.abspath(file_name)), exist_ok=True)
    np.savetxt(file_name, values, fmt='%.17g')


def read_solution(file_name, nb_dofs=None):
    """
    Read a solution vector written by `write_solution`.

    Parameters
    ----------
    file_name : str
        Path of the file
    nb_dofs : int, optional
        Expected length of the vector

    Raises
    ------
    ValueError
        If the vector has not the expected length
    """
    values = np.atleast_1d(np.loadtxt(file_name, dtype=float))
    if nb_dofs is not None and values.shape != (nb_dofs,):
        raise ValueError("File '{}' contains {} values but {} were expected."
                         .format(file_name, values.size, nb_dofs))
    return values


def write_parameters(file_name, parameters):
    os.makedirs(os.path.dirname(os.path.abspath(file_name)), exist_ok=True)
    with open(file_name, 'w') as f:
        json.dump(parameters, f, indent=2, sort_keys=True)


def read_parameters(file_name):
    with open(file_name, 'r') as f:
        return json.load(f)


def write_vtk(file_name, mesh, point_data=None):
    """
    Write nodal fields on a structured triangulation to a file. The output is
    handled by `meshio`, which means all `meshio` formats are supported.

    More on `meshio` can be found here: https://github.com/nschloe/meshio

    file_name  -- filename
    mesh       -- StructuredMesh the fields live on
    point_data -- dictionary of nodal fields. Fields with one value per
                  interior node are extended by the zero boundary values.
    """
    import meshio

    fields = {}
    for name, values in (point_data or {}).items():
        values = np.asarray(values, dtype=float)
        if values.shape[0] == mesh.nb_dofs:
            values = mesh.extend(values)
        elif values.shape[0] != mesh.nb_total_nodes:
            raise ValueError("Field '{}' has {} values, expected {} (nodes) "
                             "or {} (interior nodes)."
                             .format(name, values.shape[0],
                                     mesh.nb_total_nodes, mesh.nb_dofs))
        fields[name] = values

    points = np.column_stack([mesh.positions_n,
                              np.zeros(mesh.nb_total_nodes)])
    meshio.write_points_cells(
        file_name,
        points,
        {"triangle": mesh.triangles_el},
        point_data=fields)
