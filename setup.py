# Copyright © 2026 effpde developers
#
# effpde is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Lesser Public License as
# published by the Free Software Foundation, either version 3, or (at
# your option) any later version.
#
# effpde is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public License
# along with effpde; see the file COPYING. If not, write to the
# Free Software Foundation, Inc., 59 Temple Place - Suite 330,
# Boston, MA 02111-1307, USA.
#
# Additional permission under GNU GPL version 3 section 7
#
# If you modify this Program, or any covered work, by linking or combining it
# with proprietary FFT implementations or numerical libraries, containing parts
# covered by the terms of those libraries' licenses, the licensors of this
# Program grant you additional permission to convey the resulting work.

import os
import re

from setuptools import setup

###

root = os.path.dirname(os.path.abspath(__file__))


def get_version_from_init(fn):
    """
    Discover effpde version from the package's __init__.py.
    """
    with open(fn, 'r') as f:
        text = f.read()
    match = re.search(r"^__version__ = '([A-Za-z0-9_.+-]*)'", text,
                      re.MULTILINE)
    if match is None:
        raise RuntimeError('Version detection failed. {} does not define '
                           '__version__.'.format(fn))
    return match.group(1)


version = get_version_from_init(
    os.path.join(root, 'python', 'effpde', '__init__.py'))

requirements = ['numpy', 'scipy', 'meshio']

setup(
    name='effpde',
    version=version,
    author='effpde developers',
    description='effpde estimates the constant effective diffusion tensor '
                'of an oscillating elliptic problem by matching energies',
    long_description='',
    packages=['effpde'],
    package_dir={
        'effpde': 'python/effpde',
    },
    scripts=['bin/generate_oscillating_solutions.py',
             'bin/estimate_effective_tensor.py'],
    zip_safe=False,
    python_requires='>=3.7',
    install_requires=requirements,
    extras_require={
        'test': ['pytest'],
        'plot': ['matplotlib'],
    },
)
