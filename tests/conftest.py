import pytest

from effpde import EffectiveTensor, LoadingSet, MacroscopicSolveOracle, \
    StructuredMesh

from python_plane_wave_oracle import PlaneWaveOracle


@pytest.fixture
def mesh():
    return StructuredMesh((8, 8))


@pytest.fixture
def loadings(mesh):
    return LoadingSet.trigonometric(mesh, 3, 'coscos')


@pytest.fixture
def fe_oracle(mesh, loadings):
    return MacroscopicSolveOracle(mesh, loadings)


@pytest.fixture
def true_tensor():
    return EffectiveTensor(2.0, 0.3, 1.0)


@pytest.fixture
def plane_wave_oracle():
    return PlaneWaveOracle([(1, 0), (0, 1), (1, 1)])
