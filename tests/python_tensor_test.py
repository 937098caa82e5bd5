import numpy as np
import pytest

from effpde import EffectiveTensor


def test_components_and_matrix():
    tensor = EffectiveTensor(3.0, -1.0, 2.0)
    assert (tensor.a11, tensor.a12, tensor.a22) == (3.0, -1.0, 2.0)
    np.testing.assert_array_equal(tensor.matrix(), [[3, -1], [-1, 2]])
    assert tensor.trace == 5.0
    assert tensor.determinant == 5.0
    assert list(tensor) == [3.0, -1.0, 2.0]


def test_constructors():
    assert EffectiveTensor.from_array([1, 2, 3]) == EffectiveTensor(1, 2, 3)
    assert EffectiveTensor.from_matrix([[1, 2], [2, 3]]) == \
        EffectiveTensor(1, 2, 3)
    assert EffectiveTensor.isotropic(4) == EffectiveTensor(4, 0, 4)


@pytest.mark.parametrize("components", [[1, 2], [1, 2, 3, 4], [[1, 2, 3]]])
def test_from_array_rejects_wrong_shape(components):
    with pytest.raises(ValueError):
        EffectiveTensor.from_array(components)


def test_from_matrix_rejects_asymmetric():
    with pytest.raises(ValueError):
        EffectiveTensor.from_matrix([[1, 2], [3, 4]])


def test_immutable():
    tensor = EffectiveTensor(1, 0, 1)
    with pytest.raises(ValueError):
        tensor.array()[0] = 5
    with pytest.raises(AttributeError):
        tensor.foo = 1


def test_axpy_returns_new_tensor():
    tensor = EffectiveTensor(1, 0, 1)
    other = tensor.axpy(-0.5, [2, 4, -2])
    assert other == EffectiveTensor(0, -2, 2)
    assert tensor == EffectiveTensor(1, 0, 1)


def test_definiteness_is_only_reported():
    assert EffectiveTensor(2, 0.5, 1).is_positive_definite()
    assert not EffectiveTensor(1, 2, 1).is_positive_definite()
    assert not EffectiveTensor(-1, 0, 1).is_positive_definite()
    assert EffectiveTensor(-1, 0, 1).a11 == -1


def test_finiteness():
    assert EffectiveTensor(1, 0, 1).is_finite()
    assert not EffectiveTensor(np.nan, 0, 1).is_finite()
    assert not EffectiveTensor(1, np.inf, 1).is_finite()


def test_equality_and_hash():
    assert EffectiveTensor(1, 2, 3) != EffectiveTensor(1, 2, 3.5)
    assert EffectiveTensor(1, 2, 3) != (1, 2, 3)
    assert len({EffectiveTensor(1, 2, 3), EffectiveTensor(1.0, 2.0, 3.0)}) \
        == 1


def test_string_representation():
    assert str(EffectiveTensor(16, 0, 4)) == '(A11=16, A12=0, A22=4)'
    assert repr(EffectiveTensor(1.5, 0, 2)) == \
        'EffectiveTensor(a11=1.5, a12=0.0, a22=2.0)'
