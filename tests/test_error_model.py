import warnings
from pathlib import Path

import numpy as np
import numpy.testing as npt
import pytest
from coil import error_model
from coil.error_model import Error_matrix, agnostic_error
from coil.exceptions import ValidationError


def test_agnostic_error():
    matrix = agnostic_error(3, 0.05)

    npt.assert_allclose(np.diag(matrix), 0.95 * np.ones(3))
    npt.assert_allclose(matrix.sum(axis=1), np.ones(3))

    assert matrix[0, 1] == pytest.approx(0.025)


def test_error_matrix_symmetric():
    error = Error_matrix.symmetric(0.05)

    npt.assert_allclose(error.matrix[0], [0.95, 0.025, 0.025])
    npt.assert_allclose(error.matrix, error.matrix.T)


def test_error_matrix_asymmetric():
    error = Error_matrix.asymmetric(0.01, 0.04, 0.1)

    exp = [
        [0.95, 0.01, 0.04],
        [0.01, 0.95, 0.04],
        [0.05, 0.05, 0.90],
    ]

    npt.assert_allclose(error.matrix, exp)


def test_error_matrix_scenario():
    error = Error_matrix.asymmetric(0.01, 0.04, 0.1)
    probs = np.array([0.8, 0.2, 0.0])

    npt.assert_allclose(probs @ error.matrix, [0.762, 0.198, 0.04])


def test_error_matrix_from_spec():
    npt.assert_allclose(Error_matrix.from_spec().matrix, Error_matrix.symmetric(0.05).matrix)
    npt.assert_allclose(Error_matrix.from_spec(0.1).matrix, Error_matrix.symmetric(0.1).matrix)
    npt.assert_allclose(
        Error_matrix.from_spec([0.01, 0.04, 0.1]).matrix,
        Error_matrix.asymmetric(0.01, 0.04, 0.1).matrix,
    )

    error = Error_matrix.symmetric(0.02)

    assert Error_matrix.from_spec(error) is error


def test_error_matrix_4x4():
    error = Error_matrix.symmetric(0.05)
    matrix = error.as_4x4()

    assert matrix.shape == (4, 4)
    assert matrix[3, 3] == 1.0

    npt.assert_allclose(Error_matrix(matrix).matrix, error.matrix)


@pytest.mark.parametrize(
    "matrix",
    [
        np.eye(2),
        [[0.9, 0.2, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        [[1.1, -0.1, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        0.5 * np.ones((4, 4)),
    ],
)
def test_error_matrix_invalid(matrix):
    with pytest.raises(ValidationError):
        Error_matrix(matrix)


def test_error_matrix_invalid_rate():
    with pytest.raises(ValidationError):
        Error_matrix.symmetric(1.5)


def test_error_matrix_immutable():
    error = Error_matrix.symmetric(0.05)

    with pytest.raises(ValueError):
        error.matrix[0, 0] = 1.0


def test_error_model_source_compiles_cleanly():
    source = Path(error_model.__file__).read_text()

    with warnings.catch_warnings():
        warnings.simplefilter("error")

        compile(source, error_model.__file__, "exec")
