r"""
Assay error model.

The error rate is a row-stochastic matrix over the informative genotype calls
{major, minor, het},

    E[i][j] = P(observed call j | true call i)

        / 1-e, e/2, e/2 \
    E = | e/2, 1-e, e/2 |,  single (symmetric) error rate e,
        \ e/2, e/2, 1-e /

        / 1-e0-e+, e0,      e+   \
      = | e0,      1-e0-e+, e+   |,  asymmetric rates,
        \ e-/2,    e-/2,    1-e- /

where e0 is the major <-> minor flip rate, e+ the homozygous -> het rate and
e- the het -> homozygous rate.  Failed assays are error-immune.
"""
import logging
from dataclasses import dataclass

import numpy as np

from coil.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_ERROR_RATE = 0.05
NUM_INFORMATIVE = 3


def agnostic_error(num_states, error_rate):
    """
    Error matrix with an equal share of the error rate to each other state.
    """
    error_rate_per_state = error_rate / (num_states - 1.0)

    matrix = error_rate_per_state * np.ones(shape=(num_states, num_states))

    matrix -= error_rate_per_state * np.eye(num_states)
    matrix += (1.0 - error_rate) * np.eye(num_states)

    return matrix


@dataclass(frozen=True, eq=False)
class Error_matrix:
    matrix: np.ndarray

    def __post_init__(self):
        matrix = np.array(self.matrix, dtype=float)

        if matrix.shape == (4, 4):
            # NB fail state must map to itself.
            if not (np.allclose(matrix[3], [0.0, 0.0, 0.0, 1.0]) and np.allclose(matrix[:3, 3], 0.0)):
                raise ValidationError(
                    f"4x4 error matrix must hold the fail state fixed, found\n{matrix}"
                )

            matrix = matrix[:3, :3]

        if matrix.shape != (NUM_INFORMATIVE, NUM_INFORMATIVE):
            raise ValidationError(f"Error matrix must be 3x3 (or 4x4), found {matrix.shape}.")

        if np.any(matrix < 0.0) or np.any(matrix > 1.0):
            raise ValidationError(f"Error matrix entries must be within [0, 1], found\n{matrix}")

        if not np.allclose(matrix.sum(axis=1), 1.0, atol=1.0e-9):
            raise ValidationError(
                f"Error matrix rows must sum to one, found {matrix.sum(axis=1)}."
            )

        matrix.setflags(write=False)

        # NB frozen dataclass.
        object.__setattr__(self, "matrix", matrix)

    @classmethod
    def symmetric(cls, e=DEFAULT_ERROR_RATE):
        if not 0.0 <= e <= 1.0:
            raise ValidationError(f"Error rate must be within [0, 1], found {e}.")

        return cls(agnostic_error(NUM_INFORMATIVE, e))

    @classmethod
    def asymmetric(cls, e0, e_plus, e_minus):
        return cls(
            [
                [1.0 - e0 - e_plus, e0, e_plus],
                [e0, 1.0 - e0 - e_plus, e_plus],
                [e_minus / 2.0, e_minus / 2.0, 1.0 - e_minus],
            ]
        )

    @classmethod
    def from_spec(cls, spec=None):
        """
        Error matrix from None (default symmetric rate), a single rate, an
        (e0, e+, e-) triple, a 3x3 / 4x4 matrix or an Error_matrix.
        """
        if spec is None:
            return cls.symmetric(DEFAULT_ERROR_RATE)

        if isinstance(spec, Error_matrix):
            return spec

        if np.isscalar(spec):
            return cls.symmetric(float(spec))

        spec = np.asarray(spec, dtype=float)

        if spec.ndim == 1:
            if len(spec) != 3:
                raise ValidationError(f"Error rates must specify e0, e+ and e-, found {spec}.")

            return cls.asymmetric(*spec)

        return cls(spec)

    def as_4x4(self):
        """
        4x4 error matrix including the error-immune fail state.
        """
        result = np.eye(4)
        result[:3, :3] = self.matrix

        return result

    def to_display_string(self, digits=4):
        return "\n".join(
            "\t".join(f"{value:.{digits}f}" for value in row) for row in self.matrix
        )
