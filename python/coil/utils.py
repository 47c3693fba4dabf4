import logging

import numpy as np
from scipy.special import logsumexp

logger = logging.getLogger(__name__)


def safe_log(probs):
    """
    Natural log with log(0) = -inf and no divide-by-zero warnings.
    """
    with np.errstate(divide="ignore"):
        return np.log(probs)


def uniform_ln_probs(num_states):
    return np.log((1.0 / num_states) * np.ones(num_states))


def normalize_ln_probs(ln_probs):
    """
    Return log probs. normalized to unit mass along the last axis.  The
    maximum is subtracted first for numerical stability.
    """
    ln_probs = np.asarray(ln_probs, dtype=float)

    max_ln_probs = np.max(ln_probs, axis=-1, keepdims=True)
    shifted = ln_probs - max_ln_probs

    # NB natural logarithm by definition;
    return shifted - logsumexp(shifted, axis=-1, keepdims=True)


def ln_diff(ln_total, *ln_parts):
    """
    log(exp(ln_total) - sum exp(ln_parts)), evaluated in probability space.

    Negative differences from floating-point cancellation are clamped to
    exactly zero, i.e. a result of -inf; exp(-inf) - exp(-inf) == 0.
    """
    diff = np.exp(ln_total)

    for ln_part in ln_parts:
        diff = diff - np.exp(ln_part)

    return safe_log(np.clip(diff, 0.0, None))


def ln_one_minus_exp(ln_probs):
    """
    log(1 - exp(ln_probs)) with the same clamping policy as ln_diff.
    """
    # NB -expm1 retains precision for ln_probs close to zero.
    return safe_log(np.clip(-np.expm1(ln_probs), 0.0, None))


def ln_matmul_exp(ln_probs, matrix):
    """
    log(exp(ln_probs) @ matrix) for a stack of log prob. vectors, shifted
    by the per-vector max.
    """
    ln_probs = np.asarray(ln_probs, dtype=float)

    max_ln_probs = np.max(ln_probs, axis=-1, keepdims=True)

    # NB guard rows with zero mass, exp(-inf - -inf) is undefined.
    max_ln_probs = np.where(np.isfinite(max_ln_probs), max_ln_probs, 0.0)

    return max_ln_probs + safe_log(np.exp(ln_probs - max_ln_probs) @ matrix)
