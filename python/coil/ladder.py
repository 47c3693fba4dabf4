"""
Likelihood ladders: for each COI c = 1..max_coi and each unit (a site for the
allele model, a site pair for the pair model), the log probability of every
genotype call assuming the c strains are independent draws from the unit's
allele frequencies, and the call is

    0: homozygous major (A), iff all c strains carry the major allele,
    1: homozygous minor (a), iff all c strains carry the minor allele,
    2: heterozygous (N), otherwise,
    3: failed assay (X), uninformative, log P = 0.

For one site with major allele frequency p, let B ~ Binomial(c, p) count the
strains carrying the major allele, then

    P(A|c) = P(B=c) = p^c
    P(a|c) = P(B=0) = (1-p)^c
    P(N|c) = 1 - P(A|c) - P(a|c)

The ladder is built by incremental convolution of log probabilities, i.e.
log P(A|a+b) = log P(A|a) + log P(A|b), with the het component recomputed
from the homozygous components at each level.  The likelihood of a numeric
barcode at COI c is then

    l(c|G) = sum_i log P(G_i|c).
"""
import logging
from dataclasses import dataclass

import numpy as np
from numba import njit

from coil.allele_tally import COI_allele_tally
from coil.encoding import FAIL, HET, MAJOR, MINOR
from coil.error_model import Error_matrix
from coil.exceptions import DimensionError, ValidationError
from coil.pair_tally import COI_pair_tally
from coil.utils import ln_diff, ln_matmul_exp, ln_one_minus_exp, safe_log
from coil.validation import validate_numerics, validate_positive_int, validate_prob

logger = logging.getLogger(__name__)


def _format_probs(ln_probs, digits):
    return [f"{prob:.{digits}f}" for prob in np.exp(ln_probs)]


class Ladder_model:
    """
    Strategy interface for building and evaluating one ladder level, i.e.
    the (# units, ...) log probabilities at a single COI.
    """

    name = None

    @staticmethod
    def num_units(tally):
        raise NotImplementedError

    @staticmethod
    def new_from_tally(tally, padding):
        raise NotImplementedError

    @staticmethod
    def increment(level, base):
        raise NotImplementedError

    @staticmethod
    def add_error(level, error):
        raise NotImplementedError

    @staticmethod
    def evaluate(ln_probs, numerics):
        raise NotImplementedError

    @staticmethod
    def format_unit(ln_probs, digits=2):
        raise NotImplementedError


class Allele_model(Ladder_model):
    """
    Independent sites, one (4,) log prob. vector per site.
    """

    name = "allele"

    @staticmethod
    def num_units(tally):
        return len(tally)

    @staticmethod
    def new_from_tally(tally, padding):
        ps = tally.p(padding)

        level = np.zeros((len(ps), 4))
        level[:, MAJOR] = safe_log(ps)
        level[:, MINOR] = safe_log(1.0 - ps)
        level[:, HET] = -np.inf
        level[:, FAIL] = 0.0

        return level

    @staticmethod
    def increment(level, base):
        """
        Level for COI a + b from the levels for COI a and b.
        """
        result = np.zeros_like(level)

        result[:, MAJOR] = level[:, MAJOR] + base[:, MAJOR]
        result[:, MINOR] = level[:, MINOR] + base[:, MINOR]

        # NB P(N) = 1 - P(A) - P(a), clamped to -inf rather than NaN.
        result[:, HET] = ln_one_minus_exp(np.logaddexp(result[:, MAJOR], result[:, MINOR]))
        result[:, FAIL] = 0.0

        return result

    @staticmethod
    def add_error(level, error):
        """
        L* = E'L for each site, L*_j = sum_i P(i) E[i][j].
        """
        result = np.zeros_like(level)

        result[:, :FAIL] = ln_matmul_exp(level[:, :FAIL], error.matrix)
        result[:, FAIL] = 0.0

        return result

    @staticmethod
    def evaluate(ln_probs, numerics):
        """
        (# numerics, # levels) summed log likelihoods, a single lookup per site.
        """
        sites = np.arange(numerics.shape[1])

        # NB (# levels, # numerics, # sites).
        return ln_probs[:, sites, numerics].sum(axis=-1).T

    @staticmethod
    def format_unit(ln_probs, digits=2):
        return "|".join(_format_probs(ln_probs[:FAIL], digits))

    @staticmethod
    def random_numerics(level, size, rng, fail_rate=0.0):
        """
        Draw (size, # sites) genotype calls from one allele ladder level, with
        each call independently replaced by a failed assay at fail_rate.
        """
        fail_rate = validate_prob(fail_rate, name="fail_rate")

        cumulative = np.cumsum(np.exp(level[:, :FAIL]), axis=1)
        uniforms = rng.random((size, len(level)))

        # NB number of cumulative thresholds exceeded is the sampled call.
        numerics = (uniforms[..., None] >= cumulative[None, :, :]).sum(axis=-1)
        numerics = np.minimum(numerics, HET)

        if fail_rate > 0.0:
            numerics[rng.random(numerics.shape) < fail_rate] = FAIL

        return numerics.astype(np.int64)


@njit
def _pair_ln_likelihoods(ln_probs, numerics):
    num_levels = ln_probs.shape[0]
    num_samples, num_sites = numerics.shape

    result = np.zeros((num_samples, num_levels))

    for ss in range(num_samples):
        numeric = numerics[ss]

        for cc in range(num_levels):
            total = 0.0
            kk = 0

            for j in range(1, num_sites):
                nj = numeric[j]

                for i in range(j):
                    total += ln_probs[cc, kk, numeric[i], nj]
                    kk += 1

            result[ss, cc] = total

    return result


class Pair_model(Ladder_model):
    """
    Site pairs, one (4, 4) log joint table per pair.
    """

    name = "pair"

    @staticmethod
    def num_units(tally):
        return len(tally)

    @staticmethod
    def new_from_tally(tally, padding):
        return tally.ln_P(padding)

    @staticmethod
    def increment(level, base):
        """
        Corners P(Gi=a, Gj=b|c) = P(Gi=a, Gj=b|1)^c for a, b in {A, a, X}, where
        X is "any call", i.e. the marginals.  Het cells then follow from e.g.

            P(Gi=a, Gj=N) = P(Gi=a, Gj=X) - P(Gi=a, Gj=A) - P(Gi=a, Gj=a).
        """
        # NB het cells are overwritten below.
        result = level + base

        for aa in (MAJOR, MINOR, FAIL):
            result[:, aa, HET] = ln_diff(
                result[:, aa, FAIL], result[:, aa, MAJOR], result[:, aa, MINOR]
            )
            result[:, HET, aa] = ln_diff(
                result[:, FAIL, aa], result[:, MAJOR, aa], result[:, MINOR, aa]
            )

        result[:, HET, HET] = ln_diff(
            result[:, HET, FAIL], result[:, HET, MAJOR], result[:, HET, MINOR]
        )

        return result

    @staticmethod
    def add_error(level, error):
        """
        Bilinear form sum_ab P(a, b) E[a][i] E[b][j] for informative calls, and
        the linear form for the "any call" marginals.
        """
        matrix = error.matrix
        result = np.zeros_like(level)

        block = np.einsum("kab,ai,bj->kij", np.exp(level[:, :FAIL, :FAIL]), matrix, matrix)

        result[:, :FAIL, :FAIL] = safe_log(block)
        result[:, :FAIL, FAIL] = ln_matmul_exp(level[:, :FAIL, FAIL], matrix)
        result[:, FAIL, :FAIL] = ln_matmul_exp(level[:, FAIL, :FAIL], matrix)
        result[:, FAIL, FAIL] = 0.0

        return result

    @staticmethod
    def evaluate(ln_probs, numerics, scale=None):
        """
        (# numerics, # levels) summed pair log likelihoods, divided by scale.

        The number of pairs grows quadratically with the number of sites, the
        default scale of (# sites - 1) makes the result comparable to the allele
        model.
        """
        num_sites = numerics.shape[1]

        if scale is None:
            scale = num_sites - 1.0

        return _pair_ln_likelihoods(ln_probs, numerics) / scale

    @staticmethod
    def format_unit(ln_probs, digits=2):
        rows = [":".join(_format_probs(row[:FAIL], digits)) for row in ln_probs[:FAIL]]

        return "[" + "/".join(rows) + "]"

    @staticmethod
    def random_numerics(level, size, rng, fail_rate=0.0):
        raise TypeError("Random numerics are only supported for allele ladders.")


def model_for_tally(tally):
    if isinstance(tally, COI_allele_tally):
        return Allele_model
    elif isinstance(tally, COI_pair_tally):
        return Pair_model

    raise TypeError(f"No ladder model for tally of type {type(tally).__name__}.")


@dataclass(frozen=True, eq=False)
class Ladder_unit:
    """
    One site's (or site pair's) log probabilities at every COI.
    """

    index: int
    model: type
    ln_probs: np.ndarray

    @property
    def max_coi(self):
        return len(self.ln_probs)

    def to_display_string(self, digits=2, sep="\t"):
        return sep.join(self.model.format_unit(level, digits) for level in self.ln_probs)


class COI_ladder:
    def __init__(self, model, ln_probs, num_sites, padding=None, errors=()):
        """
        Immutable (# COIs, # units, ...) log prob. ladder for a given model.
        """
        assert ln_probs.ndim >= 3, f"Expected a (# COIs, # units, ...) ladder, found {ln_probs.shape}."

        self.model = model
        self.num_sites = num_sites
        self.padding = padding
        self.errors = tuple(errors)

        self.ln_probs = ln_probs
        self.ln_probs.setflags(write=False)

    @classmethod
    def from_tally(cls, tally, max_coi=5, padding=0.5, model=None):
        """
        Create the ladder from a tally: the base level (COI=1) from the tally,
        incremented by the base level up to max_coi.
        """
        max_coi = validate_positive_int(max_coi, name="max_coi")
        model = model if model is not None else model_for_tally(tally)

        base = level = model.new_from_tally(tally, padding)
        levels = [base]

        for _ in range(1, max_coi):
            level = model.increment(level, base)
            levels.append(level)

        num_sites = tally.num_sites

        logger.info(
            f"Built {model.name} ladder for {model.num_units(tally)} units ({num_sites} sites) up to COI={max_coi} with padding={padding}."
        )

        return cls(model, np.stack(levels), num_sites, padding=padding)

    @property
    def max_coi(self):
        return self.ln_probs.shape[0]

    @property
    def num_units(self):
        return self.ln_probs.shape[1]

    def __len__(self):
        return self.max_coi

    def level(self, coi):
        if not 1 <= coi <= self.max_coi:
            raise ValidationError(f"COI must be within [1, {self.max_coi}], found {coi}.")

        return self.ln_probs[coi - 1]

    def unit(self, index):
        return Ladder_unit(index, self.model, self.ln_probs[:, index])

    def add_error(self, error=None):
        """
        New ladder with the assay error model applied at every level; the
        original ladder is unchanged.
        """
        error = Error_matrix.from_spec(error)

        ln_probs = np.stack([self.model.add_error(level, error) for level in self.ln_probs])

        logger.info(f"Applied error model to {self.model.name} ladder:\n{error.to_display_string()}")

        return COI_ladder(
            self.model,
            ln_probs,
            self.num_sites,
            padding=self.padding,
            errors=(*self.errors, error),
        )

    def _validate_numerics(self, numerics):
        numerics = validate_numerics(numerics)

        if numerics.shape[1] != self.num_sites:
            raise DimensionError(
                f"Numeric barcodes have {numerics.shape[1]} sites, ladder expects {self.num_sites}."
            )

        return numerics

    def likelihoods(self, numerics, **kwargs):
        """
        (# numerics, max_coi) log likelihoods of numeric barcodes at each COI.
        """
        numerics = self._validate_numerics(numerics)

        return self.model.evaluate(self.ln_probs, numerics, **kwargs)

    def likelihood(self, numeric, **kwargs):
        if not isinstance(numeric, str) and np.ndim(numeric) != 1:
            raise DimensionError(
                f"Expected a single numeric barcode, found shape {np.shape(numeric)}."
            )

        return self.likelihoods([numeric], **kwargs)[0]

    def random_numerics(self, coi, size=1, rng=None, fail_rate=0.0):
        rng = rng if rng is not None else np.random.default_rng()

        return self.model.random_numerics(self.level(coi), size, rng, fail_rate=fail_rate)

    def to_display_string(self, digits=2, sep="\t"):
        """
        One line per unit, one column of call probabilities per COI.
        """
        return "\n".join(
            self.unit(index).to_display_string(digits=digits, sep=sep)
            for index in range(self.num_units)
        )
