"""
COI probability distributions: priors, posteriors, MAP and credible
intervals.  A COI_probability holds log densities indexed by COI - 1 and is
always normalized, i.e. logsumexp(ln_probs) == 0.
"""
import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy.special import logsumexp

from coil.exceptions import DimensionError, ValidationError
from coil.utils import normalize_ln_probs, uniform_ln_probs
from coil.validation import validate_positive_int, validate_prob

logger = logging.getLogger(__name__)

# NB tolerance on the normalization of a COI_probability.
NORM_TOL = 1.0e-6

# NB hard limit on the support of a Poisson prior given a CDF / PDF rule.
MAX_POISSON_COI = 100
DEFAULT_POISSON_COI = 5


@dataclass(frozen=True)
class Credible_interval:
    """
    1-indexed, inclusive COI interval.  Unpacks as (lower, upper, mass);
    open_ended when upper is the last modelled COI, as the true support may
    extend beyond it.
    """

    lower: int
    upper: int
    mass: float
    open_ended: bool = False

    def __iter__(self):
        return iter((self.lower, self.upper, self.mass))

    @property
    def upper_label(self):
        return f">={self.upper}" if self.open_ended else str(self.upper)

    def to_display_string(self, sep="\t", digits=4):
        return sep.join([str(self.lower), self.upper_label, f"{self.mass:.{digits}f}"])


class COI_probability:
    def __init__(self, ln_probs):
        ln_probs = np.array(ln_probs, dtype=float)

        if ln_probs.ndim != 1 or len(ln_probs) == 0:
            raise ValidationError(f"Expected a non-empty 1D log density, found shape {ln_probs.shape}.")

        if np.any(np.isnan(ln_probs)) or np.any(ln_probs > NORM_TOL):
            raise ValidationError(f"Log densities must be non-positive, found {ln_probs}.")

        norm = abs(logsumexp(ln_probs))

        if norm > NORM_TOL:
            raise ValidationError(f"Log densities are not normalized, |logsumexp| = {norm:.3e}.")

        self.ln_probs = ln_probs
        self.ln_probs.setflags(write=False)

    @classmethod
    def poisson(cls, lam, max_coi=None, cdf=None, pdf=None):
        """
        Truncated Poisson prior.  COI=0 is discarded as a sample holds at least
        one strain, i.e.

            p(c) = f(c) / (1 - f(0)),
            log p(c) = c log(lam) - lam - log(c!) - log(1 - exp(-lam)).

        COIs are generated until the first of: max_coi, a cumulative density
        >= cdf, or a density < pdf.  Without any rule, COIs up to 5 are
        generated, given a CDF / PDF rule max_coi defaults to 100.  The
        retained support is renormalized.
        """
        if lam <= 0.0:
            raise ValidationError(f"Poisson lambda must be positive, found {lam}.")

        if max_coi is None and cdf is None and pdf is None:
            max_coi = DEFAULT_POISSON_COI

        max_coi = MAX_POISSON_COI if max_coi is None else validate_positive_int(max_coi, name="max_coi")
        cdf = None if cdf is None else validate_prob(cdf, name="cdf")
        pdf = 0.0 if pdf is None else validate_prob(pdf, name="pdf")

        ln_lam = math.log(lam)
        ln_prob = -lam - math.log(-math.expm1(-lam))

        cumulative, ln_probs = 0.0, []

        for coi in range(1, max_coi + 1):
            ln_prob += ln_lam - math.log(coi)
            prob = math.exp(ln_prob)

            if prob < pdf:
                break

            ln_probs.append(ln_prob)
            cumulative += prob

            if cdf is not None and cumulative >= cdf:
                break

        if not ln_probs:
            raise ValidationError(
                f"Poisson(lambda={lam}) prior is empty for density floor pdf={pdf}."
            )

        logger.info(
            f"Poisson(lambda={lam}) prior truncated at COI={len(ln_probs)} with retained mass {cumulative:.6f}."
        )

        return cls(normalize_ln_probs(ln_probs))

    @classmethod
    def uniform(cls, max_coi):
        """
        Discrete Uniform(1, max_coi).
        """
        max_coi = validate_positive_int(max_coi, name="max_coi")

        return cls(uniform_ln_probs(max_coi))

    def __len__(self):
        return len(self.ln_probs)

    @property
    def max_coi(self):
        return len(self.ln_probs)

    @property
    def probs(self):
        return np.exp(self.ln_probs)

    def posterior(self, ln_likelihood):
        """
        Posterior given a per-COI log likelihood, normalized by first
        subtracting the max. and then the logsumexp.
        """
        ln_likelihood = np.asarray(ln_likelihood, dtype=float)

        if ln_likelihood.shape != self.ln_probs.shape:
            raise DimensionError(
                f"|posterior| != |likelihood|, found {len(self)} and {ln_likelihood.size}."
            )

        ln_posterior = self.ln_probs + ln_likelihood

        if np.any(np.isnan(ln_posterior)):
            raise ValidationError(f"Found NaN log likelihoods: {ln_likelihood}.")

        max_ln_posterior = np.max(ln_posterior)

        if not np.isfinite(max_ln_posterior):
            raise ValidationError(
                "Posterior has no support: prior and likelihood are disjoint."
            )

        ln_posterior = ln_posterior - max_ln_posterior
        ln_posterior -= logsumexp(ln_posterior)

        return COI_probability(ln_posterior)

    def mode(self):
        """
        1-indexed COI of maximum density, ties resolve to the higher COI.
        """
        ii = 0

        for jj in range(1, len(self.ln_probs)):
            if not self.ln_probs[ii] > self.ln_probs[jj]:
                ii = jj

        return ii + 1

    def credible_interval(self, threshold=0.95, mode=None):
        """
        Shortest contiguous COI interval with mass >= threshold, grown greedily
        from the mode by including the more probable neighbour, where ties
        extend the upper bound.
        """
        if not 0.0 < threshold <= 1.0:
            raise ValidationError(f"Credible threshold must be within (0, 1], found {threshold}.")

        mode = self.mode() if mode is None else mode

        if not 1 <= mode <= len(self):
            raise ValidationError(f"Mode must be within [1, {len(self)}], found {mode}.")

        probs = self.probs
        last = len(probs) - 1

        lower = upper = mode - 1
        mass = probs[mode - 1]

        while mass < threshold:
            if lower == 0 and upper == last:
                # NB full support, short of threshold by rounding only.
                break
            elif lower == 0:
                upper += 1
                mass += probs[upper]
            elif upper == last:
                lower -= 1
                mass += probs[lower]
            elif probs[lower - 1] > probs[upper + 1]:
                lower -= 1
                mass += probs[lower]
            else:
                upper += 1
                mass += probs[upper]

        return Credible_interval(
            lower + 1, upper + 1, float(mass), open_ended=(upper == last)
        )

    @staticmethod
    def combine(probabilities):
        """
        Log of the arithmetic mean of the densities, e.g. to average posteriors
        across independent pieces of evidence.
        """
        probabilities = list(probabilities)

        if not probabilities:
            raise ValidationError("Expected at least one probability to combine.")

        lengths = {len(probability) for probability in probabilities}

        if len(lengths) != 1:
            raise DimensionError(f"Cannot combine probabilities of lengths {sorted(lengths)}.")

        ln_probs = np.vstack([probability.ln_probs for probability in probabilities])
        ln_mean = logsumexp(ln_probs, axis=0) - np.log(len(probabilities))

        return COI_probability(normalize_ln_probs(ln_mean))

    def cois(self, num):
        """
        Approx. num COIs, where the frequency of each COI is proportional to
        its density.
        """
        num = validate_positive_int(num, name="num")

        return [
            coi
            for coi, prob in enumerate(self.probs, start=1)
            for _ in range(int(prob * num))
        ]

    def to_display_string(self, digits=4, sep="\t"):
        return sep.join(f"{prob:.{digits}f}" for prob in self.probs)
