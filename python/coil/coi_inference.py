import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from coil.allele_tally import COI_allele_tally
from coil.encoding import barcodes_to_numerics, numeric_to_string
from coil.exceptions import DimensionError
from coil.ladder import COI_ladder
from coil.pair_tally import COI_pair_tally
from coil.plotting import plot_posteriors
from coil.probability import COI_probability, Credible_interval
from coil.validation import validate_barcodes

logger = logging.getLogger(__name__)


def get_default_params():
    return {
        "model": "allele",
        "max_coi": 5,
        "padding": 0.5,
        "error": 0.05,
        "prior": "uniform",
        "lam": 1.0,
        "threshold": 0.95,
        "skip_poly": True,
    }


@dataclass(frozen=True)
class COI_estimate:
    barcode: str
    numeric: str
    mode: int
    mode_prob: float
    interval: Credible_interval

    @property
    def lower(self):
        return self.interval.lower

    @property
    def upper(self):
        return self.interval.upper

    @property
    def mass(self):
        return self.interval.mass

    @property
    def open_ended(self):
        return self.interval.open_ended

    def to_display_string(self, sep="\t", digits=4):
        return sep.join(
            [
                self.barcode,
                self.numeric,
                str(self.mode),
                f"{self.mode_prob:.{digits}f}",
                self.interval.to_display_string(sep=sep, digits=digits),
            ]
        )


class COI_inference:
    def __init__(
        self,
        barcodes,
        model="allele",
        max_coi=5,
        padding=0.5,
        error=0.05,
        prior="uniform",
        lam=1.0,
        threshold=0.95,
        skip_poly=True,
    ):
        """
        Estimate the COI of each barcode in a population:  tally -> ladder ->
        error model -> per-COI likelihoods -> posterior -> MAP and credible
        interval.  error=None disables the error model.
        """
        if model not in ["allele", "pair"]:
            msg = f"likelihood model={model} is not supported."
            raise ValueError(msg)

        if prior not in ["uniform", "poisson"]:
            msg = f"COI prior={prior} is not supported."
            raise ValueError(msg)

        self.barcodes = validate_barcodes(barcodes)
        self.model = model
        self.max_coi = max_coi
        self.padding = padding
        self.error = error
        self.prior_model = prior
        self.lam = lam
        self.threshold = threshold
        self.skip_poly = skip_poly

    def initialize(self):
        """
        Tally the barcodes, build the (error) ladder and the prior, and
        evaluate the log likelihood of every barcode at each COI.
        """
        self.allele_tally = COI_allele_tally.from_barcodes(self.barcodes)
        self.numerics = barcodes_to_numerics(self.allele_tally, self.barcodes)

        if self.model == "pair":
            self.tally = COI_pair_tally.from_numerics(self.numerics, skip_poly=self.skip_poly)
        else:
            self.tally = self.allele_tally

        self.ladder = COI_ladder.from_tally(self.tally, max_coi=self.max_coi, padding=self.padding)

        # NB the error-free ladder is retained for diagnostics.
        if self.error is None:
            self.error_ladder = self.ladder
        else:
            self.error_ladder = self.ladder.add_error(self.error)

        if self.prior_model == "poisson":
            self.prior = COI_probability.poisson(self.lam, max_coi=self.max_coi)
        else:
            self.prior = COI_probability.uniform(self.max_coi)

        if len(self.prior) != self.error_ladder.max_coi:
            raise DimensionError(
                f"Prior support ({len(self.prior)}) does not match ladder max. COI ({self.error_ladder.max_coi})."
            )

        self.ln_likelihoods = self.error_ladder.likelihoods(self.numerics)

        logger.info(
            f"Evaluated {self.model} log likelihoods for {len(self.numerics)} barcodes up to COI={self.max_coi}."
        )

    def run(self):
        assert hasattr(
            self, "ln_likelihoods"
        ), "COI_inference.initialize() must be called first."

        self.posteriors = []

        for ii, ln_like in enumerate(self.ln_likelihoods):
            if not np.any(np.isfinite(ln_like)):
                # NB e.g. a het call at a monoallelic site without padding or error.
                logger.warning(
                    f"Barcode {ii} has zero likelihood at every COI, using the prior as its posterior."
                )

                self.posteriors.append(self.prior)
            else:
                self.posteriors.append(self.prior.posterior(ln_like))

        self.estimates = []

        for barcode, numeric, posterior in zip(self.barcodes, self.numerics, self.posteriors):
            mode = posterior.mode()

            self.estimates.append(
                COI_estimate(
                    barcode="".join(barcode),
                    numeric=numeric_to_string(numeric),
                    mode=mode,
                    mode_prob=float(posterior.probs[mode - 1]),
                    interval=posterior.credible_interval(self.threshold, mode=mode),
                )
            )

        modes, counts = np.unique([estimate.mode for estimate in self.estimates], return_counts=True)

        logger.info(f"Found MAP COI distribution: {dict(zip(modes.tolist(), counts.tolist()))}")

        return self.estimates

    def to_display_string(self, sep="\t"):
        return "\n".join(estimate.to_display_string(sep=sep) for estimate in self.estimates)

    def write(self, fpath):
        with Path(fpath).open("w") as ff:
            ff.write(self.to_display_string() + "\n")

        logger.info(f"Wrote {len(self.estimates)} COI estimates to {fpath}")

    def plot(self, fpath, true_cois=None, title=None):
        plot_posteriors(fpath, self.posteriors, true_cois=true_cois, title=title)
