"""
Pairwise allele tallies of numeric barcodes.

For every unordered pair of sites (i, j), i < j, a 2x2 table counts the
co-occurrence of major (0) / minor (1) calls across strains.  Pairs are
enumerated as

    for j in 1..L-1:
        for i in 0..j-1:
            k = j * (j - 1) / 2 + i

which is also the order of the pair likelihood ladder units.
"""
import logging
from dataclasses import dataclass

import numpy as np
from numba import njit
from scipy.stats import fisher_exact

from coil.exceptions import DimensionError
from coil.utils import safe_log
from coil.validation import validate_numerics, validate_padding

logger = logging.getLogger(__name__)


def num_pairs(num_sites):
    return num_sites * (num_sites - 1) // 2


def pair_index(i, j):
    """
    Index of the unordered site pair (i, j) in the pair enumeration.
    """
    if i == j:
        raise ValueError(f"Expected distinct sites for a pair, found ({i}, {j}).")

    i, j = min(i, j), max(i, j)

    return j * (j - 1) // 2 + i


def iter_pairs(num_sites):
    for j in range(1, num_sites):
        for i in range(j):
            yield i, j


@njit
def _tally_pairs(numerics, skip_poly):
    num_sites = numerics.shape[1]
    counts = np.zeros((num_sites * (num_sites - 1) // 2, 2, 2), dtype=np.int64)

    for numeric in numerics:
        if skip_poly and np.any(numeric == 2):
            continue

        for j in range(1, num_sites):
            nj = numeric[j]

            # NB skip het / failed assays.
            if nj > 1:
                continue

            offset = j * (j - 1) // 2

            for i in range(j):
                ni = numeric[i]

                if ni > 1:
                    continue

                counts[offset + i, ni, nj] += 1

    return counts


@dataclass(frozen=True)
class Pair_tally_unit:
    """
    Major (ref) / minor (alt) co-occurrence counts for one site pair.
    """

    refref: int
    refalt: int
    altref: int
    altalt: int

    @property
    def table(self):
        return np.array([[self.refref, self.refalt], [self.altref, self.altalt]])

    @property
    def total_count(self):
        return self.refref + self.refalt + self.altref + self.altalt

    def P(self, padding=0.0):
        """
        Padded 2x2 joint probability of (major / minor) x (major / minor).
        """
        padding = validate_padding(padding)
        total = self.total_count + 4.0 * padding

        if total == 0.0:
            # NB no informative strains and no padding, uninformative pair.
            return np.full((2, 2), 0.25)

        return (self.table + padding) / total

    def ln_P(self, padding=0.0):
        """
        Padded 4x4 log joint table over codes {0, 1, 2, 3} of the two sites.

        Row / column 3 holds the "any call" marginals with [3][3] = 0.  Het
        cells are structurally -inf as het is not an observed joint state of
        a single strain.
        """
        probs = np.zeros((4, 4))
        probs[:2, :2] = self.P(padding)

        probs[:2, 3] = probs[:2, :2].sum(axis=1)
        probs[3, :2] = probs[:2, :2].sum(axis=0)
        probs[3, 3] = 1.0

        return safe_log(probs)

    def fisher(self):
        """
        Two-tailed Fisher exact test p-value for independence of the calls.
        """
        _, pvalue = fisher_exact(self.table, alternative="two-sided")

        return float(pvalue)

    def to_display_string(self):
        return f"[{self.refref}:{self.refalt}/{self.altref}:{self.altalt}]"


class COI_pair_tally:
    def __init__(self, counts, num_sites):
        assert counts.shape == (
            num_pairs(num_sites),
            2,
            2,
        ), f"Found counts of shape {counts.shape} for {num_sites} sites."

        self.counts = counts
        self.counts.setflags(write=False)

        self.num_sites = num_sites

    @classmethod
    def from_numerics(cls, numerics, skip_poly=True):
        """
        Tally pairs of homozygous calls.  With skip_poly, any barcode with a het
        call is skipped, such that the tally models single-strain co-occurrence.
        """
        numerics = validate_numerics(numerics)
        num_sites = numerics.shape[1]

        if num_sites < 2:
            raise DimensionError(f"Pair tally requires at least 2 sites, found {num_sites}.")

        counts = _tally_pairs(numerics, skip_poly)

        logger.info(
            f"Tallied {num_pairs(num_sites)} site pairs across {len(numerics)} numeric barcodes with skip_poly={skip_poly}."
        )

        return cls(counts, num_sites)

    def __len__(self):
        return len(self.counts)

    def __getitem__(self, index):
        (refref, refalt), (altref, altalt) = self.counts[index].tolist()

        return Pair_tally_unit(refref, refalt, altref, altalt)

    def __iter__(self):
        for index in range(len(self)):
            yield self[index]

    def pairs(self):
        return iter_pairs(self.num_sites)

    def pair_index(self, i, j):
        return pair_index(i, j)

    def unit(self, i, j):
        return self[pair_index(i, j)]

    def ln_P(self, padding=0.0):
        """
        (# pairs, 4, 4) padded log joint tables.
        """
        return np.array([unit.ln_P(padding) for unit in self])

    def fisher_pvalues(self):
        """
        Fisher exact test p-value for each pair, in pair order.
        """
        return np.array([unit.fisher() for unit in self])

    def fisher(self):
        """
        Symmetric (# sites, # sites) matrix of Fisher exact test p-values, with
        an undefined (NaN) diagonal.
        """
        result = np.full((self.num_sites, self.num_sites), np.nan)

        for (i, j), pvalue in zip(self.pairs(), self.fisher_pvalues()):
            result[i, j] = result[j, i] = pvalue

        return result
