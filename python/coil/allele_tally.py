"""
Per-site allele tallies of a barcode population.

Allele tallies are needed for converting barcodes to / from their numeric
representation and for the major allele frequency of each site, from which
the allele likelihood ladder is built.
"""
import logging
from dataclasses import dataclass

import numpy as np

from coil.exceptions import MultiallelicSiteError, ValidationError
from coil.validation import validate_barcodes, validate_padding

logger = logging.getLogger(__name__)

NUCLEOTIDES = "ACGT"
HET_ALLELE = "N"
FAIL_ALLELE = "X"

# NB synthetic "impossible" second allele for a monoallelic site.
MISSING_ALLELE = "?"


@dataclass(frozen=True)
class Allele_tally_unit:
    """
    Observed major / minor alleles at one site and their counts across the
    barcodes without a het call.
    """

    major: str
    minor: str
    major_count: int
    minor_count: int

    @property
    def total_count(self):
        return self.major_count + self.minor_count

    @property
    def is_monoallelic(self):
        return self.minor == MISSING_ALLELE

    def p(self, padding=0.0):
        """
        Laplace-smoothed major allele frequency.
        """
        padding = validate_padding(padding)
        total = self.total_count + 2.0 * padding

        if total == 0.0:
            raise ValidationError(
                f"No major/minor counts for {self.to_display_string()} and zero padding."
            )

        return (self.major_count + padding) / total

    def to_display_string(self, sep="\t"):
        return sep.join(
            [self.major, self.minor, str(self.major_count), str(self.minor_count)]
        )


class COI_allele_tally:
    """
    Ordered, immutable collection of Allele_tally_unit, one per site.
    """

    def __init__(self, units, monoallelic_sites=()):
        self._units = tuple(units)
        self.monoallelic_sites = tuple(monoallelic_sites)

    @classmethod
    def from_units(cls, units):
        units = tuple(units)

        return cls(
            units,
            monoallelic_sites=[ii for ii, unit in enumerate(units) if unit.is_monoallelic],
        )

    @classmethod
    def from_barcodes(cls, barcodes):
        """
        Tally the major / minor allele at each site of a barcode population.

        Alleles seen in any barcode define each site's allele set, such that
        every barcode of the population may be encoded.  Counts only include
        barcodes without a het call at any site, as hets usually derive from
        uncertain multi-strain samples and would bias the frequencies.
        """
        barcodes = validate_barcodes(barcodes)
        num_sites = len(barcodes[0])

        # NB dicts retain insertion order, i.e. order of first observation.
        seen = [dict() for _ in range(num_sites)]
        counts = [dict() for _ in range(num_sites)]

        num_skipped = 0

        for barcode in barcodes:
            for site, allele in enumerate(barcode):
                if allele in NUCLEOTIDES:
                    seen[site][allele] = True

            if HET_ALLELE in barcode:
                num_skipped += 1
                continue

            for site, allele in enumerate(barcode):
                if allele in NUCLEOTIDES:
                    counts[site][allele] = counts[site].get(allele, 0) + 1

        logger.info(
            f"Tallying {num_sites} sites across {len(barcodes) - num_skipped} barcodes, skipped {num_skipped} with het calls."
        )

        units, monoallelic_sites = [], []

        for site in range(num_sites):
            alleles = list(seen[site])

            if len(alleles) == 0:
                raise ValidationError(f"No alleles observed at site {site}.")
            elif len(alleles) > 2:
                raise MultiallelicSiteError(
                    f"Multiallelic site {site} is not supported, found alleles {alleles}."
                )
            elif len(alleles) == 1:
                logger.warning(f"Site {site} is not biallelic, found only {alleles[0]}.")

                alleles.append(MISSING_ALLELE)
                monoallelic_sites.append(site)

            first, second = alleles
            first_count = counts[site].get(first, 0)
            second_count = counts[site].get(second, 0)

            # NB ties resolve to the first observed allele as the major.
            if first_count >= second_count:
                unit = Allele_tally_unit(first, second, first_count, second_count)
            else:
                unit = Allele_tally_unit(second, first, second_count, first_count)

            units.append(unit)

        return cls(units, monoallelic_sites=monoallelic_sites)

    def __len__(self):
        return len(self._units)

    def __iter__(self):
        return iter(self._units)

    def __getitem__(self, index):
        return self._units[index]

    @property
    def num_sites(self):
        return len(self._units)

    @property
    def majors(self):
        return [unit.major for unit in self._units]

    @property
    def minors(self):
        return [unit.minor for unit in self._units]

    @property
    def counts(self):
        """
        (# sites, 2) array of major and minor counts.
        """
        return np.array(
            [[unit.major_count, unit.minor_count] for unit in self._units], dtype=float
        )

    def p(self, padding=0.0):
        """
        Padded major allele frequency for each site.
        """
        return np.array([unit.p(padding) for unit in self._units])

    def densities(self):
        """
        Unpadded major allele frequency for each site.
        """
        counts = self.counts

        with np.errstate(invalid="ignore", divide="ignore"):
            return counts[:, 0] / counts.sum(axis=1)

    def to_display_string(self, sep="\t"):
        return "\n".join(unit.to_display_string(sep=sep) for unit in self._units)
