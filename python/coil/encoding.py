import numpy as np

from coil.allele_tally import FAIL_ALLELE, HET_ALLELE
from coil.exceptions import DimensionError, ValidationError
from coil.validation import validate_barcodes, validate_numerics

# NB numeric genotype call codes.
MAJOR, MINOR, HET, FAIL = 0, 1, 2, 3


def _check_num_sites(tally, num_sites):
    if len(tally) != num_sites:
        raise DimensionError(
            f"Tally length ({len(tally)}) does not correspond to barcode length ({num_sites})."
        )


def barcodes_to_numerics(tally, barcodes):
    """
    Given an allele tally and raw barcodes, return the (# barcodes, # sites)
    numeric encoding: major -> 0, minor -> 1, het -> 2, failed -> 3.
    """
    barcodes = validate_barcodes(barcodes)

    _check_num_sites(tally, len(barcodes[0]))

    # NB one symbol -> code lookup per site.
    lookups = [
        {unit.major: MAJOR, unit.minor: MINOR, HET_ALLELE: HET, FAIL_ALLELE: FAIL}
        for unit in tally
    ]

    numerics = np.zeros((len(barcodes), len(tally)), dtype=np.int64)

    for ii, barcode in enumerate(barcodes):
        for site, (lookup, allele) in enumerate(zip(lookups, barcode)):
            code = lookup.get(allele)

            if code is None:
                raise ValidationError(
                    f"Allele {allele} in barcode {ii} at site {site} is neither the major ({tally[site].major}) nor minor ({tally[site].minor}) allele."
                )

            numerics[ii, site] = code

    return numerics


def numerics_to_barcodes(tally, numerics):
    """
    Inverse of barcodes_to_numerics, returns a list of allele lists.
    """
    numerics = validate_numerics(numerics)

    _check_num_sites(tally, numerics.shape[1])

    # NB (# sites, 4) symbol for each code.
    symbols = np.array([[unit.major, unit.minor, HET_ALLELE, FAIL_ALLELE] for unit in tally])

    return symbols[np.arange(len(tally)), numerics].tolist()


def numeric_to_string(numeric):
    return "".join(str(code) for code in numeric)
