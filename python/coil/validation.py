import logging
import re

import numpy as np

from coil.exceptions import ValidationError

logger = logging.getLogger(__name__)

RE_UNIT = re.compile(r"[ACGTNX]")
RE_NUMERIC = re.compile(r"^[0-3]+$")


def validate_barcode(barcode, index=0):
    """
    Return the barcode as a list of single-character alleles, raising a
    ValidationError naming the first invalid site.
    """
    alleles = list(barcode)

    if not alleles:
        raise ValidationError(f"Barcode {index} is empty.")

    for site, allele in enumerate(alleles):
        if not isinstance(allele, str) or RE_UNIT.fullmatch(allele) is None:
            raise ValidationError(
                f"Invalid allele {allele!r} in barcode {index} at site {site}."
            )

    return alleles


def validate_barcodes(barcodes):
    """
    Validate a barcode population: non-empty, alleles in ACGTNX and all
    barcodes of equal length.  Returns a list of allele lists.
    """
    if barcodes is None or len(barcodes) == 0:
        raise ValidationError("Expected at least one barcode, found none.")

    result = [validate_barcode(barcode, index=ii) for ii, barcode in enumerate(barcodes)]

    num_sites = len(result[0])

    for ii, barcode in enumerate(result):
        if len(barcode) != num_sites:
            raise ValidationError(
                f"Barcode {ii} has {len(barcode)} sites, expected {num_sites} (barcode 0)."
            )

    return result


def validate_numerics(numerics):
    """
    Validate numeric barcodes (codes 0-3, equal lengths) and return a
    (# barcodes, # sites) int64 array.
    """
    if numerics is None or len(numerics) == 0:
        raise ValidationError("Expected at least one numeric barcode, found none.")

    if isinstance(numerics, np.ndarray):
        rows = np.atleast_2d(numerics)
    else:
        rows = []

        for ii, numeric in enumerate(numerics):
            if isinstance(numeric, str):
                if RE_NUMERIC.fullmatch(numeric) is None:
                    raise ValidationError(f"Invalid numeric barcode {ii}: {numeric!r}.")

                numeric = [int(code) for code in numeric]

            rows.append(list(numeric))

        lengths = {len(row) for row in rows}

        if len(lengths) != 1:
            raise ValidationError(
                f"Numeric barcodes have unequal lengths, found {sorted(lengths)}."
            )

        rows = np.array(rows)

    if rows.ndim != 2 or rows.shape[1] == 0:
        raise ValidationError(f"Numeric barcodes must be 2D and non-empty, found shape {rows.shape}.")

    if not np.issubdtype(rows.dtype, np.integer):
        if not np.all(np.mod(rows, 1) == 0):
            raise ValidationError("Numeric barcodes must contain integer codes.")

    invalid = (rows < 0) | (rows > 3)

    if np.any(invalid):
        ii, site = np.argwhere(invalid)[0]
        raise ValidationError(
            f"Invalid code {rows[ii, site]} in numeric barcode {ii} at site {site}."
        )

    return np.ascontiguousarray(rows, dtype=np.int64)


def validate_prob(value, name="probability"):
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} must be within [0, 1], found {value}.")

    return float(value)


def validate_positive_int(value, name="value"):
    if int(value) != value or value < 1:
        raise ValidationError(f"{name} must be a positive integer, found {value}.")

    return int(value)


def validate_padding(padding):
    if padding < 0.0:
        raise ValidationError(f"padding must be non-negative, found {padding}.")

    return float(padding)
