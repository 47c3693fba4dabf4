"""
Plain-text formats: barcode files (one barcode per line as the last
whitespace-separated field, # comments), tab-separated allele tallies, pair
values and ladders.
"""
import logging
from pathlib import Path

from coil.allele_tally import MISSING_ALLELE, NUCLEOTIDES, Allele_tally_unit, COI_allele_tally
from coil.encoding import numeric_to_string
from coil.exceptions import ValidationError
from coil.validation import validate_barcodes, validate_numerics

logger = logging.getLogger(__name__)


def _read_fields(fpath):
    with Path(fpath).open() as ff:
        for line in ff:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            yield line.split()


def read_barcodes(fpath):
    barcodes = validate_barcodes([fields[-1] for fields in _read_fields(fpath)])
    barcodes = ["".join(barcode) for barcode in barcodes]

    logger.info(f"Read {len(barcodes)} barcodes from {fpath}")

    return barcodes


def read_numerics(fpath):
    return validate_numerics([fields[-1] for fields in _read_fields(fpath)])


def write_barcodes(fpath, barcodes, names=None):
    with Path(fpath).open("w") as ff:
        for ii, barcode in enumerate(barcodes):
            barcode = "".join(barcode)

            ff.write(f"{names[ii]}\t{barcode}\n" if names is not None else f"{barcode}\n")


def write_numerics(fpath, numerics):
    numerics = validate_numerics(numerics)

    with Path(fpath).open("w") as ff:
        for numeric in numerics:
            ff.write(numeric_to_string(numeric) + "\n")


def read_tally(fpath):
    units = []

    for fields in _read_fields(fpath):
        if len(fields) != 4:
            raise ValidationError(
                f"Expected a major, minor, major count, minor count tally line in {fpath}, found {fields}."
            )

        major, minor, major_count, minor_count = fields
        major_count, minor_count = int(major_count), int(minor_count)

        if major not in set(NUCLEOTIDES) or minor not in set(NUCLEOTIDES + MISSING_ALLELE) or major == minor:
            raise ValidationError(
                f"Invalid major / minor alleles {major}, {minor} in tally line {len(units)} of {fpath}."
            )

        if minor_count < 0 or major_count < minor_count:
            raise ValidationError(
                f"Expected major count >= minor count >= 0 in tally line {len(units)} of {fpath}, found {major_count}, {minor_count}."
            )

        units.append(Allele_tally_unit(major, minor, major_count, minor_count))

    return COI_allele_tally.from_units(units)


def write_tally(fpath, tally):
    with Path(fpath).open("w") as ff:
        ff.write(tally.to_display_string(sep="\t") + "\n")

    logger.info(f"Wrote {len(tally)} site tally to {fpath}")


def write_tally_density(fpath, tally, digits=4):
    """
    Unpadded major allele frequency per site, one per line.
    """
    with Path(fpath).open("w") as ff:
        for density in tally.densities():
            ff.write(f"{density:.{digits}f}\n")


def write_pairs(fpath, pair_tally, values, digits=6):
    """
    One "i j value" line per site pair, e.g. for Fisher p-values.
    """
    assert len(values) == len(pair_tally), f"Expected {len(pair_tally)} pair values, found {len(values)}."

    with Path(fpath).open("w") as ff:
        for (ii, jj), value in zip(pair_tally.pairs(), values):
            ff.write(f"{ii}\t{jj}\t{value:.{digits}g}\n")


def write_ladder(fpath, ladder, digits=2):
    with Path(fpath).open("w") as ff:
        ff.write(ladder.to_display_string(digits=digits) + "\n")

    logger.info(f"Wrote {ladder.model.name} ladder to {fpath}")
