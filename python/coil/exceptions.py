"""
Exceptions raised by the COI likelihood engine.
"""


class COIL_error(Exception):
    """Base exception for COI likelihood errors."""


class ValidationError(COIL_error, ValueError):
    """Raised for malformed alleles, barcodes, numerics or rates."""


class DimensionError(COIL_error, ValueError):
    """Raised when tally, barcode, likelihood or prior lengths disagree."""


class MultiallelicSiteError(COIL_error, ValueError):
    """Raised when more than two alleles are observed at a site."""
