from __future__ import annotations

import numpy as np
import pytest
from coil.allele_tally import Allele_tally_unit, COI_allele_tally
from coil.coi_sim import COI_sim


# NB scope defines the event for which a new instance is generated.
#    e.g. for every module, of every test function.
@pytest.fixture
def rng():
    return np.random.default_rng(314)


@pytest.fixture
def barcodes():
    return [
        "ACGTA",
        "ACGTA",
        "TCGTA",
        "AGGTC",
        "ACCAA",
        "TGCAC",
        "ANGTX",
        "AXGTA",
    ]


@pytest.fixture
def allele_tally(barcodes):
    return COI_allele_tally.from_barcodes(barcodes)


@pytest.fixture
def single_site_tally():
    # NB major allele frequency of 0.8 without padding.
    return COI_allele_tally.from_units([Allele_tally_unit("A", "T", 8, 2)])


@pytest.fixture
def coi_sim():
    return COI_sim(seed=314)


def pytest_addoption(parser):
    parser.addoption(
        "--run_slow", action="store_true", default=False, help="run slow tests"
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run_slow"):
        return

    skip_slow = pytest.mark.skip(reason="need --run_slow option to run")

    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
