import numpy as np
import pytest
from coil.coi_sim import COI_sim, get_coi_counts, get_sim_params, random_tally


@pytest.mark.regression
def test_get_coi_counts():
    assert get_coi_counts(1.0, 100) == [58, 29, 10, 2]


def test_random_tally(rng):
    tally = random_tally(24, rng=rng)

    assert len(tally) == 24

    for unit in tally:
        assert unit.major != unit.minor
        assert unit.total_count == 100
        assert unit.major_count >= unit.minor_count


def test_coi_sim(coi_sim):
    params = get_sim_params()

    assert len(coi_sim.barcodes) == len(coi_sim.cois) == 99
    assert all(len(barcode) == params["num_sites"] for barcode in coi_sim.barcodes)

    _, counts = np.unique(coi_sim.cois, return_counts=True)

    assert counts.tolist() == [58, 29, 10, 2]
    assert coi_sim.max_coi == 4


def test_coi_sim_single_strain_no_het(coi_sim):
    for barcode, coi in zip(coi_sim.barcodes, coi_sim.cois):
        if coi == 1:
            assert "N" not in barcode


def test_coi_sim_alleles(coi_sim):
    for site, unit in enumerate(coi_sim.tally):
        alleles = {barcode[site] for barcode in coi_sim.barcodes}

        assert alleles <= {unit.major, unit.minor, "N", "X"}


def test_coi_sim_reproducible(coi_sim):
    assert COI_sim(seed=314).barcodes == coi_sim.barcodes
    assert COI_sim(seed=42).barcodes != coi_sim.barcodes


def test_coi_sim_save_load(coi_sim, tmp_path):
    coi_sim.save(tmp_path)

    loaded = COI_sim.load(tmp_path, 0)

    assert loaded.barcodes == coi_sim.barcodes
    assert np.array_equal(loaded.cois, coi_sim.cois)
    assert list(loaded.tally) == list(coi_sim.tally)
    assert loaded.params == coi_sim.params
    assert loaded.seed == 314


def test_coi_sim_load_requires_params(coi_sim):
    with pytest.raises(AssertionError):
        COI_sim(data=(coi_sim.tally, coi_sim.cois, coi_sim.barcodes))


def test_coi_sim_plot(coi_sim, tmp_path):
    fpath = tmp_path / "ladder.pdf"
    coi_sim.plot_ladder_unit(fpath, site=1)

    assert fpath.exists()
