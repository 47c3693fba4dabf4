from coil.io import read_barcodes, write_barcodes
from coil.scripts.run_allele import run_allele
from coil.scripts.run_pair import run_pair
from coil.scripts.run_sim import run_sim


def test_run_sim(tmp_path):
    run_sim(tmp_path, num_sims=1)

    assert (tmp_path / "coi_sim_parameters.json").exists()
    assert (tmp_path / "coi_sim_0" / "coi_sim_barcodes_0.txt").exists()


def test_run_allele(tmp_path, barcodes):
    barcodes_path = tmp_path / "barcodes.txt"
    write_barcodes(barcodes_path, barcodes)

    run_allele(barcodes_path, tmp_path / "allele", max_coi=4, plot=True)

    lines = (tmp_path / "allele" / "allele_coi.txt").read_text().splitlines()

    assert len(lines) == len(barcodes)
    assert (tmp_path / "allele" / "allele_tally.txt").exists()
    assert (tmp_path / "allele" / "allele_posteriors.pdf").exists()


def test_run_pair(tmp_path, coi_sim):
    barcodes_path = tmp_path / "barcodes.txt"
    write_barcodes(barcodes_path, coi_sim.barcodes, names=coi_sim.names)

    run_pair(barcodes_path, tmp_path / "pair", fisher=True)

    assert read_barcodes(barcodes_path) == coi_sim.barcodes
    assert len((tmp_path / "pair" / "pair_coi.txt").read_text().splitlines()) == 99

    num_sites = len(coi_sim.barcodes[0])
    lines = (tmp_path / "pair" / "pair_fisher.txt").read_text().splitlines()

    assert len(lines) == num_sites * (num_sites - 1) // 2
