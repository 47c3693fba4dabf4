import json
import logging
from pathlib import Path

import numpy as np
from rich.pretty import pprint
from scipy.stats import poisson

from coil.allele_tally import NUCLEOTIDES, Allele_tally_unit, COI_allele_tally
from coil.encoding import numerics_to_barcodes
from coil.io import read_tally, write_tally
from coil.ladder import COI_ladder
from coil.plotting import plot_ladder_unit

logger = logging.getLogger(__name__)


def get_sim_params():
    return {
        "num_sites": 24,
        "num_barcodes": 100,
        "lam": 1.0,  # NB COI ~ zero-truncated Poisson(lam).
        "alpha": 1.0,  # NB site major frequency ~ Beta(alpha, beta).
        "beta": 1.0,
        "fail_rate": 0.05,
    }


def random_tally(num_sites, alpha=1.0, beta=1.0, rng=None, total=100):
    """
    Allele tally with Beta(alpha, beta) distributed frequencies out of total
    counts per site and a random pair of distinct nucleotides.
    """
    rng = rng if rng is not None else np.random.default_rng()

    units = []

    for density in rng.beta(alpha, beta, size=num_sites):
        count = int(np.rint(total * density))
        major_count, minor_count = max(count, total - count), min(count, total - count)

        major, minor = rng.permutation(list(NUCLEOTIDES))[:2]

        units.append(Allele_tally_unit(str(major), str(minor), major_count, minor_count))

    return COI_allele_tally.from_units(units)


def get_coi_counts(lam, num_barcodes):
    """
    Number of barcodes for each COI = 1, 2, .. in proportion to a zero-truncated
    Poisson(lam), rounded to nearest, until the first COI with zero barcodes.
    """
    norm = 1.0 - poisson.pmf(0, lam)
    counts, coi = [], 1

    while True:
        count = int(poisson.pmf(coi, lam) / norm * num_barcodes + 0.5)

        if count == 0:
            break

        counts.append(count)
        coi += 1

    return counts


class COI_sim:
    """
    A barcode population simulation: random tally, COIs from a truncated
    Poisson and genotype calls from the error-free allele ladder.
    """
    def __init__(self, sim_id=0, params=None, data=None, seed=314):
        self.sim_id = sim_id
        self.seed = seed
        self.rng = np.random.default_rng(self.seed)
        self.params = params if params is not None else get_sim_params()

        for key, value in self.params.items():
            setattr(self, key, value)

        if data is None:
            # NB guard against inconsistent data/params.
            assert (
                params is None
            ), "Parameters must not be provided when generating new data"

            self.tally, self.cois, self.barcodes = self.realize_data()
        else:
            assert (
                params is not None
            ), "Parameters are required when loading pre-generated data."

            self.tally, self.cois, self.barcodes = data

    def print(self):
        print(f"\nCOI_Sim({self.sim_id})=")
        pprint(self.params)
        print(f"with COI counts=\n{dict(zip(*np.unique(self.cois, return_counts=True)))}")

    @property
    def names(self):
        return [f"sim{ii}" for ii in range(1, len(self.barcodes) + 1)]

    @property
    def max_coi(self):
        return int(np.max(self.cois))

    def realize_data(self):
        """
        Generate a realization (one seed only) for given configuration settings.
        """
        tally = random_tally(self.num_sites, alpha=self.alpha, beta=self.beta, rng=self.rng)
        coi_counts = get_coi_counts(self.lam, self.num_barcodes)

        logger.info(f"Simulating {sum(coi_counts)} barcodes with COI counts {coi_counts}.")

        # NB unpadded, the simulated frequencies are exact.
        self.ladder = COI_ladder.from_tally(tally, max_coi=len(coi_counts), padding=0.0)

        cois, numerics = [], []

        for coi, count in enumerate(coi_counts, start=1):
            numerics.append(
                self.ladder.random_numerics(coi, size=count, rng=self.rng, fail_rate=self.fail_rate)
            )
            cois += [coi] * count

        barcodes = ["".join(barcode) for barcode in numerics_to_barcodes(tally, np.vstack(numerics))]

        return tally, np.array(cois), barcodes

    def to_display_string(self, sep="\t"):
        return "\n".join(
            sep.join([name, str(coi), barcode])
            for name, coi, barcode in zip(self.names, self.cois, self.barcodes)
        )

    def save(self, output_dir):
        sim_params = self.params.copy()
        sim_params["seed"] = self.seed

        with Path(f"{output_dir}/coi_sim_parameters.json").open("w") as ff:
            json.dump(sim_params, ff, indent=4)

        Path(f"{output_dir}/coi_sim_{self.sim_id}").mkdir(exist_ok=True, parents=True)

        with Path(f"{output_dir}/coi_sim_{self.sim_id}/coi_sim_barcodes_{self.sim_id}.txt").open("w") as ff:
            ff.write(self.to_display_string() + "\n")

        write_tally(f"{output_dir}/coi_sim_{self.sim_id}/coi_sim_tally_{self.sim_id}.txt", self.tally)

        logger.info(f"Successfully saved sim. {self.sim_id} output to {output_dir}")

    @classmethod
    def load(cls, output_dir, sim_id):
        params_path = f"{output_dir}/coi_sim_parameters.json"

        with Path(params_path).open() as ff:
            params = json.load(ff)

        seed = params.pop("seed", 314)

        logger.info(f"Loading simulation parameters @ {params_path}")

        data_path = f"{output_dir}/coi_sim_{sim_id}/coi_sim_barcodes_{sim_id}.txt"

        with Path(data_path).open() as ff:
            rows = [line.split() for line in ff if line.strip()]

        logger.info(f"Loading simulation data @ {data_path}")

        tally = read_tally(f"{output_dir}/coi_sim_{sim_id}/coi_sim_tally_{sim_id}.txt")
        cois = np.array([int(coi) for _, coi, _ in rows])
        barcodes = [barcode for _, _, barcode in rows]

        coi_sim = COI_sim(sim_id=sim_id, params=params, data=(tally, cois, barcodes), seed=seed)
        coi_sim.print()

        return coi_sim

    def plot_ladder_unit(self, fpath, site=0):
        ladder = COI_ladder.from_tally(self.tally, max_coi=self.max_coi, padding=0.0)

        plot_ladder_unit(fpath, ladder.unit(site), title=f"COI_sim({self.sim_id}) site {site}")
