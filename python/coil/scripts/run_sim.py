import argparse
import logging
import time
from pathlib import Path

from coil.coi_sim import COI_sim

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def run_sim(output_dir, num_sims=1, seed=314):
    start = time.time()

    for sim_id in range(num_sims):
        # NB ensure the directory exists
        Path(f"{output_dir}/coi_sim_{sim_id}/plots").mkdir(exist_ok=True, parents=True)

        coi_sim = COI_sim(sim_id=sim_id, seed=seed + sim_id)
        coi_sim.save(output_dir)

        coi_sim.plot_ladder_unit(f"{output_dir}/coi_sim_{sim_id}/plots/ladder_site_0_{sim_id}.pdf")

    logger.info(f"\n\nDone ({time.time() - start:.3f} seconds).\n\n")


def main():
    # NB python python/coil/scripts/run_sim.py --output-dir ~/scratch/coil/sims/ --num_sims 2
    parser = argparse.ArgumentParser(description="Create COI barcode simulation.")
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        required=True,
        help="Directory to save the simulation results.",
    )
    parser.add_argument(
        "--num_sims",
        type=int,
        default=1,
        help="Number of simulations to generate.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=314,
        help="Seed for random number generation.",
    )

    args = parser.parse_args()

    run_sim(args.output_dir, args.num_sims, args.seed)


if __name__ == "__main__":
    main()
