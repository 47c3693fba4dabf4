import argparse
import logging
import time
from pathlib import Path

from coil.coi_inference import COI_inference, get_default_params
from coil.io import read_barcodes, write_ladder, write_tally, write_tally_density

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def run_allele(barcodes_path, output_dir, plot=False, **kwargs):
    start = time.time()

    Path(output_dir).mkdir(exist_ok=True, parents=True)

    barcodes = read_barcodes(barcodes_path)

    coi_inf = COI_inference(barcodes, model="allele", **kwargs)
    coi_inf.initialize()
    coi_inf.run()

    write_tally(f"{output_dir}/allele_tally.txt", coi_inf.allele_tally)
    write_tally_density(f"{output_dir}/allele_density.txt", coi_inf.allele_tally)
    write_ladder(f"{output_dir}/allele_ladder.txt", coi_inf.error_ladder)

    coi_inf.write(f"{output_dir}/allele_coi.txt")

    if plot:
        coi_inf.plot(f"{output_dir}/allele_posteriors.pdf", title="COI posteriors (allele model)")

    logger.info(f"Done ({time.time() - start:.3f} seconds).\n\n")


def main():
    # NB python python/coil/scripts/run_allele.py --barcodes barcodes.txt --output-dir ~/scratch/coil/allele/
    defaults = get_default_params()

    parser = argparse.ArgumentParser(description="Estimate COI with the single-site allele model.")
    parser.add_argument(
        "--barcodes",
        type=str,
        required=True,
        help="Barcode file, one barcode per line as the last field.",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        required=True,
        help="Directory to save the tally, ladder and COI estimates.",
    )
    parser.add_argument(
        "--max-coi",
        type=int,
        default=defaults["max_coi"],
        help="Maximum modelled COI.",
    )
    parser.add_argument(
        "--padding",
        type=float,
        default=defaults["padding"],
        help="Pseudo-count added to each allele count.",
    )
    parser.add_argument(
        "--error",
        type=float,
        default=defaults["error"],
        help="Symmetric assay error rate.",
    )
    parser.add_argument(
        "--prior",
        type=str,
        default=defaults["prior"],
        choices=["uniform", "poisson"],
        help="Assumed COI prior.",
    )
    parser.add_argument(
        "--lam",
        type=float,
        default=defaults["lam"],
        help="Poisson prior rate.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=defaults["threshold"],
        help="Credible interval mass.",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Plot the COI posteriors.",
    )

    args = parser.parse_args()

    run_allele(
        args.barcodes,
        args.output_dir,
        plot=args.plot,
        max_coi=args.max_coi,
        padding=args.padding,
        error=args.error,
        prior=args.prior,
        lam=args.lam,
        threshold=args.threshold,
    )


if __name__ == "__main__":
    main()
