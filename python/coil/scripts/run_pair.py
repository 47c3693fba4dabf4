import argparse
import logging
import time
from pathlib import Path

from coil.coi_inference import COI_inference, get_default_params
from coil.io import read_barcodes, write_pairs

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def run_pair(barcodes_path, output_dir, fisher=False, plot=False, **kwargs):
    start = time.time()

    Path(output_dir).mkdir(exist_ok=True, parents=True)

    barcodes = read_barcodes(barcodes_path)

    coi_inf = COI_inference(barcodes, model="pair", **kwargs)
    coi_inf.initialize()
    coi_inf.run()

    coi_inf.write(f"{output_dir}/pair_coi.txt")

    if fisher:
        # NB linkage screening of the site pairs.
        write_pairs(f"{output_dir}/pair_fisher.txt", coi_inf.tally, coi_inf.tally.fisher_pvalues())

    if plot:
        coi_inf.plot(f"{output_dir}/pair_posteriors.pdf", title="COI posteriors (pair model)")

    logger.info(f"Done ({time.time() - start:.3f} seconds).\n\n")


def main():
    # NB python python/coil/scripts/run_pair.py --barcodes barcodes.txt --output-dir ~/scratch/coil/pair/ --fisher
    defaults = get_default_params()

    parser = argparse.ArgumentParser(description="Estimate COI with the site-pair model.")
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
        help="Directory to save the COI estimates.",
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
        help="Pseudo-count added to each pair table cell.",
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
        "--keep-poly",
        action="store_true",
        help="Tally site pairs of barcodes with het calls.",
    )
    parser.add_argument(
        "--fisher",
        action="store_true",
        help="Write Fisher exact test p-values for each site pair.",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Plot the COI posteriors.",
    )

    args = parser.parse_args()

    run_pair(
        args.barcodes,
        args.output_dir,
        fisher=args.fisher,
        plot=args.plot,
        max_coi=args.max_coi,
        padding=args.padding,
        error=args.error,
        prior=args.prior,
        lam=args.lam,
        threshold=args.threshold,
        skip_poly=not args.keep_poly,
    )


if __name__ == "__main__":
    main()
