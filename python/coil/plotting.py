import logging

import matplotlib.pyplot as plt
import numpy as np
import pylab as pl

logger = logging.getLogger(__name__)


def plot_posteriors(fpath, posteriors, true_cois=None, title=None):
    """
    Heatmap of the COI posterior for each barcode, with the MAP COI overlaid
    and, for simulations, the true COI.
    """
    pl.clf()

    probs = np.vstack([posterior.probs for posterior in posteriors])
    modes = np.array([posterior.mode() for posterior in posteriors])

    num_barcodes, max_coi = probs.shape
    barcode_index = np.arange(num_barcodes)

    fig, ax = plt.subplots(figsize=(10, 5))

    im = ax.imshow(
        probs.T,
        aspect="auto",
        origin="lower",
        cmap="viridis",
        vmin=0.0,
        vmax=1.0,
        extent=(-0.5, num_barcodes - 0.5, 0.5, max_coi + 0.5),
    )

    ax.scatter(barcode_index, modes, marker=".", c="white", lw=0.0, label="MAP")

    if true_cois is not None:
        assert len(true_cois) == num_barcodes, f"Found inconsistent true COIs and posteriors (size {len(true_cois)} and {num_barcodes} respectively)"

        ax.scatter(barcode_index, true_cois, marker="x", c="red", s=10, lw=0.5, label="true")

    fig.colorbar(im, ax=ax, label="posterior probability")

    ax.set_xlabel("barcode index")
    ax.set_ylabel("COI")
    ax.legend(loc="upper right", frameon=False)

    if title is not None:
        ax.set_title(title)

    fig.savefig(fpath)
    plt.close(fig)

    logger.info(f"Plotted COI posteriors to {fpath}")


def plot_ladder_unit(fpath, unit, title=None):
    """
    Call probabilities (major, minor, het) of one ladder unit vs COI.  For a
    pair unit, the joint probabilities of the 3x3 informative block.
    """
    pl.clf()

    cois = np.arange(1, unit.max_coi + 1)
    probs = np.exp(unit.ln_probs)

    fig, ax = plt.subplots(figsize=(6, 4))

    if probs.ndim == 2:
        for state, label in enumerate(["major", "minor", "het"]):
            ax.plot(cois, probs[:, state], marker="o", label=label)
    else:
        labels = ["A", "a", "N"]

        for ii in range(3):
            for jj in range(3):
                ax.plot(cois, probs[:, ii, jj], marker=".", lw=0.5, label=f"{labels[ii]}{labels[jj]}")

    ax.set_xlabel("COI")
    ax.set_ylabel("call probability")
    ax.set_ylim(-0.05, 1.05)
    ax.legend(frameon=False, fontsize=8)

    if title is not None:
        ax.set_title(title)

    fig.savefig(fpath)
    plt.close(fig)

    logger.info(f"Plotted ladder unit {unit.index} to {fpath}")
