import numpy as np
import numpy.testing as npt
import pytest
from coil.encoding import barcodes_to_numerics
from coil.error_model import Error_matrix
from coil.exceptions import DimensionError, ValidationError
from coil.ladder import Allele_model, COI_ladder, Pair_model
from coil.pair_tally import COI_pair_tally


@pytest.fixture
def allele_ladder(allele_tally):
    return COI_ladder.from_tally(allele_tally, max_coi=5, padding=0.5)


@pytest.fixture
def numerics(allele_tally, barcodes):
    return barcodes_to_numerics(allele_tally, barcodes)


@pytest.fixture
def pair_ladder(numerics):
    pair_tally = COI_pair_tally.from_numerics(numerics)

    return COI_ladder.from_tally(pair_tally, max_coi=5, padding=0.5)


def test_allele_ladder_levels(single_site_tally):
    ladder = COI_ladder.from_tally(single_site_tally, max_coi=3, padding=0.0)

    assert ladder.model is Allele_model
    assert ladder.ln_probs.shape == (3, 1, 4)

    npt.assert_allclose(np.exp(ladder.level(1)[0]), [0.8, 0.2, 0.0, 1.0], atol=1e-12)
    npt.assert_allclose(np.exp(ladder.level(2)[0]), [0.64, 0.04, 0.32, 1.0], atol=1e-12)

    assert ladder.level(1)[0, 2] == -np.inf


def test_allele_ladder_normalized(allele_ladder):
    probs = np.exp(allele_ladder.ln_probs)

    npt.assert_allclose(probs[..., :3].sum(axis=-1), 1.0, atol=1e-9)
    npt.assert_allclose(probs[..., 3], 1.0)


def test_allele_ladder_monotone(allele_ladder):
    base = allele_ladder.level(1)

    for coi in range(1, allele_ladder.max_coi + 1):
        npt.assert_allclose(allele_ladder.level(coi)[:, 0], coi * base[:, 0], rtol=1e-12)
        npt.assert_allclose(allele_ladder.level(coi)[:, 1], coi * base[:, 1], rtol=1e-12)


def test_allele_ladder_error(single_site_tally):
    ladder = COI_ladder.from_tally(single_site_tally, max_coi=3, padding=0.0)
    error = Error_matrix.asymmetric(0.01, 0.04, 0.1)

    error_ladder = ladder.add_error(error)

    npt.assert_allclose(np.exp(error_ladder.level(1)[0, :3]), [0.762, 0.198, 0.04], rtol=1e-10)
    npt.assert_allclose(np.exp(error_ladder.ln_probs[..., :3]).sum(axis=-1), 1.0, atol=1e-9)

    assert error_ladder.errors == (error,)

    # NB the error-free ladder is unchanged.
    npt.assert_allclose(np.exp(ladder.level(1)[0, :2]), [0.8, 0.2])
    assert ladder.errors == ()


def test_ladder_immutable(allele_ladder):
    with pytest.raises(ValueError):
        allele_ladder.ln_probs[0, 0, 0] = 0.0


def test_allele_likelihoods(single_site_tally):
    ladder = COI_ladder.from_tally(single_site_tally, max_coi=2, padding=0.0)

    result = ladder.likelihoods(["0", "1", "2", "3"])

    exp = np.log(
        [
            [0.8, 0.64],
            [0.2, 0.04],
            [0.0, 0.32],
            [1.0, 1.0],
        ]
    )

    npt.assert_allclose(result, exp, atol=1e-12)


def test_allele_likelihood_sums_sites(allele_ladder):
    result = allele_ladder.likelihood("01001")

    exp = [
        sum(allele_ladder.level(coi)[site, code] for site, code in enumerate([0, 1, 0, 0, 1]))
        for coi in range(1, 6)
    ]

    npt.assert_allclose(result, exp, rtol=1e-12)


def test_likelihoods_dimension_mismatch(allele_ladder):
    with pytest.raises(DimensionError, match="Numeric barcodes have 4 sites, ladder expects 5"):
        allele_ladder.likelihoods(["0000", "0000"])

    with pytest.raises(DimensionError):
        allele_ladder.likelihood([[0, 0, 0, 0, 0]])


def test_ladder_level_out_of_range(allele_ladder):
    with pytest.raises(ValidationError):
        allele_ladder.level(0)

    with pytest.raises(ValidationError):
        allele_ladder.level(6)


def test_pair_ladder_normalized(pair_ladder):
    assert pair_ladder.model is Pair_model
    assert pair_ladder.ln_probs.shape == (5, 10, 4, 4)

    probs = np.exp(pair_ladder.ln_probs)

    npt.assert_allclose(probs[..., :3, :3].sum(axis=(-2, -1)), 1.0, atol=1e-9)
    npt.assert_allclose(probs[..., 3, 3], 1.0)

    # NB marginals are consistent with the joint.
    npt.assert_allclose(probs[..., :3, :3].sum(axis=-1), probs[..., :3, 3], atol=1e-9)


def test_pair_ladder_monotone(pair_ladder):
    base = pair_ladder.level(1)

    for coi in range(2, pair_ladder.max_coi + 1):
        npt.assert_allclose(pair_ladder.level(coi)[:, :2, :2], coi * base[:, :2, :2], rtol=1e-12)


def test_pair_ladder_error(pair_ladder):
    error_ladder = pair_ladder.add_error(0.05)
    probs = np.exp(error_ladder.ln_probs)

    npt.assert_allclose(probs[..., :3, :3].sum(axis=(-2, -1)), 1.0, atol=1e-9)
    npt.assert_allclose(probs[..., :3, :3].sum(axis=-1), probs[..., :3, 3], atol=1e-9)


def test_pair_likelihoods_scale(pair_ladder, numerics):
    result = pair_ladder.likelihoods(numerics)
    unscaled = pair_ladder.likelihoods(numerics, scale=1.0)

    assert result.shape == (len(numerics), 5)
    npt.assert_allclose(result, unscaled / 4.0, rtol=1e-12)


def test_pair_likelihood_sums_pairs(pair_ladder):
    numeric = [0, 1, 2, 3, 0]
    result = pair_ladder.likelihood(numeric, scale=1.0)

    exp = []

    for coi in range(1, 6):
        level = pair_ladder.level(coi)
        kk, total = 0, 0.0

        for jj in range(1, 5):
            for ii in range(jj):
                total += level[kk, numeric[ii], numeric[jj]]
                kk += 1

        exp.append(total)

    npt.assert_allclose(result, exp, rtol=1e-12)


def test_random_numerics(single_site_tally, rng):
    ladder = COI_ladder.from_tally(single_site_tally, max_coi=2, padding=0.0)

    numerics = ladder.random_numerics(2, size=10_000, rng=rng)
    _, counts = np.unique(numerics, return_counts=True)

    npt.assert_allclose(counts / 10_000, [0.64, 0.04, 0.32], atol=0.02)


def test_random_numerics_fail_rate(allele_ladder, rng):
    numerics = allele_ladder.random_numerics(1, size=2_000, rng=rng, fail_rate=0.1)

    assert numerics.shape == (2_000, 5)
    assert np.mean(numerics == 3) == pytest.approx(0.1, abs=0.02)

    # NB no het calls for a single strain.
    assert not np.any(numerics == 2)


def test_pair_random_numerics(pair_ladder, rng):
    with pytest.raises(TypeError, match="only supported for allele ladders"):
        pair_ladder.random_numerics(1, rng=rng)


def test_ladder_display(single_site_tally):
    ladder = COI_ladder.from_tally(single_site_tally, max_coi=2, padding=0.0)

    assert ladder.to_display_string() == "0.80|0.20|0.00\t0.64|0.04|0.32"
    assert ladder.unit(0).max_coi == 2


def test_pair_ladder_display():
    pair_tally = COI_pair_tally.from_numerics(["00", "00", "01", "11"])
    ladder = COI_ladder.from_tally(pair_tally, max_coi=1, padding=0.0)

    assert ladder.to_display_string() == "[0.50:0.25:0.00/0.00:0.25:0.00/0.00:0.00:0.00]"


def test_ladder_model_dispatch(allele_tally):
    assert COI_ladder.from_tally(allele_tally).model is Allele_model

    with pytest.raises(TypeError):
        COI_ladder.from_tally(object())
