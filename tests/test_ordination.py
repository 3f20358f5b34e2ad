import numpy as np
import pandas as pd
import pytest

from fieldstats.ordination import OrdinationResult, bray_curtis, pca, pcoa

FOREST_VARS = ["Tree_Density_per_ha", "Aboveground_Tree_Carbon_ton_per_ha", "Stand_age_years"]


def test_pca_on_forest_variables(forest_data):
    res = pca(forest_data, FOREST_VARS)
    assert isinstance(res, OrdinationResult)
    assert res.method == "pca"
    assert list(res.scores.columns) == ["Dim1", "Dim2", "Dim3"]
    assert res.scores.shape == (90, 3)
    assert res.explained["explained_pct"].sum() == pytest.approx(100.0)
    assert res.explained["eigenvalue"].is_monotonic_decreasing
    # scaled PCA: eigenvalues sum to the number of variables
    assert res.explained["eigenvalue"].sum() == pytest.approx(3.0, rel=0.05)
    assert res.scores["Dim1"].var() == pytest.approx(res.explained["eigenvalue"].iloc[0])
    assert set(res.transforms["variable"]) == set(FOREST_VARS)


def test_pca_log_transforms_long_tail():
    rng = np.random.default_rng(41)
    df = pd.DataFrame({
        "skewed": np.exp(rng.normal(0, 1.5, 60)),
        "normal": rng.normal(10, 1, 60),
    })
    res = pca(df, ["skewed", "normal"])
    transforms = res.transforms.set_index("variable")["transform"]
    assert transforms["skewed"] == "log10"
    assert transforms["normal"] == "none"
    assert pca(df, ["skewed", "normal"], log_long_tail=False).transforms["transform"].eq("none").all()


def test_pca_drops_constant_column(forest_data):
    df = forest_data.assign(const=1.0)
    res = pca(df, FOREST_VARS + ["const"])
    assert "const" not in res.loadings.index


def test_pca_input_checks(forest_data):
    with pytest.raises(ValueError, match="at least 2 numeric columns"):
        pca(forest_data, ["Tree_Density_per_ha"])
    with pytest.raises(ValueError, match="at least 3 complete"):
        pca(forest_data.head(2), FOREST_VARS)


def test_bray_curtis(species_matrix):
    d = bray_curtis(species_matrix.T)
    assert d.shape == (8, 8)
    assert np.allclose(np.diag(d), 0)
    assert np.allclose(d, d.T)
    assert ((d >= 0) & (d <= 1)).all().all()


def test_bray_curtis_rejects_bad_input():
    with pytest.raises(ValueError, match="non-negative"):
        bray_curtis(pd.DataFrame({"a": [1, -1], "b": [2, 3]}))
    with pytest.raises(ValueError, match="all-zero"):
        bray_curtis(pd.DataFrame({"a": [0, 1], "b": [0, 3]}))


def test_pcoa_of_bray_curtis(species_matrix):
    res = pcoa(bray_curtis(species_matrix.T), n_axes=2)
    assert res.method == "pcoa"
    assert res.loadings is None
    assert list(res.scores.index) == list(species_matrix.columns)
    assert list(res.scores.columns) == ["Dim1", "Dim2"]
    assert res.explained["explained_pct"].iloc[0] >= res.explained["explained_pct"].iloc[1]


def test_pcoa_recovers_euclidean_configuration():
    pts = pd.DataFrame({"x": [0.0, 3.0, 0.0, 3.0], "y": [0.0, 0.0, 1.0, 1.0]}, index=list("abcd"))
    diff = pts.to_numpy()[:, None, :] - pts.to_numpy()[None, :, :]
    dist = pd.DataFrame(np.sqrt((diff ** 2).sum(axis=2)), index=pts.index, columns=pts.index)
    res = pcoa(dist, n_axes=3)
    assert len(res.scores.columns) == 2
    assert res.explained["explained_pct"].sum() == pytest.approx(100.0)
    assert abs(res.scores["Dim1"]).max() == pytest.approx(1.5)


def test_pcoa_rejects_asymmetric():
    d = pd.DataFrame([[0, 1, 2], [1, 0, 1], [3, 1, 0]], dtype=float)
    with pytest.raises(ValueError, match="symmetric"):
        pcoa(d)
