import numpy as np
import pandas as pd
import plotly.graph_objects as go
import pytest
from scipy import stats

from fieldstats.hypothesis_tests import (
    chi_square_test,
    cohens_d,
    kruskal_wallis,
    levene_homogeneity,
    mann_whitney,
    normality_checks,
    t_test,
    t_test_analysis,
    t_test_power,
    wilcoxon_signed_rank,
)


def test_welch_t_test_matches_scipy(two_groups):
    row = t_test(two_groups, "Biomass", group="Site").iloc[0]
    a = two_groups.loc[two_groups["Site"] == "A", "Biomass"]
    b = two_groups.loc[two_groups["Site"] == "B", "Biomass"]
    ref = stats.ttest_ind(a, b, equal_var=False)
    assert row["method"] == "Welch Two Sample t-test"
    assert row["group1"] == "A" and row["group2"] == "B"
    assert row["statistic"] == pytest.approx(ref.statistic)
    assert row["p"] == pytest.approx(ref.pvalue)
    assert row["estimate"] == pytest.approx(a.mean() - b.mean())
    assert row["conf_low"] < row["estimate"] < row["conf_high"]


def test_student_t_test_df(two_groups):
    row = t_test(two_groups, "Biomass", group="Site", var_equal=True).iloc[0]
    assert row["method"] == "Two Sample t-test"
    assert row["df"] == pytest.approx(28)


def test_one_sample_t_test():
    df = pd.DataFrame({"pH": [6.8, 7.1, 7.0, 6.9, 7.2, 7.0]})
    row = t_test(df, "pH", mu=7.0).iloc[0]
    assert row["method"] == "One Sample t-test"
    assert row["estimate"] == pytest.approx(df["pH"].mean())
    assert row["p"] > 0.5


def test_paired_t_test_uses_row_order():
    df = pd.DataFrame({
        "When": ["before"] * 5 + ["after"] * 5,
        "Count": [10, 12, 9, 11, 10, 13, 15, 12, 15, 12],
    })
    row = t_test(df, "Count", group="When", paired=True, levels=("after", "before")).iloc[0]
    assert row["method"] == "Paired t-test"
    assert row["estimate"] == pytest.approx(3.0)


def test_paired_t_test_requires_equal_sizes():
    df = pd.DataFrame({"g": ["a", "a", "b"], "v": [1.0, 2.0, 3.0]})
    with pytest.raises(ValueError, match="equal group sizes"):
        t_test(df, "v", group="g", paired=True)


def test_t_test_rejects_more_than_two_levels(three_groups):
    with pytest.raises(ValueError, match="exactly two levels"):
        t_test(three_groups, "Yield", group="Treatment")


def test_t_test_analysis_bundle(forest_data):
    res = t_test_analysis(
        forest_data, "Aboveground_Tree_Carbon_ton_per_ha", "Management_regime", "Natural", "Plantation"
    )
    assert set(res) == {"test_result", "table", "plot"}
    row = res["test_result"].iloc[0]
    assert row["group1"] == "Natural" and row["group2"] == "Plantation"
    assert row["estimate"] > 0
    assert res["table"].caption.startswith("T-test results for")
    assert isinstance(res["plot"], go.Figure)
    assert "p-value" in res["plot"].layout.title.text


def test_cohens_d_sign(two_groups):
    assert cohens_d(two_groups, "Biomass", "Site") < -1


def test_t_test_power_solves_for_missing_quantity():
    n = t_test_power(effect_size=0.5, power=0.8)
    assert n == pytest.approx(63.77, abs=0.1)
    power = t_test_power(effect_size=0.5, n=64)
    assert 0.79 < power < 0.82
    with pytest.raises(ValueError, match="Exactly one"):
        t_test_power(effect_size=0.5)


def test_mann_whitney(two_groups):
    row = mann_whitney(two_groups, "Biomass", "Site").iloc[0]
    assert row["n1"] == 15 and row["n2"] == 15
    assert row["p_value"] < 0.01


def test_wilcoxon_one_sample_and_paired():
    df = pd.DataFrame({"d": [1.2, 0.8, 1.5, 2.0, 0.9, 1.1, 1.7, 1.3]})
    assert wilcoxon_signed_rank(df, "d").iloc[0]["p_value"] < 0.05

    paired = pd.DataFrame({
        "g": ["x"] * 4 + ["y"] * 4,
        "v": [1.0, 2.0, 3.0, 4.0, 1.0, 2.0, 3.0, 4.0],
    })
    with pytest.raises(ValueError, match="All differences are zero"):
        wilcoxon_signed_rank(paired, "v", group="g")


def test_kruskal_wallis(three_groups):
    row = kruskal_wallis(three_groups, "Yield", "Treatment").iloc[0]
    assert row["n_groups"] == 3
    assert row["p_value"] < 0.001


def test_kruskal_wallis_single_group_degrades():
    df = pd.DataFrame({"g": ["a"] * 4, "v": [1.0, 2.0, 3.0, 4.0]})
    assert np.isnan(kruskal_wallis(df, "v", "g").iloc[0]["p_value"])


def test_normality_checks_small_groups_get_nan():
    df = pd.DataFrame({
        "g": ["a"] * 2 + ["b"] * 8,
        "v": [1.0, 2.0, 4.1, 5.2, 4.8, 5.0, 5.5, 4.9, 5.1, 4.7],
    })
    out = normality_checks(df, "v", group="g")
    assert out["group"].tolist() == ["a", "b"]
    assert np.isnan(out.iloc[0]["p_value"])
    assert out.iloc[1]["n"] == 8
    assert out.iloc[1]["p_value"] > 0


def test_normality_overall(forest_data):
    out = normality_checks(forest_data, "Tree_Density_per_ha")
    assert out.iloc[0]["group"] == "ALL"
    assert out.iloc[0]["n"] == len(forest_data)


def test_levene(three_groups):
    row = levene_homogeneity(three_groups, "Yield", "Treatment").iloc[0]
    assert row["test"] == "Levene"
    assert 0 <= row["p_value"] <= 1


def test_chi_square_independence():
    df = pd.DataFrame({
        "habitat": ["forest"] * 40 + ["grass"] * 40,
        "present": ["yes"] * 30 + ["no"] * 10 + ["yes"] * 10 + ["no"] * 30,
    })
    row = chi_square_test(df, "habitat", "present").iloc[0]
    assert row["df"] == 1
    assert row["n"] == 80
    assert row["p_value"] < 0.001
    assert row["min_expected"] == pytest.approx(20)


def test_chi_square_needs_two_levels():
    df = pd.DataFrame({"a": ["x", "x"], "b": ["u", "v"]})
    with pytest.raises(ValueError):
        chi_square_test(df, "a", "b")


def test_numeric_group_levels_sort_numerically():
    df = pd.DataFrame({
        "dose": [9] * 6 + [10] * 6,
        "growth": [1.0, 1.2, 0.9, 1.1, 1.0, 1.3, 3.0, 3.2, 2.9, 3.1, 3.3, 2.8],
    })
    row = t_test(df, "growth", group="dose").iloc[0]
    assert row["group1"] == 9 and row["group2"] == 10
    assert row["estimate"] < 0
