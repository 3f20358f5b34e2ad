import pytest

from fieldstats.baci import BaciResult, baci_analysis


def _cell(means, period, treatment):
    row = means[(means["Period"] == period) & (means["Treatment"] == treatment)]
    return row["mean"].iloc[0]


def test_contrast_is_difference_of_differences(baci_data):
    res = baci_analysis(baci_data, "Abundance", "Period", "Treatment")
    assert isinstance(res, BaciResult)
    m = res.cell_means
    expected = (_cell(m, "After", "Impact") - _cell(m, "Before", "Impact")) - (
        _cell(m, "After", "Control") - _cell(m, "Before", "Control")
    )
    row = res.contrast.iloc[0]
    assert row["estimate"] == pytest.approx(expected)
    assert row["conf_low"] < row["estimate"] < row["conf_high"]
    assert row["p_value"] < 0.01
    assert set(m.columns) == {"Period", "Treatment", "mean", "sd", "n"}
    assert (m["n"] == 12).all()


def test_block_does_not_change_balanced_contrast(baci_data):
    plain = baci_analysis(baci_data, "Abundance", "Period", "Treatment")
    blocked = baci_analysis(baci_data, "Abundance", "Period", "Treatment", block="Site")
    assert blocked.contrast.iloc[0]["estimate"] == pytest.approx(plain.contrast.iloc[0]["estimate"], abs=1e-6)


def test_custom_labels(baci_data):
    df = baci_data.replace({"Before": "pre", "After": "post"})
    res = baci_analysis(df, "Abundance", "Period", "Treatment", before="pre", after="post")
    assert res.contrast.iloc[0]["estimate"] < 0


def test_missing_cell_raises(baci_data):
    df = baci_data[~((baci_data["Period"] == "After") & (baci_data["Treatment"] == "Impact"))]
    with pytest.raises(ValueError, match="has no observations"):
        baci_analysis(df, "Abundance", "Period", "Treatment")


def test_missing_column_raises(baci_data):
    with pytest.raises(ValueError, match="Missing"):
        baci_analysis(baci_data, "Count", "Period", "Treatment")
