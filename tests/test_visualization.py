import pandas as pd
import plotly.graph_objects as go
import pytest

from fieldstats.ordination import pca
from fieldstats.visualization import (
    bar_chart,
    box_plot,
    correlation_heatmap,
    histogram_with_density,
    network_diagram,
    ordination_plot,
    qqplot_figure,
    scatter_plot_with_regression,
    site_map,
    time_series_plot,
)

DENSITY = "Tree_Density_per_ha"
CARBON = "Aboveground_Tree_Carbon_ton_per_ha"


def test_scatter_with_regression_band(forest_data):
    fig = scatter_plot_with_regression(forest_data, DENSITY, CARBON)
    assert isinstance(fig, go.Figure)
    assert [t.name for t in fig.data] == ["Observations", "95% CI", "OLS fit"]
    assert fig.layout.title.text == f"Relationship between {DENSITY} and {CARBON}"
    assert fig.layout.xaxis.title.text == DENSITY


def test_scatter_custom_labels_and_no_line_for_two_points():
    df = pd.DataFrame({"x": [1.0, 2.0], "y": [3.0, 4.0]})
    fig = scatter_plot_with_regression(df, "x", "y", title="T", x_lab="X", y_lab="Y")
    assert len(fig.data) == 1
    assert fig.layout.title.text == "T"
    assert fig.layout.yaxis.title.text == "Y"


def test_box_plot_one_box_per_group(forest_data):
    fig = box_plot(forest_data, "Management_regime", CARBON)
    assert len(fig.data) == 3
    assert fig.layout.showlegend is False
    assert fig.layout.title.text == f"{CARBON} by Management_regime"


def test_box_plot_letters_and_means(three_groups):
    letters = {"high": "a", "low": "b", "mid": "b"}
    fig = box_plot(three_groups, "Treatment", "Yield", letters=letters, show_means=True)
    text_trace = fig.data[-1]
    assert text_trace.mode == "text"
    assert list(text_trace.x) == ["high", "low", "mid"]
    assert list(text_trace.text) == ["a", "b", "b"]
    assert fig.data[-2].name == "Mean"


@pytest.mark.parametrize("error", ["sd", "se", "ci"])
def test_bar_chart_error_types(three_groups, error):
    fig = bar_chart(three_groups, "Treatment", "Yield", error=error)
    assert len(fig.data) == 1
    assert error in fig.layout.title.text


def test_bar_chart_rejects_unknown_error(three_groups):
    with pytest.raises(ValueError, match="error must be"):
        bar_chart(three_groups, "Treatment", "Yield", error="iqr")


def test_histogram_with_density(forest_data):
    fig = histogram_with_density(forest_data, CARBON, bins=20)
    assert len(fig.data) == 2
    assert fig.data[0].nbinsx == 20
    assert fig.layout.title.text == f"Distribution of {CARBON}"
    assert fig.layout.yaxis.title.text == "Density"


def test_qqplot_by_group_and_insufficient_data(forest_data):
    fig = qqplot_figure(forest_data, CARBON, group="Management_regime")
    assert len(fig.data) == 4
    tiny = pd.DataFrame({"v": [1.0, 2.0]})
    assert qqplot_figure(tiny, "v") is None


def test_correlation_heatmap_text_layout(forest_data):
    cols = [DENSITY, CARBON, "Stand_age_years"]
    fig = correlation_heatmap(forest_data, columns=cols)
    text = fig.data[0].text
    assert [text[i][i] for i in range(3)] == cols
    assert text[1][0] != ""
    assert text[0][1] in ("", "*", "**", "***")


def test_time_series_with_trend(series_data):
    fig = time_series_plot(series_data, "Year", "Temperature_anomaly", trend=True)
    assert len(fig.data) == 2
    assert "increasing" in fig.data[1].name


def test_ordination_biplot(forest_data):
    result = pca(forest_data, [DENSITY, CARBON, "Stand_age_years"])
    fig = ordination_plot(result, color=forest_data["Management_regime"])
    assert fig.layout.title.text == "PCA - Biplot"
    assert len(fig.layout.annotations) == 3
    assert fig.layout.xaxis.title.text.startswith("Dim1 (")


def test_site_map_groups(forest_data):
    fig = site_map(forest_data, "Latitude", "Longitude", color="Management_regime", hover="Plot_ID")
    assert len(fig.data) == 3
    assert all(isinstance(t, go.Scattergeo) for t in fig.data)


def test_network_diagram():
    edges = pd.DataFrame({
        "plant": ["oak", "oak", "pine"],
        "insect": ["beetle", "moth", "beetle"],
        "visits": [5, 1, 2],
    })
    fig = network_diagram(edges, "plant", "insect", weight="visits")
    assert len(fig.data) == 4
    nodes = fig.data[-1]
    assert list(nodes.text) == ["oak", "pine", "beetle", "moth"]
    with pytest.raises(ValueError, match="empty"):
        network_diagram(edges.iloc[0:0], "plant", "insect")


def test_trend_line_uses_observed_rows_on_datetime_axis():
    df = pd.DataFrame({
        "date": pd.to_datetime(["2020-01-01", "2020-01-11", "2020-01-21", "2020-01-31", "2020-02-10"]),
        "v": [float("nan"), 1.0, 2.0, 3.0, 4.0],
    })
    fig = time_series_plot(df, "date", "v", trend=True)
    line = fig.data[1]
    assert len(line.x) == 4
    assert line.y[0] == pytest.approx(1.0)
    assert line.y[-1] == pytest.approx(4.0)


def test_trend_line_skipped_when_too_few_values(caplog):
    df = pd.DataFrame({"year": [2000, 2001, 2002, 2003], "v": [1.0, float("nan"), float("nan"), 3.0]})
    with caplog.at_level("WARNING", logger="fieldstats"):
        fig = time_series_plot(df, "year", "v", trend=True)
    assert len(fig.data) == 1
    assert "Too few observations for a trend line" in caplog.text
