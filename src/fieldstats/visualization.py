"""
Plotly figure builders for statistical plots and field-data maps.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd
import plotly.graph_objects as go
import statsmodels.api as sm
from scipy import stats

from .constants import (
    FIGURE_HEIGHT,
    FIGURE_WIDTH,
    HEATMAP_HEIGHT,
    MAP_HEIGHT,
    PAPER_TEMPLATE,
    PCA_BIPLOT_HEIGHT,
    POINT_SIZE,
    QQPLOT_HEIGHT,
)
from .correlation import correlation_matrix, correlation_pvalues
from .data_loader import require_columns
from .ordination import OrdinationResult
from .reporting import p_to_stars
from .trends import mann_kendall, time_as_number

logger = logging.getLogger(__name__)


def apply_paper_layout(
    fig: go.Figure,
    title: str,
    x_title: str,
    y_title: str,
    height: int = FIGURE_HEIGHT,
    width: int = FIGURE_WIDTH,
) -> go.Figure:
    """
    Apply consistent publication-ready styling to a Plotly figure.

    Parameters
    ----------
    fig : go.Figure
        Input Plotly figure.
    title : str
        Plot title. A "<br><sup>...</sup>" suffix renders as a subtitle.
    x_title, y_title : str
        Axis titles.
    height, width : int
        Figure size in pixels.

    Returns
    -------
    go.Figure
        Styled figure.
    """
    fig.update_layout(
        template=PAPER_TEMPLATE,
        title=dict(text=title, x=0.5, xanchor="center", font=dict(size=18)),
        font=dict(size=14),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0.0),
        margin=dict(l=70, r=30, t=85, b=70),
        height=height,
        width=width,
    )
    axis_style = dict(showline=True, linewidth=1, linecolor="black", mirror=True, ticks="outside")
    fig.update_xaxes(title=x_title, **axis_style)
    fig.update_yaxes(title=y_title, **axis_style)
    return fig


def _numeric_pairs(df: pd.DataFrame, x: str, y: str) -> pd.DataFrame:
    require_columns(df, [x, y])
    return df[[x, y]].apply(pd.to_numeric, errors="coerce").dropna().sort_values(x)


def scatter_plot_with_regression(
    df: pd.DataFrame,
    x_var: str,
    y_var: str,
    title: Optional[str] = None,
    x_lab: Optional[str] = None,
    y_lab: Optional[str] = None,
    point_size: float = 3,
    line_color: str = "blue",
    conf_level: float = 0.95,
) -> go.Figure:
    """Scatter plot with an OLS line and its confidence band."""
    data = _numeric_pairs(df, x_var, y_var)
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=data[x_var], y=data[y_var], mode="markers", name="Observations",
        marker=dict(size=point_size * 3, opacity=0.7, line=dict(color="black", width=0.5)),
    ))

    if len(data) >= 3 and data[x_var].nunique() > 1:
        fit = sm.OLS(data[y_var], sm.add_constant(data[x_var])).fit()
        grid = np.linspace(data[x_var].min(), data[x_var].max(), 100)
        frame = fit.get_prediction(sm.add_constant(grid)).summary_frame(alpha=1 - conf_level)
        fig.add_trace(go.Scatter(
            x=np.concatenate([grid, grid[::-1]]),
            y=np.concatenate([frame["mean_ci_upper"], frame["mean_ci_lower"][::-1]]),
            fill="toself", fillcolor="rgba(128,128,128,0.25)", line=dict(width=0),
            hoverinfo="skip", name=f"{conf_level:.0%} CI",
        ))
        fig.add_trace(go.Scatter(
            x=grid, y=frame["mean"], mode="lines", name="OLS fit",
            line=dict(color=line_color, width=2),
        ))
    else:
        logger.warning("Too few distinct points for a regression line (%s ~ %s)", y_var, x_var)

    return apply_paper_layout(
        fig,
        title=title or f"Relationship between {x_var} and {y_var}",
        x_title=x_lab or x_var,
        y_title=y_lab or y_var,
    )


def _groups(df: pd.DataFrame, x_var: str, y_var: str):
    require_columns(df, [x_var, y_var])
    data = df[[x_var, y_var]].copy()
    data[y_var] = pd.to_numeric(data[y_var], errors="coerce")
    data = data.dropna()
    for g, sub in data.groupby(x_var, observed=True, sort=True):
        yield str(g), sub[y_var]


def _letter_trace(positions: dict[str, float], letters: dict[str, str]) -> go.Scatter:
    keys = [g for g in positions if letters.get(g)]
    return go.Scatter(
        x=keys,
        y=[positions[g] for g in keys],
        mode="text",
        text=[letters[g] for g in keys],
        textposition="top center",
        textfont=dict(size=15, color="black"),
        showlegend=False,
        hoverinfo="skip",
        cliponaxis=False,
    )


def box_plot(
    df: pd.DataFrame,
    x_var: str,
    y_var: str,
    title: Optional[str] = None,
    x_lab: Optional[str] = None,
    y_lab: Optional[str] = None,
    letters: Optional[dict[str, str]] = None,
    show_means: bool = False,
) -> go.Figure:
    """
    One box per group, no legend.

    `letters` (group -> compact letter display) are drawn above each box.
    `show_means` adds a black diamond at each group mean.
    """
    fig = go.Figure()
    tops, means = {}, {}
    for g, values in _groups(df, x_var, y_var):
        fig.add_trace(go.Box(y=values, x=[g] * len(values), name=g, boxpoints="outliers", opacity=0.8))
        tops[g] = float(values.max())
        means[g] = float(values.mean())

    if show_means and means:
        fig.add_trace(go.Scatter(
            x=list(means), y=list(means.values()), mode="markers", name="Mean",
            marker=dict(symbol="diamond", size=12, color="black"),
        ))
    if letters:
        fig.add_trace(_letter_trace(tops, letters))

    fig = apply_paper_layout(
        fig,
        title=title or f"{y_var} by {x_var}",
        x_title=x_lab or x_var,
        y_title=y_lab or y_var,
    )
    fig.update_layout(showlegend=False)
    return fig


def t_test_plot(df: pd.DataFrame, var: str, group: str, p_value: float) -> go.Figure:
    """Box plot with group means, subtitled with the t-test p-value."""
    title = f"T-test: {var} by {group}<br><sup>p-value = {p_value:.3g}</sup>"
    return box_plot(df, group, var, title=title, show_means=True)


def bar_chart(
    df: pd.DataFrame,
    x_var: str,
    y_var: str,
    error: str = "se",
    letters: Optional[dict[str, str]] = None,
    title: Optional[str] = None,
) -> go.Figure:
    """
    Group means with error bars.

    `error` is "sd", "se" or "ci" (95% t-interval half-width).
    """
    if error not in ("sd", "se", "ci"):
        raise ValueError(f"error must be 'sd', 'se' or 'ci', got '{error}'")

    rows = []
    for g, values in _groups(df, x_var, y_var):
        n = len(values)
        sd = values.std(ddof=1) if n > 1 else 0.0
        se = sd / np.sqrt(n) if n > 1 else 0.0
        ci = se * stats.t.ppf(0.975, n - 1) if n > 1 else 0.0
        rows.append({"group": g, "mean": values.mean(), "sd": sd, "se": se, "ci": ci})
    summary = pd.DataFrame(rows, columns=["group", "mean", "sd", "se", "ci"])

    fig = go.Figure(go.Bar(
        x=summary["group"],
        y=summary["mean"],
        error_y=dict(type="data", array=summary[error], thickness=1.4, width=4),
        marker_line=dict(width=0.8, color="black"),
        showlegend=False,
        name="",
    ))
    if letters and not summary.empty:
        top = summary["mean"] + summary[error]
        offset = max(float(top.max() - min(0.0, summary["mean"].min())) * 0.05, 1e-9)
        fig.add_trace(_letter_trace(dict(zip(summary["group"], top + offset)), letters))

    return apply_paper_layout(
        fig,
        title=title or f"Mean {y_var} by {x_var} (± {error})",
        x_title=x_var,
        y_title=y_var,
    )


def histogram_with_density(
    df: pd.DataFrame,
    var: str,
    bins: int = 30,
    title: Optional[str] = None,
    x_lab: Optional[str] = None,
    fill_color: str = "skyblue",
    line_color: str = "navy",
) -> go.Figure:
    """Density-scaled histogram overlaid with a Gaussian kernel density estimate."""
    require_columns(df, [var])
    values = pd.to_numeric(df[var], errors="coerce").dropna().to_numpy(dtype=float)

    fig = go.Figure(go.Histogram(
        x=values, nbinsx=bins, histnorm="probability density", name="Histogram",
        marker=dict(color=fill_color, line=dict(color="white", width=1)), opacity=0.7,
    ))
    if len(values) > 1 and np.ptp(values) > 0:
        grid = np.linspace(values.min(), values.max(), 200)
        fig.add_trace(go.Scatter(
            x=grid, y=stats.gaussian_kde(values)(grid), mode="lines", name="Density",
            line=dict(color=line_color, width=2),
        ))

    return apply_paper_layout(
        fig,
        title=title or f"Distribution of {var}",
        x_title=x_lab or var,
        y_title="Density",
    )


def qqplot_figure(
    df: pd.DataFrame,
    response: str,
    group: Optional[str] = None
) -> Optional[go.Figure]:
    """
    Normal Q-Q plot of standardized sample quantiles.

    Returns None when no group has at least three non-constant values.
    """
    require_columns(df, [response] + ([group] if group else []))

    def _qq(values) -> Optional[tuple[np.ndarray, np.ndarray]]:
        vals = pd.to_numeric(values, errors="coerce").dropna().to_numpy(dtype=float)
        if len(vals) < 3:
            return None
        sd = np.std(vals, ddof=1)
        if sd == 0:
            return None
        osm, osr = stats.probplot(vals, dist="norm", fit=False)
        return np.asarray(osm), (np.asarray(osr) - vals.mean()) / sd

    parts = [("ALL", df[response])] if group is None else [
        (str(g), sub[response]) for g, sub in df.groupby(group, observed=True)
    ]

    fig = go.Figure()
    x_ranges = []
    for name, values in parts:
        qq = _qq(values)
        if qq is None:
            continue
        osm, osr = qq
        x_ranges.append((osm.min(), osm.max()))
        fig.add_trace(go.Scatter(x=osm, y=osr, mode="markers", name=name))
    if not x_ranges:
        return None

    line_x = np.linspace(min(r[0] for r in x_ranges), max(r[1] for r in x_ranges), 200)
    fig.add_trace(go.Scatter(
        x=line_x, y=line_x, mode="lines", name="y = x",
        line=dict(color="black", dash="dash"),
    ))
    fig = apply_paper_layout(
        fig,
        title=f"{response} QQ Plot",
        x_title="Theoretical Quantiles",
        y_title="Standardized Sample Quantiles",
        height=QQPLOT_HEIGHT,
    )
    fig.update_layout(legend_title=group or "Group")
    return fig


def correlation_heatmap(
    df: pd.DataFrame,
    columns: Optional[list[str]] = None,
    method: str = "pearson",
) -> go.Figure:
    """
    Correlation heatmap: coefficients below the diagonal, significance
    stars above it, variable names on it.
    """
    corr = correlation_matrix(df, method=method, columns=columns)
    pmat = correlation_pvalues(df, columns=list(corr.columns), method=method)

    n = len(corr.index)
    text = [["" for _ in range(n)] for _ in range(n)]
    for i in range(n):
        for j in range(n):
            if i == j:
                text[i][j] = str(corr.index[i])
            elif i < j:
                text[i][j] = p_to_stars(pmat.iat[i, j])
            elif not pd.isna(corr.iat[i, j]):
                text[i][j] = f"{corr.iat[i, j]:.2f}"

    fig = go.Figure(go.Heatmap(
        z=corr.to_numpy(),
        x=list(corr.columns),
        y=list(corr.index),
        zmin=-1,
        zmax=1,
        colorscale="RdBu_r",
        text=text,
        texttemplate="%{text}",
        colorbar=dict(title=method.capitalize()),
    ))
    fig = apply_paper_layout(fig, f"{method.capitalize()} correlation", "", "", height=HEATMAP_HEIGHT)
    fig.update_yaxes(autorange="reversed")
    return fig


def time_series_plot(
    df: pd.DataFrame,
    time: str,
    value: str,
    group: Optional[str] = None,
    trend: bool = False,
    title: Optional[str] = None,
) -> go.Figure:
    """Line plot over time, one line per group, with optional Sen's slope trend lines."""
    require_columns(df, [time, value] + ([group] if group else []))
    parts = [(value, df)] if group is None else [
        (str(g), sub) for g, sub in df.groupby(group, observed=True)
    ]

    fig = go.Figure()
    for name, sub in parts:
        sub = sub.sort_values(time)
        fig.add_trace(go.Scatter(x=sub[time], y=sub[value], mode="lines+markers", name=name))
        if not trend:
            continue
        observed = sub.assign(**{value: pd.to_numeric(sub[value], errors="coerce")})
        observed = observed.dropna(subset=[time, value])
        if len(observed) < 3:
            logger.warning("Too few observations for a trend line (%s, n=%d)", name, len(observed))
            continue
        # same rows and time origin as the Sen fit
        result = mann_kendall(observed, time, value).iloc[0]
        t = time_as_number(observed[time])
        fig.add_trace(go.Scatter(
            x=observed[time],
            y=result["sen_intercept"] + result["sen_slope"] * t,
            mode="lines",
            line=dict(dash="dash"),
            name=f"{name} trend ({result['trend']})",
        ))

    return apply_paper_layout(fig, title or f"{value} over {time}", time, value)


def ordination_plot(
    result: OrdinationResult,
    color: Optional[pd.Series] = None,
    labels: Optional[pd.Series] = None,
    show_loadings: bool = True,
) -> go.Figure:
    """
    Two-axis ordination plot. For PCA results the variable loadings are
    drawn as arrows scaled to the score cloud (biplot).
    """
    if result.scores.shape[1] < 2:
        raise ValueError("Ordination plot needs at least two axes")
    scores = result.scores.iloc[:, :2].copy()
    x_axis, y_axis = scores.columns
    scores["label"] = (
        labels.reindex(scores.index).astype(str) if labels is not None else scores.index.astype(str)
    )
    marker = dict(size=POINT_SIZE, line=dict(color="black", width=1), opacity=0.85)

    fig = go.Figure()
    if color is not None:
        scores["color"] = color.reindex(scores.index).astype(str)
        for g, sub in scores.groupby("color"):
            fig.add_trace(go.Scatter(
                x=sub[x_axis], y=sub[y_axis], mode="markers+text", text=sub["label"],
                textposition="top center", marker=marker, name=str(g),
            ))
    else:
        fig.add_trace(go.Scatter(
            x=scores[x_axis], y=scores[y_axis], mode="markers+text", text=scores["label"],
            textposition="top center", marker=dict(marker, color="white"), name="Samples",
        ))

    if show_loadings and result.loadings is not None:
        loadings = result.loadings.iloc[:, :2].to_numpy()
        score_lim = float(np.abs(scores[[x_axis, y_axis]].to_numpy()).max())
        vec_lim = float(np.abs(loadings).max())
        vectors = loadings * (score_lim * 0.85 / vec_lim if vec_lim > 0 else 1.0)
        for name, (vx, vy) in zip(result.loadings.index, vectors):
            fig.add_annotation(
                x=float(vx), y=float(vy), ax=0, ay=0,
                xref="x", yref="y", axref="x", ayref="y",
                text="", showarrow=True, arrowhead=3, arrowsize=1.2, arrowwidth=2,
                arrowcolor="#2F6FA6",
            )
            fig.add_trace(go.Scatter(
                x=[vx], y=[vy], mode="text", text=[str(name)], textposition="top center",
                textfont=dict(color="#C75000", size=14), showlegend=False, hoverinfo="skip",
            ))

    fig.add_hline(y=0, line_dash="dash", line_color="black")
    fig.add_vline(x=0, line_dash="dash", line_color="black")

    explained = result.explained["explained_pct"].to_numpy()
    kind = "PCA - Biplot" if result.method == "pca" else "PCoA"
    return apply_paper_layout(
        fig,
        title=kind,
        x_title=f"{x_axis} ({explained[0]:.1f}%)",
        y_title=f"{y_axis} ({explained[1]:.1f}%)",
        height=PCA_BIPLOT_HEIGHT,
        width=860,
    )


def site_map(
    df: pd.DataFrame,
    lat: str,
    lon: str,
    color: Optional[str] = None,
    hover: Optional[str] = None,
    title: str = "Sampling sites",
) -> go.Figure:
    """Interactive map of sampling locations, zoomed to the data extent."""
    require_columns(df, [lat, lon] + [c for c in (color, hover) if c])
    data = df.dropna(subset=[lat, lon])
    parts = [("Sites", data)] if color is None else [
        (str(g), sub) for g, sub in data.groupby(color, observed=True)
    ]

    fig = go.Figure()
    for name, sub in parts:
        fig.add_trace(go.Scattergeo(
            lat=sub[lat],
            lon=sub[lon],
            text=sub[hover].astype(str) if hover else None,
            mode="markers",
            marker=dict(size=9, line=dict(color="black", width=0.5)),
            name=name,
        ))
    fig.update_geos(
        fitbounds="locations",
        showcountries=True,
        showland=True,
        landcolor="#F2F2EE",
        showrivers=True,
        showlakes=True,
    )
    fig.update_layout(
        template=PAPER_TEMPLATE,
        title=dict(text=title, x=0.5, xanchor="center"),
        height=MAP_HEIGHT,
        margin=dict(l=10, r=10, t=60, b=10),
    )
    return fig


def network_diagram(
    edges: pd.DataFrame,
    source: str,
    target: str,
    weight: Optional[str] = None,
    title: str = "Interaction network",
) -> go.Figure:
    """
    Node-link diagram with nodes on a circle.

    Edge widths scale with `weight`; node sizes with degree.
    """
    require_columns(edges, [source, target] + ([weight] if weight else []))
    nodes = list(dict.fromkeys(edges[source].astype(str).tolist() + edges[target].astype(str).tolist()))
    if not nodes:
        raise ValueError("Edge list is empty")

    angles = np.linspace(0, 2 * np.pi, len(nodes), endpoint=False)
    pos = {n: (float(np.cos(a)), float(np.sin(a))) for n, a in zip(nodes, angles)}
    degree = pd.concat([edges[source], edges[target]]).astype(str).value_counts()

    weights = (
        pd.to_numeric(edges[weight], errors="coerce").fillna(0).to_numpy()
        if weight else np.ones(len(edges))
    )
    max_w = weights.max() if len(weights) and weights.max() > 0 else 1.0

    fig = go.Figure()
    for (s, t), w in zip(edges[[source, target]].astype(str).itertuples(index=False), weights):
        (x0, y0), (x1, y1) = pos[s], pos[t]
        fig.add_trace(go.Scatter(
            x=[x0, x1], y=[y0, y1], mode="lines",
            line=dict(width=0.5 + 4.5 * w / max_w, color="#888888"),
            hoverinfo="skip", showlegend=False,
        ))
    fig.add_trace(go.Scatter(
        x=[pos[n][0] for n in nodes],
        y=[pos[n][1] for n in nodes],
        mode="markers+text",
        text=nodes,
        textposition="top center",
        marker=dict(size=[10 + 4 * int(degree.get(n, 0)) for n in nodes], color="#2F6FA6",
                    line=dict(color="black", width=1)),
        showlegend=False,
        name="nodes",
    ))
    fig = apply_paper_layout(fig, title, "", "", height=700, width=760)
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False, scaleanchor="x")
    return fig
