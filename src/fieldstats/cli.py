"""
Command-line interface for batch analysis of field datasets.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .anova import anova_analysis, eta_squared, nested_anova
from .constants import DEFAULT_ALPHA, DEFAULT_ANOVA_TYPE
from .correlation import correlation_matrix, correlation_test
from .data_loader import (
    coerce_numeric_columns,
    load_data_from_path,
    require_columns,
    select_parameter_columns,
)
from .descriptive import describe
from .hypothesis_tests import kruskal_wallis, levene_homogeneity, normality_checks, t_test
from .logging_config import setup_logging
from .posthoc import dunn_posthoc, lsd_posthoc, tukey_posthoc
from .regression import linear_regression
from .visualization import (
    box_plot,
    histogram_with_density,
    qqplot_figure,
    scatter_plot_with_regression,
)

logger = logging.getLogger("fieldstats.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fieldstats",
        description="fieldstats analysis pipeline - statistical reports for field data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fieldstats --input forest.csv --response Aboveground_Tree_Carbon_ton_per_ha \\
    --group Management_regime --x Tree_Density_per_ha --figures --outdir results/

  fieldstats --input trial.xlsx --response Yield --group Treatment \\
    --factors Treatment Fertilizer --replicate-col Rep --outdir results/
        """
    )

    # Required arguments
    parser.add_argument("--input", required=True, help="Path to CSV or XLSX file")
    parser.add_argument("--response", required=True, help="Numeric response variable column name")
    parser.add_argument("--group", required=True, help="Grouping column name (for group comparisons)")

    # Optional arguments
    parser.add_argument("--factors", nargs="+", default=[], help="ANOVA factors (space-separated)")
    parser.add_argument("--replicate-col", default=None, help="Blocking/replication column (e.g. Rep)")
    parser.add_argument("--parameter-start-col", default=None, help="Start parameter selection from this column")
    parser.add_argument("--nested-parent", default=None, help="Parent factor for nested ANOVA")
    parser.add_argument("--nested-child", default=None, help="Child factor for nested ANOVA")
    parser.add_argument("--x", default=None, help="Predictor for correlation and linear regression of --y")
    parser.add_argument("--y", default=None, help="Response for regression on --x (default: --response)")
    parser.add_argument("--sheet-name", default=None, help="Sheet name for XLSX files (default: first sheet)")
    parser.add_argument("--outdir", default="outputs", help="Output directory for reports (default: outputs/)")
    parser.add_argument(
        "--anova-type", type=int, choices=[1, 2, 3], default=DEFAULT_ANOVA_TYPE,
        help="ANOVA sum of squares type (default: 2)",
    )
    parser.add_argument("--alpha", type=float, default=DEFAULT_ALPHA, help="Significance level (default: 0.05)")
    parser.add_argument("--figures", action="store_true", help="Also write HTML figures")
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    parser.add_argument("--log-file", default=None, help="Optional log file path")
    return parser


def _write(table: pd.DataFrame, path: Path, index: bool = False) -> None:
    table.to_csv(path, index=index)
    logger.debug("Wrote %s", path)


def run(args: argparse.Namespace) -> Path:
    """Run the full report for parsed arguments; returns the output directory."""
    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    logger.info("Loading data from: %s", args.input)
    df = load_data_from_path(args.input, sheet_name=args.sheet_name)
    require_columns(df, [args.response, args.group])

    parameter_cols = select_parameter_columns(
        df,
        start_col=args.parameter_start_col,
        exclude_cols=[args.replicate_col] if args.replicate_col else [],
    )
    if args.response not in parameter_cols:
        raise ValueError(
            f"Response '{args.response}' not found in parameter columns. "
            f"Available: {parameter_cols[:10]}..."
        )
    df = coerce_numeric_columns(df, parameter_cols)
    logger.info("Data loaded: %d rows, %d columns, %d parameter columns",
                len(df), len(df.columns), len(parameter_cols))

    logger.info("Running descriptive statistics and assumption checks...")
    _write(describe(df, columns=parameter_cols, group=args.group), outdir / "descriptives.csv")
    _write(normality_checks(df, args.response, group=args.group, alpha=args.alpha), outdir / "normality.csv")
    _write(levene_homogeneity(df, args.response, group=args.group, alpha=args.alpha), outdir / "levene.csv")
    _write(correlation_matrix(df, columns=parameter_cols), outdir / "correlation.csv", index=True)

    if args.factors or args.replicate_col:
        logger.info("Running ANOVA...")
        table = anova_analysis(
            df,
            response=args.response,
            factors=args.factors,
            typ=args.anova_type,
            block_factor=args.replicate_col,
        )
        _write(eta_squared(table), outdir / "anova.csv")

    if args.nested_parent and args.nested_child:
        logger.info("Running nested ANOVA...")
        _write(nested_anova(
            df,
            response=args.response,
            parent_factor=args.nested_parent,
            nested_factor=args.nested_child,
            typ=args.anova_type,
            block_factor=args.replicate_col,
        ), outdir / "nested_anova.csv")

    logger.info("Running group comparisons...")
    _write(lsd_posthoc(df, args.response, args.group, alpha=args.alpha), outdir / "lsd.csv")
    _write(tukey_posthoc(df, args.response, args.group, alpha=args.alpha), outdir / "tukey.csv")
    _write(kruskal_wallis(df, args.response, args.group), outdir / "kruskal.csv")
    _write(dunn_posthoc(df, args.response, args.group, alpha=args.alpha), outdir / "dunn.csv")
    if df[args.group].dropna().nunique() == 2:
        _write(t_test(df, args.response, group=args.group), outdir / "t_test.csv")

    if args.x:
        y = args.y or args.response
        logger.info("Running correlation and regression of %s on %s...", y, args.x)
        _write(correlation_test(df, args.x, y), outdir / "correlation_test.csv")
        fit = linear_regression(df, y, [args.x])
        _write(fit.coefficients, outdir / "regression_coefficients.csv")
        _write(fit.summary, outdir / "regression_summary.csv")
        if args.figures:
            scatter_plot_with_regression(df, args.x, y).write_html(outdir / "scatter.html")

    if args.figures:
        logger.info("Writing figures...")
        box_plot(df, args.group, args.response).write_html(outdir / "box_plot.html")
        histogram_with_density(df, args.response).write_html(outdir / "histogram.html")
        qq = qqplot_figure(df, args.response, group=args.group)
        if qq is None:
            logger.warning("Not enough data for a QQ plot of %s", args.response)
        else:
            qq.write_html(outdir / "qqplot.html")

    logger.info("Analysis complete! Reports saved to: %s", outdir.resolve())
    for report in sorted(outdir.glob("*.*")):
        logger.info("  - %s", report.name)
    return outdir


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)
    try:
        run(args)
    except (ValueError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
