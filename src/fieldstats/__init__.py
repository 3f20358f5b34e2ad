"""
fieldstats - statistical analysis toolkit for natural-sciences field data.

Descriptive statistics, hypothesis tests, ANOVA with post-hoc comparisons,
regression (linear, polynomial, logistic, mixed-effects), BACI designs,
trend tests, ordination, complementarity site selection and Plotly
figures for the workshop's datasets.
"""

from .anova import anova_analysis, eta_squared, nested_anova
from .baci import BaciResult, baci_analysis
from .conservation import select_sites, simulate_species_matrix, species_richness
from .correlation import (
    correlation_matrix,
    correlation_pvalues,
    correlation_table,
    correlation_test,
)
from .data_loader import (
    coerce_numeric_columns,
    load_data_from_path,
    load_ecological_data,
    require_columns,
    sanitize_columns,
    select_parameter_columns,
    split_columns,
)
from .descriptive import (
    data_overview,
    describe,
    detect_outliers,
    frequency_table,
    missing_summary,
)
from .hypothesis_tests import (
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
from .logging_config import setup_logging
from .ordination import OrdinationResult, bray_curtis, pca, pcoa
from .posthoc import (
    bonferroni_posthoc,
    compact_letters,
    dunn_posthoc,
    lsd_posthoc,
    significance_map,
    tukey_posthoc,
)
from .regression import (
    RegressionResult,
    compare_polynomial_degrees,
    linear_regression,
    logistic_regression,
    mixed_effects_model,
    polynomial_regression,
    predict,
    regression_diagnostics,
)
from .reporting import FormattedTable, format_p, format_table, p_to_stars
from .trends import mann_kendall, rolling_summary
from .visualization import (
    apply_paper_layout,
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

__version__ = "1.0.0"

__all__ = [
    # Data loading
    "load_data_from_path",
    "load_ecological_data",
    "sanitize_columns",
    "split_columns",
    "select_parameter_columns",
    "coerce_numeric_columns",
    "require_columns",
    # Descriptive statistics
    "describe",
    "data_overview",
    "missing_summary",
    "detect_outliers",
    "frequency_table",
    # Correlation
    "correlation_test",
    "correlation_table",
    "correlation_matrix",
    "correlation_pvalues",
    # Hypothesis tests
    "t_test",
    "t_test_analysis",
    "cohens_d",
    "t_test_power",
    "mann_whitney",
    "wilcoxon_signed_rank",
    "kruskal_wallis",
    "normality_checks",
    "levene_homogeneity",
    "chi_square_test",
    # ANOVA and post-hoc tests
    "anova_analysis",
    "nested_anova",
    "eta_squared",
    "lsd_posthoc",
    "bonferroni_posthoc",
    "tukey_posthoc",
    "dunn_posthoc",
    "significance_map",
    "compact_letters",
    # Regression
    "RegressionResult",
    "linear_regression",
    "polynomial_regression",
    "compare_polynomial_degrees",
    "logistic_regression",
    "mixed_effects_model",
    "predict",
    "regression_diagnostics",
    # Designs, trends, ordination, conservation
    "BaciResult",
    "baci_analysis",
    "mann_kendall",
    "rolling_summary",
    "OrdinationResult",
    "pca",
    "pcoa",
    "bray_curtis",
    "select_sites",
    "simulate_species_matrix",
    "species_richness",
    # Reporting
    "FormattedTable",
    "format_table",
    "format_p",
    "p_to_stars",
    # Visualization
    "apply_paper_layout",
    "scatter_plot_with_regression",
    "box_plot",
    "bar_chart",
    "histogram_with_density",
    "qqplot_figure",
    "correlation_heatmap",
    "time_series_plot",
    "ordination_plot",
    "site_map",
    "network_diagram",
    # Logging
    "setup_logging",
]
