"""
Global defaults for the fieldstats toolkit.
"""

# Statistical Analysis Constants
DEFAULT_ALPHA = 0.05
DEFAULT_CONF_LEVEL = 0.95
DEFAULT_ANOVA_TYPE = 2  # Type II sum of squares
DEFAULT_MIN_NUMERIC_RATIO = 0.6
MIN_SAMPLES_FOR_SHAPIRO = 3
MIN_GROUPS_FOR_LEVENE = 2
MIN_PAIRS_FOR_CORRELATION = 3
MIN_EXPECTED_CHI_SQUARE = 5
OUTLIER_IQR_FACTOR = 1.5

CORRELATION_METHODS = ("pearson", "spearman", "kendall")
ALTERNATIVES = ("two-sided", "less", "greater")

# Post-hoc adjustment methods accepted by scikit-posthocs / statsmodels
DUNN_ADJUST_METHODS = ["bonferroni", "holm", "fdr_bh"]
DEFAULT_DUNN_ADJUST = "bonferroni"

# Ordination Constants
MIN_SAMPLES_FOR_PCA = 3
MIN_VARS_FOR_PCA = 2
PCA_SKEW_THRESHOLD = 1.0
PCA_RATIO_THRESHOLD = 3.0

# Figure Constants
FIGURE_HEIGHT = 560
FIGURE_WIDTH = 900
PCA_BIPLOT_HEIGHT = 700
QQPLOT_HEIGHT = 520
HEATMAP_HEIGHT = 600
MAP_HEIGHT = 600
POINT_SIZE = 11
PAPER_TEMPLATE = "simple_white"

# Ecological data defaults (forest carbon dataset used throughout the workshop)
DEFAULT_KEY_COLUMNS = (
    "Tree_Density_per_ha",
    "Aboveground_Tree_Carbon_ton_per_ha",
    "Aboveground_Tree_Carbon_ton_per_ha_per_year",
)

# Column Sanitization
COL_REPLACE_MAP = {
    " ": "_",
    "-": "_",
    "(": "",
    ")": "",
    ":": "_",
    "/": "_",
    ".": "_",
    "*": "",
}

SUPPORTED_EXCEL_SUFFIXES = (".xlsx", ".xls")
