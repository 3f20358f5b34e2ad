"""
Table formatting helpers for reports and notebooks.
"""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Optional, Sequence

import numpy as np
import pandas as pd


@dataclass
class FormattedTable:
    """A rounded, relabelled result table with a caption."""

    frame: pd.DataFrame
    caption: str = ""

    def to_text(self) -> str:
        body = self.frame.to_string(index=False)
        return f"{self.caption}\n\n{body}" if self.caption else body

    def to_html(self) -> str:
        html = self.frame.to_html(index=False, na_rep="")
        if not self.caption:
            return html
        # caption must be the first child of <table>
        head_end = html.index(">") + 1
        return f"{html[:head_end]}\n  <caption>{escape(self.caption)}</caption>{html[head_end:]}"

    def __str__(self) -> str:
        return self.to_text()


def format_table(
    df: pd.DataFrame,
    caption: str = "",
    digits: int = 3,
    col_names: Optional[Sequence[str]] = None,
) -> FormattedTable:
    """
    Round numeric columns and optionally relabel columns.

    Parameters
    ----------
    df : pd.DataFrame
        Result table.
    caption : str
        Table caption.
    digits : int, default=3
        Decimal places for numeric columns.
    col_names : Optional[Sequence[str]]
        Display names, one per column.

    Returns
    -------
    FormattedTable

    Raises
    ------
    ValueError
        If `col_names` does not match the number of columns.
    """
    out = df.copy()
    numeric_cols = out.select_dtypes(include=[np.number]).columns
    out[numeric_cols] = out[numeric_cols].round(digits)

    if col_names is not None:
        if len(col_names) != len(out.columns):
            raise ValueError(
                f"col_names has {len(col_names)} entries but table has {len(out.columns)} columns"
            )
        out.columns = list(col_names)

    return FormattedTable(frame=out.reset_index(drop=True), caption=caption)


def p_to_stars(p: float) -> str:
    """Significance stars: *** (p <= 0.001), ** (<= 0.01), * (<= 0.05), else empty."""
    if pd.isna(p):
        return ""
    if p <= 0.001:
        return "***"
    if p <= 0.01:
        return "**"
    if p <= 0.05:
        return "*"
    return ""


def format_p(p: float, digits: int = 3) -> str:
    """Render a p-value for captions, e.g. '0.042' or '< 0.001'."""
    if pd.isna(p):
        return "NA"
    threshold = 10 ** (-digits)
    if p < threshold:
        return f"< {threshold:.{digits}f}"
    return f"{p:.{digits}f}"
