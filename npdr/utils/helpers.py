"""
Helper functions for NPDR result tables.
"""

import logging
from typing import List, Mapping, Optional, Union

import numpy as np
import pandas as pd

# Configure module logger
logger = logging.getLogger(__name__)


def rank_statistics(
    stats_df: pd.DataFrame,
    column: str = 'pval_adj'
) -> pd.DataFrame:
    """
    Order a statistics table by p-value.

    Parameters:
    -----------
    stats_df : pd.DataFrame
        Per-attribute statistics as produced by NPDRSelector
    column : str
        P-value column to sort on; ties are broken by descending beta_z

    Returns:
    --------
    pd.DataFrame
        Sorted copy with degenerate (NaN) rows last
    """
    if column not in stats_df.columns:
        column = 'pval'
    return stats_df.sort_values(
        [column, 'beta_z'], ascending=[True, False], na_position='last', kind='mergesort'
    )


def selection_set(
    stats_df: pd.DataFrame,
    threshold: float = 0.05,
    column: str = 'pval_adj'
) -> List[str]:
    """
    Attribute names with ``column`` strictly below ``threshold``.

    Parameters:
    -----------
    stats_df : pd.DataFrame
        Per-attribute statistics
    threshold : float
        P-value cutoff
    column : str
        'pval_adj' or 'pval'

    Returns:
    --------
    List[str]
        Selected attributes, most significant first. NaN rows are never
        selected.
    """
    if column not in stats_df.columns:
        raise ValueError(f"Column '{column}' not in statistics table")
    pvalues = stats_df[column]
    selected = stats_df[pvalues.notna() & (pvalues < threshold)]
    return rank_statistics(selected, column).index.tolist()


def join_scores(
    npdr_scores: pd.Series,
    other_scores: Union[pd.Series, Mapping[str, float]],
    other_name: str = 'relief'
) -> pd.DataFrame:
    """
    Join NPDR scores with another evaluator's scores by attribute name.

    Parameters:
    -----------
    npdr_scores : pd.Series
        Attribute name -> NPDR score (e.g. ``NPDRSelector.get_scores()``)
    other_scores : pd.Series or Mapping
        Attribute name -> external score (e.g. a relief-style evaluator)
    other_name : str
        Column name for the external score

    Returns:
    --------
    pd.DataFrame
        Outer join with columns 'npdr' and ``other_name``; attributes
        missing from either side get NaN
    """
    other = pd.Series(other_scores, dtype=float)
    joined = pd.concat(
        [npdr_scores.rename('npdr').astype(float), other.rename(other_name)],
        axis=1, join='outer'
    )
    joined.index.name = 'attribute'

    missing = joined.isna().any(axis=1).sum()
    if missing:
        logger.debug("%d attributes are scored by only one evaluator", missing)

    return joined


def rank_agreement(
    joined: pd.DataFrame,
    top_n: Optional[int] = None
) -> float:
    """
    Spearman correlation between the two score columns of ``join_scores``.

    Only attributes scored by both evaluators count. With ``top_n`` the
    comparison is restricted to the union of each evaluator's top_n.
    """
    both = joined.dropna()
    if top_n is not None:
        top = set(both.iloc[:, 0].nlargest(top_n).index) | \
            set(both.iloc[:, 1].nlargest(top_n).index)
        both = both.loc[[name for name in both.index if name in top]]
    if len(both) < 2:
        return np.nan
    return float(both.iloc[:, 0].corr(both.iloc[:, 1], method='spearman'))
