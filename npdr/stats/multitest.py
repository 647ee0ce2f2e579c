"""
Multiple-testing correction across per-attribute p-values.
"""

import logging

import numpy as np
from statsmodels.stats.multitest import multipletests

from ..config import PADJ_METHODS
from ..exceptions import InputError

# Configure module logger
logger = logging.getLogger(__name__)

# Names understood by statsmodels
_STATSMODELS_METHODS = {
    'bonferroni': 'bonferroni',
    'fdr': 'fdr_bh',
    'fdr_bh': 'fdr_bh',
    'fdr_by': 'fdr_by',
    'holm': 'holm',
}


def adjust_pvalues(
    pvalues: np.ndarray,
    method: str = 'bonferroni'
) -> np.ndarray:
    """
    Adjust p-values for multiple testing correction.

    Order is preserved: the adjusted p-value at position i belongs to the
    same attribute as the raw p-value at position i. NaN entries mark
    attributes that could not be tested; they stay NaN and do not count
    towards the number of tests.

    Args:
        pvalues: Array of raw p-values.
        method: Correction method:
               - 'bonferroni': Bonferroni correction (default)
               - 'fdr' / 'fdr_bh': Benjamini-Hochberg FDR
               - 'fdr_by': Benjamini-Yekutieli FDR
               - 'holm': Holm-Bonferroni step-down
               - 'none': return the raw p-values

    Returns:
        Array of adjusted p-values (same shape as input).

    Example:
        >>> import numpy as np
        >>>
        >>> adjust_pvalues(np.full(100, 0.01), method='bonferroni')[:3]
        array([1., 1., 1.])
    """
    if method not in PADJ_METHODS:
        raise InputError(
            f"Unknown correction method '{method}'. Valid options are: {list(PADJ_METHODS)}"
        )

    pvalues = np.asarray(pvalues, dtype=float)
    adjusted = np.full(pvalues.shape, np.nan)
    tested = ~np.isnan(pvalues)

    if not tested.any():
        return adjusted

    if method == 'none':
        adjusted[tested] = pvalues[tested]
        return adjusted

    # Clip to valid range
    clean = np.clip(pvalues[tested], 0, 1)

    _, adjusted[tested], _, _ = multipletests(clean, method=_STATSMODELS_METHODS[method])

    logger.debug("Applied %s correction to %d p-values (%d untested)",
                 method, tested.sum(), (~tested).sum())

    return adjusted
