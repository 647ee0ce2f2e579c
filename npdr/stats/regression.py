"""
Per-attribute regression of outcome differences on attribute differences.

For every attribute one independent regression is fitted over the same pair
set: the outcome's projected differences against the attribute's projected
differences (plus optional covariate differences). The reported p-value is
one-sided and tests that the attribute slope is positive, i.e. that pairs
far apart on the attribute are also far apart on the outcome.

Families:
    - 'ols': linear model on continuous outcome differences (t statistic).
    - 'logistic': logit model on the 0/1 class-mismatch indicator
      (Wald z statistic).
    - 'proportional-hazards': Cox model with the pair time difference as
      duration and the joint event as status. The fitted log hazard ratio
      is negated so that a positive coefficient always means "larger
      attribute difference, larger outcome difference".

Every fit is a pure function of its inputs; no model object is shared or
reused between attributes, so the fan-out over attributes can run in
parallel.

Example:
    >>> from npdr.stats.regression import score_attributes
    >>>
    >>> stats_df = score_attributes(attr_diffs, outcome_diff, family="ols")
    >>> print(stats_df.sort_values("pval").head())
"""

from typing import Any, Dict, Optional, Tuple, Union
import logging
import warnings

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from scipy import stats
import statsmodels.api as sm
from statsmodels.duration.hazard_regression import PHReg
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning as SmConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from ..config import REGRESSION_FAMILIES
from ..exceptions import DegenerateAttributeError, InputError

# Configure module logger
logger = logging.getLogger(__name__)

RESULT_COLUMNS = ['beta_raw', 'beta_z', 'pval', 'beta_0', 'n_pairs', 'status', 'reason']


def _ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, +/-inf for a zero denominator."""
    with np.errstate(divide='ignore', invalid='ignore'):
        return float(np.float64(numerator) / np.float64(denominator))


def _design(x: np.ndarray, covariates: Optional[np.ndarray]) -> np.ndarray:
    if covariates is None or covariates.shape[1] == 0:
        return x.reshape(-1, 1)
    return np.column_stack([x, covariates])


def _fit_ols(y, exog, attribute):
    X = sm.add_constant(exog, has_constant='add')
    if np.linalg.matrix_rank(X) < X.shape[1]:
        raise DegenerateAttributeError(attribute, "singular design matrix")
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        model = sm.OLS(y, X).fit()
    beta = model.params[1]
    statistic = _ratio(beta, model.bse[1])
    pval = stats.t.sf(statistic, model.df_resid)
    return beta, statistic, pval, model.params[0]


def _fit_logistic(y, exog, attribute):
    if np.unique(y).size < 2:
        raise DegenerateAttributeError(
            attribute, "outcome differences take a single value")
    X = sm.add_constant(exog, has_constant='add')
    if np.linalg.matrix_rank(X) < X.shape[1]:
        raise DegenerateAttributeError(attribute, "singular design matrix")

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            model = sm.Logit(y, X).fit(disp=0)
        except (PerfectSeparationError, np.linalg.LinAlgError) as e:
            raise DegenerateAttributeError(attribute, f"logistic fit failed: {e}") from e

    for w in caught:
        if issubclass(w.category, PerfectSeparationWarning):
            raise DegenerateAttributeError(attribute, "perfect separation")
        if issubclass(w.category, SmConvergenceWarning):
            raise DegenerateAttributeError(attribute, "logistic fit did not converge")

    beta = model.params[1]
    statistic = _ratio(beta, model.bse[1])
    return beta, statistic, stats.norm.sf(statistic), model.params[0]


def _fit_hazards(outcome_diff, exog, attribute):
    durations, status = outcome_diff
    if np.sum(status) == 0:
        raise DegenerateAttributeError(attribute, "no pair with both events observed")
    if np.linalg.matrix_rank(exog) < exog.shape[1]:
        raise DegenerateAttributeError(attribute, "singular design matrix")

    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        try:
            model = PHReg(durations, exog, status=status).fit(disp=False)
        except np.linalg.LinAlgError as e:
            raise DegenerateAttributeError(attribute, f"hazards fit failed: {e}") from e

    # larger attribute difference -> lower hazard of a short time difference
    beta = -model.params[0]
    statistic = _ratio(beta, model.bse[0])
    return beta, statistic, stats.norm.sf(statistic), np.nan


def fit_univariate(
    attr_diff: np.ndarray,
    outcome_diff: Union[np.ndarray, Tuple[np.ndarray, np.ndarray]],
    family: str = 'ols',
    covariate_diffs: Optional[np.ndarray] = None,
    attribute: Optional[str] = None
) -> Dict[str, Any]:
    """
    Regress outcome differences on one attribute's differences.

    Args:
        attr_diff: Projected differences of the attribute, one per pair.
        outcome_diff: Projected outcome differences over the same pairs;
            for 'proportional-hazards' a ``(durations, status)`` tuple.
        family: 'ols', 'logistic' or 'proportional-hazards'.
        covariate_diffs: Optional (n_pairs, n_covariates) array of
            covariate differences entered as adjustment terms.
        attribute: Attribute name, used in error messages.

    Returns:
        Dict with 'beta_raw' (attribute slope), 'beta_z' (t or z
        statistic), 'pval' (one-sided, slope > 0), 'beta_0' (intercept,
        NaN for the hazards model) and 'n_pairs'.

    Raises:
        DegenerateAttributeError: If the regression cannot be computed
            for this attribute.
    """
    if family not in REGRESSION_FAMILIES:
        raise InputError(
            f"Unknown regression family '{family}'. "
            f"Valid options are: {list(REGRESSION_FAMILIES)}"
        )

    x = np.asarray(attr_diff, dtype=float)
    n_pairs = x.size
    covariates = None
    if covariate_diffs is not None:
        covariates = np.asarray(covariate_diffs, dtype=float).reshape(n_pairs, -1)

    if n_pairs == 0 or np.ptp(x) == 0:
        raise DegenerateAttributeError(attribute, "zero-variance projected differences")

    exog = _design(x, covariates)
    n_params = exog.shape[1] + (0 if family == 'proportional-hazards' else 1)
    if n_pairs <= n_params:
        raise DegenerateAttributeError(
            attribute, f"{n_pairs} pairs for {n_params} parameters")

    if family == 'ols':
        y = np.asarray(outcome_diff, dtype=float)
        beta, statistic, pval, beta_0 = _fit_ols(y, exog, attribute)
    elif family == 'logistic':
        y = np.asarray(outcome_diff, dtype=float)
        beta, statistic, pval, beta_0 = _fit_logistic(y, exog, attribute)
    else:
        beta, statistic, pval, beta_0 = _fit_hazards(outcome_diff, exog, attribute)

    if not np.isfinite(beta) or np.isnan(statistic) or np.isnan(pval):
        raise DegenerateAttributeError(attribute, "regression estimates are undefined")

    return {
        'beta_raw': float(beta),
        'beta_z': float(statistic),
        'pval': float(pval),
        'beta_0': float(beta_0),
        'n_pairs': n_pairs,
    }


def _score_one(name, attr_diff, outcome_diff, family, covariate_diffs):
    """Fit one attribute, turning a degenerate fit into an NA row."""
    try:
        row = fit_univariate(attr_diff, outcome_diff, family, covariate_diffs, name)
        row.update(status='computed', reason='')
    except DegenerateAttributeError as e:
        row = {
            'beta_raw': np.nan,
            'beta_z': np.nan,
            'pval': np.nan,
            'beta_0': np.nan,
            'n_pairs': len(attr_diff),
            'status': 'degenerate',
            'reason': e.reason,
        }
    return row


def score_attributes(
    attr_diffs: pd.DataFrame,
    outcome_diff: Union[np.ndarray, Tuple[np.ndarray, np.ndarray]],
    family: str = 'ols',
    covariate_diffs: Optional[pd.DataFrame] = None,
    n_jobs: int = 1
) -> pd.DataFrame:
    """
    Fit one regression per attribute over a shared pair set.

    Args:
        attr_diffs: Projected differences, one column per attribute and
            one row per pair.
        outcome_diff: Outcome projected differences over the same pairs.
        family: Regression family.
        covariate_diffs: Optional covariate differences over the same
            pairs, added to every regression.
        n_jobs: Parallel jobs (joblib); 1 runs sequentially.

    Returns:
        DataFrame indexed by attribute with columns beta_raw, beta_z, pval,
        beta_0, n_pairs, status ('computed' or 'degenerate') and reason.
    """
    covariates = None if covariate_diffs is None else covariate_diffs.to_numpy(dtype=float)

    logger.info("Fitting %s regressions for %d attributes over %d pairs",
                family, attr_diffs.shape[1], attr_diffs.shape[0])

    tasks = (
        (name, attr_diffs[name].to_numpy(dtype=float), outcome_diff, family, covariates)
        for name in attr_diffs.columns
    )
    if n_jobs == 1:
        rows = [_score_one(*task) for task in tasks]
    else:
        rows = Parallel(n_jobs=n_jobs)(delayed(_score_one)(*task) for task in tasks)

    stats_df = pd.DataFrame(rows, index=attr_diffs.columns, columns=RESULT_COLUMNS)
    stats_df.index.name = 'attribute'

    n_degenerate = int((stats_df['status'] == 'degenerate').sum())
    if n_degenerate:
        logger.warning("%d of %d attributes could not be scored",
                       n_degenerate, len(stats_df))

    return stats_df
