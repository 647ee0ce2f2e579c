"""
Penalized (elastic-net) regression over all attribute differences at once.

Instead of one regression per attribute, a single elastic-net model is
fitted with every attribute's projected differences as a column. Attributes
whose coefficient survives the penalty are selected. Columns are
standardized first, so coefficient magnitudes are comparable across
attributes.

The penalty strength is chosen by cross-validation, either at the CV
optimum ('min') or at the largest penalty within one standard error of it
('1se'), followed by a refit on all pairs.

Example:
    >>> from npdr.stats.penalized import penalized_score
    >>>
    >>> coefs = penalized_score(attr_diffs, outcome_diff, alpha=1.0,
    ...                         lower_bound=0.0, family="gaussian")
    >>> print(coefs[coefs.abs() > 1e-6])
"""

from typing import Optional, Tuple
import logging
import math
import warnings

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import (
    ElasticNet,
    ElasticNetCV,
    LogisticRegression,
    LogisticRegressionCV,
)
from sklearn.model_selection import KFold, StratifiedKFold
from sklearn.preprocessing import StandardScaler

from ..config import LAMBDA_RULES, PENALTY_FAMILIES
from ..exceptions import ConvergenceError, InputError

# Configure module logger
logger = logging.getLogger(__name__)

# Penalty grid used when alpha = 0 (no automatic grid for pure ridge)
RIDGE_ALPHAS = np.logspace(-4, 2, 50)


def _raise_on_convergence(caught, what: str) -> None:
    for w in caught:
        if issubclass(w.category, ConvergenceWarning):
            raise ConvergenceError(f"{what} did not converge: {w.message}")


def _one_se_index(mean_scores: np.ndarray, se_scores: np.ndarray,
                  penalties: np.ndarray, higher_is_better: bool) -> int:
    """Index of the strongest penalty within one SE of the best CV score."""
    if higher_is_better:
        best = int(np.argmax(mean_scores))
        eligible = mean_scores >= mean_scores[best] - se_scores[best]
    else:
        best = int(np.argmin(mean_scores))
        eligible = mean_scores <= mean_scores[best] + se_scores[best]
    candidates = np.flatnonzero(eligible)
    return int(candidates[np.argmax(penalties[candidates])])


def _fit_gaussian(X, y, alpha, nonnegative, lambda_rule, cv, random_state, max_iter):
    params = dict(
        l1_ratio=alpha,
        cv=KFold(n_splits=cv, shuffle=True, random_state=random_state),
        positive=nonnegative,
        max_iter=max_iter,
    )
    if alpha == 0:
        params['alphas'] = RIDGE_ALPHAS

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        model = ElasticNetCV(**params).fit(X, y)
        _raise_on_convergence(caught, "Elastic-net cross-validation")

        if lambda_rule == 'min':
            return model.coef_, float(model.alpha_)

        mse = model.mse_path_
        mean_mse = mse.mean(axis=1)
        se_mse = mse.std(axis=1, ddof=1) / math.sqrt(mse.shape[1])
        chosen = float(model.alphas_[
            _one_se_index(mean_mse, se_mse, model.alphas_, higher_is_better=False)
        ])
        refit = ElasticNet(alpha=chosen, l1_ratio=alpha, positive=nonnegative,
                           max_iter=max_iter).fit(X, y)
        _raise_on_convergence(caught, "Elastic-net refit")

    return refit.coef_, chosen


def _fit_binomial(X, y, alpha, lambda_rule, cv, random_state, max_iter):
    if np.unique(y).size < 2:
        raise InputError("Binomial penalized fit needs both hit and miss pairs")

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        model = LogisticRegressionCV(
            Cs=10,
            cv=StratifiedKFold(n_splits=cv, shuffle=True, random_state=random_state),
            penalty='elasticnet',
            solver='saga',
            l1_ratios=[alpha],
            scoring='neg_log_loss',
            max_iter=max_iter,
            random_state=random_state,
        ).fit(X, y)
        _raise_on_convergence(caught, "Penalized logistic cross-validation")

        if lambda_rule == 'min':
            return model.coef_.ravel(), float(1.0 / np.ravel(model.C_)[0])

        scores = next(iter(model.scores_.values()))
        scores = scores.reshape(scores.shape[0], len(model.Cs_))
        mean_scores = scores.mean(axis=0)
        se_scores = scores.std(axis=0, ddof=1) / math.sqrt(scores.shape[0])
        # penalty strength is 1 / C
        index = _one_se_index(mean_scores, se_scores, 1.0 / model.Cs_,
                              higher_is_better=True)
        chosen_c = float(model.Cs_[index])
        refit = LogisticRegression(
            C=chosen_c,
            penalty='elasticnet',
            solver='saga',
            l1_ratio=alpha,
            max_iter=max_iter,
            random_state=random_state,
        ).fit(X, y)
        _raise_on_convergence(caught, "Penalized logistic refit")

    return refit.coef_.ravel(), 1.0 / chosen_c


def fit_penalized(
    attr_diffs: pd.DataFrame,
    outcome_diff: np.ndarray,
    alpha: float = 1.0,
    lower_bound: Optional[float] = 0.0,
    family: str = 'gaussian',
    lambda_rule: str = '1se',
    cv: int = 5,
    random_state: Optional[int] = 42,
    covariate_diffs: Optional[pd.DataFrame] = None,
    max_iter: int = 10000
) -> Tuple[pd.Series, float]:
    """
    Fit one elastic-net model jointly over all attribute differences.

    Args:
        attr_diffs: Projected differences (pairs x attributes).
        outcome_diff: Outcome projected differences over the same pairs.
        alpha: Elastic-net mixing, 0 = ridge, 1 = lasso.
        lower_bound: 0.0 constrains coefficients to be non-negative
            (gaussian family only); None or -inf leaves them free.
        family: 'gaussian' (continuous outcome differences) or
            'binomial' (0/1 class-mismatch indicator).
        lambda_rule: 'min' or '1se'.
        cv: Number of cross-validation folds.
        random_state: Seed for fold shuffling.
        covariate_diffs: Optional covariate differences, fitted alongside
            the attributes and left out of the returned coefficients.
        max_iter: Solver iteration limit.

    Returns:
        Tuple of (coefficient per attribute on the standardized scale,
        chosen penalty strength).

    Raises:
        InputError: On invalid options.
        ConvergenceError: If the solver does not converge.
    """
    if family not in PENALTY_FAMILIES:
        raise InputError(
            f"Unknown penalty family '{family}'. Valid options are: {list(PENALTY_FAMILIES)}"
        )
    if lambda_rule not in LAMBDA_RULES:
        raise InputError(
            f"Unknown lambda_rule '{lambda_rule}'. Valid options are: {list(LAMBDA_RULES)}"
        )
    if not 0.0 <= alpha <= 1.0:
        raise InputError(f"alpha must lie in [0, 1], got {alpha}")

    nonnegative = lower_bound is not None and lower_bound == 0.0
    if lower_bound is not None and not nonnegative and lower_bound != -math.inf:
        raise InputError(f"lower_bound must be 0.0 or None/-inf, got {lower_bound}")
    if nonnegative and family == 'binomial':
        raise InputError("Non-negative coefficients are only supported for "
                         "the gaussian penalty family")

    design = attr_diffs if covariate_diffs is None else \
        pd.concat([attr_diffs, covariate_diffs.set_axis(attr_diffs.index)], axis=1)
    X = StandardScaler().fit_transform(design.to_numpy(dtype=float))
    y = np.asarray(outcome_diff, dtype=float)

    logger.info("Fitting %s elastic net (alpha=%.2f, %s) on %d pairs x %d columns",
                family, alpha, "non-negative" if nonnegative else "unbounded",
                X.shape[0], X.shape[1])

    if family == 'gaussian':
        coef, penalty = _fit_gaussian(X, y, alpha, nonnegative, lambda_rule,
                                      cv, random_state, max_iter)
    else:
        coef, penalty = _fit_binomial(X, y, alpha, lambda_rule, cv,
                                      random_state, max_iter)

    coefficients = pd.Series(coef[:attr_diffs.shape[1]], index=attr_diffs.columns,
                             name='coefficient')
    coefficients.index.name = 'attribute'

    logger.info("Penalty %.6g (%s rule): %d non-zero coefficients",
                penalty, lambda_rule, int((coefficients != 0).sum()))

    return coefficients, penalty


def penalized_score(
    attr_diffs: pd.DataFrame,
    outcome_diff: np.ndarray,
    alpha: float = 1.0,
    lower_bound: Optional[float] = 0.0,
    family: str = 'gaussian',
    **kwargs
) -> pd.Series:
    """One coefficient per attribute; see :func:`fit_penalized`."""
    coefficients, _ = fit_penalized(attr_diffs, outcome_diff, alpha, lower_bound,
                                    family, **kwargs)
    return coefficients
