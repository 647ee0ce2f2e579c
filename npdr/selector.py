"""
Nearest-neighbor Projected-Distance Regression (NPDR) feature selection.

NPDR scores every attribute by how well differences between neighboring
samples on that attribute explain the neighbors' outcome differences. The
pipeline runs, per fit:

1. Distance matrix over samples (configurable metric).
2. Neighbor relation (multisurf, surf or fixed-k neighborhoods).
3. Optional reduction to unique unordered pairs.
4. Projected differences of every attribute and of the outcome over the
   pairs.
5. One regression per attribute (NPDRSelector) or one elastic-net fit over
   all attributes (PenalizedNPDRSelector).
6. Multiple-testing correction and selection.

Example:
    >>> from npdr import NPDRSelector, NPDRConfig
    >>>
    >>> selector = NPDRSelector(NPDRConfig(nbd_method="multisurf"))
    >>> selector.fit(attributes, outcome)
    >>> selected = selector.get_significant_features(pvalue_threshold=0.05)
    >>> print(selector.summary())
    >>>
    >>> # Penalized variant
    >>> penalized = PenalizedNPDRSelector(penalty_alpha=1.0)
    >>> penalized.fit(attributes, outcome)
    >>> print(penalized.get_selected_features())
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

import numpy as np
import pandas as pd

from .config import NPDRConfig
from .data.attributes import validate_attributes, validate_covariates, validate_outcome
from .exceptions import InputError
from .neighbors.distance import compute_distances
from .neighbors.neighborhood import NeighborRelation, build_neighbors
from .neighbors.pairs import dedupe
from .stats.diff import (
    AttributeType,
    difference_matrix,
    outcome_differences,
    resolve_attr_types,
)
from .stats.multitest import adjust_pvalues
from .stats.penalized import fit_penalized
from .stats.regression import score_attributes
from .utils.helpers import rank_statistics, selection_set

# Configure module logger
logger = logging.getLogger(__name__)

STATISTICS_COLUMNS = [
    'beta_raw', 'beta_z', 'pval', 'pval_adj', 'beta_0', 'n_pairs', 'status', 'reason'
]


@dataclass
class ProjectedDifferences:
    """Everything the regression step needs, built once per fit."""

    attr_diffs: pd.DataFrame
    outcome_diff: Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]
    covariate_diffs: Optional[pd.DataFrame]
    relation: NeighborRelation
    outcome_type: str
    attr_types: Dict[str, AttributeType]


def _build_config(config: Optional[NPDRConfig], options: Dict[str, Any]) -> NPDRConfig:
    if config is None:
        return NPDRConfig(**options)
    if options:
        return NPDRConfig.from_dict({**config.to_dict(), **options})
    return config


def _validate_inputs(data, outcome, config: NPDRConfig, covariates=None):
    """Fail fast on malformed inputs, before any distance is computed."""
    data = validate_attributes(data)
    values, outcome_type = validate_outcome(outcome, data, config.outcome_type)
    attr_types = resolve_attr_types(data, config.attr_types)
    if covariates is not None:
        covariates = validate_covariates(covariates, data)
    if config.separate_hitmiss and outcome_type != "categorical":
        raise InputError("separate_hitmiss needs a categorical outcome")
    return data, values, outcome_type, attr_types, covariates


def _project(
    data: pd.DataFrame,
    values: np.ndarray,
    outcome_type: str,
    attr_types: Dict[str, AttributeType],
    covariates: Optional[pd.DataFrame],
    config: NPDRConfig,
    distance_matrix: Optional[np.ndarray] = None
) -> ProjectedDifferences:
    """Distances, neighbors, pairs and projected differences."""
    n_samples = data.shape[0]

    if distance_matrix is None:
        distances = compute_distances(data, config.metric, attr_types,
                                      exclude=config.exclude_from_distance)
    else:
        distances = np.asarray(distance_matrix, dtype=float)
        if distances.shape != (n_samples, n_samples):
            raise InputError(
                f"Precomputed distance matrix has shape {distances.shape}, "
                f"expected ({n_samples}, {n_samples})"
            )
        logger.info("Using precomputed distance matrix")

    relation = build_neighbors(
        distances,
        nbd_method=config.nbd_method,
        sd_frac=config.sd_frac,
        k=config.k,
        labels=values if config.separate_hitmiss else None,
        separate_hitmiss=config.separate_hitmiss,
    )
    if config.neighbor_sampling == "unique":
        relation = dedupe(relation)
    if relation.n_pairs == 0:
        logger.warning("No neighbor pairs were found; every attribute will be degenerate")

    attr_diffs = difference_matrix(data, relation.pairs, attr_types)
    outcome_diff = outcome_differences(values, relation.pairs, outcome_type)
    covariate_diffs = None
    if covariates is not None:
        covariate_diffs = difference_matrix(
            covariates, relation.pairs, resolve_attr_types(covariates)
        )

    return ProjectedDifferences(
        attr_diffs=attr_diffs,
        outcome_diff=outcome_diff,
        covariate_diffs=covariate_diffs,
        relation=relation,
        outcome_type=outcome_type,
        attr_types=attr_types,
    )


def _run_summary(projected: ProjectedDifferences, config: NPDRConfig) -> Dict[str, Any]:
    relation = projected.relation
    return {
        'outcome_type': projected.outcome_type,
        'nbd_method': config.nbd_method,
        'neighbor_sampling': config.neighbor_sampling,
        'n_samples': relation.n_samples,
        'effective_n': relation.effective_n,
        'empty_samples': list(relation.empty_samples),
        'n_pairs': relation.n_pairs,
        'n_attributes': projected.attr_diffs.shape[1],
    }


class NPDRSelector:
    """
    Per-attribute NPDR scorer with multiple-testing correction.

    Attributes:
        config: NPDRConfig with the run options.
        results_: Dictionary with the run bookkeeping and the 'statistics'
            DataFrame after fitting.

    Example:
        >>> selector = NPDRSelector(nbd_method="fixed-k", k=10)
        >>> selector.fit(attributes, outcome)
        >>> stats_df = selector.get_statistics(sort=True)
        >>> print(stats_df.head())
    """

    def __init__(self, config: Optional[NPDRConfig] = None, **options):
        """
        Initialize NPDRSelector.

        Args:
            config: Optional NPDRConfig; defaults are used when None.
            **options: NPDRConfig fields overriding ``config``.
        """
        self.config = _build_config(config, options)
        self.results_: Dict[str, Any] = {}
        self._is_fitted = False

    def fit(
        self,
        data: Union[pd.DataFrame, np.ndarray],
        outcome,
        covariates: Optional[Union[pd.DataFrame, np.ndarray]] = None,
        distance_matrix: Optional[np.ndarray] = None
    ) -> 'NPDRSelector':
        """
        Score every attribute.

        Args:
            data: Attribute matrix (samples x attributes).
            outcome: Outcome per sample; a (time, event) pair or two-column
                frame for survival outcomes.
            covariates: Optional covariates adjusted for in every
                regression.
            distance_matrix: Optional precomputed (n x n) distances, e.g.
                reused across neighborhood settings.

        Returns:
            Self for method chaining.
        """
        data, values, outcome_type, attr_types, covariates = \
            _validate_inputs(data, outcome, self.config, covariates)
        family = self.config.resolve_family(outcome_type)

        projected = _project(data, values, outcome_type, attr_types, covariates,
                             self.config, distance_matrix)

        stats_df = score_attributes(
            projected.attr_diffs,
            projected.outcome_diff,
            family=family,
            covariate_diffs=projected.covariate_diffs,
            n_jobs=self.config.n_jobs,
        )
        stats_df['pval_adj'] = adjust_pvalues(stats_df['pval'].to_numpy(),
                                              self.config.padj_method)
        stats_df = stats_df[STATISTICS_COLUMNS]

        self.results_ = _run_summary(projected, self.config)
        self.results_.update(family=family, statistics=stats_df)
        self._is_fitted = True

        logger.info("NPDR complete: %d attributes scored (%d degenerate), "
                    "effective N=%d, %d pairs",
                    int((stats_df['status'] == 'computed').sum()),
                    int((stats_df['status'] == 'degenerate').sum()),
                    self.results_['effective_n'], self.results_['n_pairs'])

        return self

    def _check_fitted(self):
        if not self._is_fitted:
            raise ValueError("Selector not fitted. Call fit() first.")

    def get_statistics(self, sort: bool = False) -> pd.DataFrame:
        """
        Per-attribute results.

        Args:
            sort: Order by adjusted p-value (degenerate attributes last)
                instead of input order.

        Returns:
            Copy of the statistics DataFrame.
        """
        self._check_fitted()
        stats_df = self.results_['statistics']
        return rank_statistics(stats_df) if sort else stats_df.copy()

    def get_significant_features(
        self,
        pvalue_threshold: float = 0.05,
        use_adjusted_pvalue: bool = True
    ) -> List[str]:
        """
        Selection set: attributes with p-value below the threshold.

        Degenerate attributes are never selected.
        """
        self._check_fitted()
        column = 'pval_adj' if use_adjusted_pvalue else 'pval'
        selected = selection_set(self.results_['statistics'], pvalue_threshold, column)

        logger.info("Selected %d features (%s<%.3g)",
                    len(selected), column, pvalue_threshold)

        return selected

    def get_top_features(self, n_features: int = 10, rank_by: str = "pval") -> List[str]:
        """
        Top N computed attributes.

        Args:
            n_features: Number of attributes to return.
            rank_by: 'pval' (ascending) or 'beta_z' (descending).
        """
        self._check_fitted()
        stats_df = self.results_['statistics']
        stats_df = stats_df[stats_df['status'] == 'computed']

        if rank_by == "pval":
            ranked = stats_df.sort_values(['pval', 'beta_z'], ascending=[True, False])
        elif rank_by == "beta_z":
            ranked = stats_df.sort_values('beta_z', ascending=False)
        else:
            raise ValueError(f"Unknown rank_by: {rank_by}")

        return ranked.head(n_features).index.tolist()

    def get_scores(self, score: str = "beta_z") -> pd.Series:
        """Attribute name -> score, NaN where the attribute is degenerate."""
        self._check_fitted()
        if score not in ('beta_raw', 'beta_z', 'pval', 'pval_adj'):
            raise ValueError(f"Unknown score: {score}")
        return self.results_['statistics'][score].copy()

    def get_degenerate_features(self) -> List[str]:
        """Attributes that could not be scored."""
        self._check_fitted()
        stats_df = self.results_['statistics']
        return stats_df.index[stats_df['status'] == 'degenerate'].tolist()

    def summary(self) -> Dict[str, Any]:
        """Run bookkeeping: sample, pair and attribute counts."""
        self._check_fitted()
        stats_df = self.results_['statistics']
        summary = {k: v for k, v in self.results_.items() if k != 'statistics'}
        summary['n_computed'] = int((stats_df['status'] == 'computed').sum())
        summary['n_degenerate'] = int((stats_df['status'] == 'degenerate').sum())
        return summary


class PenalizedNPDRSelector:
    """
    NPDR with one elastic-net fit across all attribute differences.

    Attributes:
        config: NPDRConfig; the penalty_* options, lambda_rule and
            cv_folds control the fit.
        results_: Dictionary with the run bookkeeping, 'coefficients' and
            the chosen 'penalty' after fitting.

    Example:
        >>> selector = PenalizedNPDRSelector(penalty_alpha=1.0)
        >>> selector.fit(attributes, outcome)
        >>> print(selector.get_feature_importance().head(10))
    """

    def __init__(self, config: Optional[NPDRConfig] = None, **options):
        self.config = _build_config(config, options)
        self.results_: Dict[str, Any] = {}
        self._is_fitted = False

    def fit(
        self,
        data: Union[pd.DataFrame, np.ndarray],
        outcome,
        covariates: Optional[Union[pd.DataFrame, np.ndarray]] = None,
        distance_matrix: Optional[np.ndarray] = None
    ) -> 'PenalizedNPDRSelector':
        """
        Fit the penalized model.

        Args:
            data: Attribute matrix (samples x attributes).
            outcome: Continuous or categorical outcome per sample.
            covariates: Optional covariates fitted alongside.
            distance_matrix: Optional precomputed (n x n) distances.

        Returns:
            Self for method chaining.

        Raises:
            ConvergenceError: If the elastic-net solver does not converge.
        """
        data, values, outcome_type, attr_types, covariates = \
            _validate_inputs(data, outcome, self.config, covariates)
        family = self.config.resolve_penalty_family(outcome_type)

        projected = _project(data, values, outcome_type, attr_types, covariates,
                             self.config, distance_matrix)
        if projected.relation.n_pairs <= self.config.cv_folds:
            raise InputError(
                f"Only {projected.relation.n_pairs} neighbor pairs; the penalized "
                f"fit needs more than cv_folds={self.config.cv_folds}"
            )

        lower_bound = self.config.penalty_lower_bound
        if family == "binomial" and self.config.nonnegative:
            logger.warning("Non-negative coefficients are not available for the "
                           "binomial family; fitting unbounded coefficients")
            lower_bound = None

        coefficients, penalty = fit_penalized(
            projected.attr_diffs,
            projected.outcome_diff,
            alpha=self.config.penalty_alpha,
            lower_bound=lower_bound,
            family=family,
            lambda_rule=self.config.lambda_rule,
            cv=self.config.cv_folds,
            random_state=self.config.random_state,
            covariate_diffs=projected.covariate_diffs,
        )

        self.results_ = _run_summary(projected, self.config)
        self.results_.update(family=family, penalty=penalty, coefficients=coefficients)
        self._is_fitted = True

        return self

    def _check_fitted(self):
        if not self._is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")

    def get_coefficients(self) -> pd.Series:
        """Coefficient per attribute (standardized scale)."""
        self._check_fitted()
        return self.results_['coefficients'].copy()

    def get_selected_features(self, min_coef: float = 1e-6) -> List[str]:
        """
        Attributes whose coefficient magnitude exceeds ``min_coef``.

        A magnitude threshold is used instead of an exact-zero test, since
        weak penalties can leave tiny non-zero coefficients.
        """
        self._check_fitted()
        coefficients = self.results_['coefficients']
        selected = coefficients[np.abs(coefficients) > min_coef].index.tolist()

        logger.info("Selected %d features with |coef| > %.2g", len(selected), min_coef)

        return selected

    def get_feature_importance(self) -> pd.DataFrame:
        """Attributes ranked by absolute coefficient."""
        self._check_fitted()
        coefficients = self.results_['coefficients']
        importance_df = pd.DataFrame({
            'coefficient': coefficients,
            'abs_coefficient': np.abs(coefficients)
        })
        return importance_df.sort_values('abs_coefficient', ascending=False)

    def summary(self) -> Dict[str, Any]:
        """Run bookkeeping: sample and pair counts, penalty, selection size."""
        self._check_fitted()
        summary = {k: v for k, v in self.results_.items() if k != 'coefficients'}
        summary['n_selected'] = len(self.get_selected_features())
        return summary


def npdr(
    data: Union[pd.DataFrame, np.ndarray],
    outcome,
    covariates: Optional[Union[pd.DataFrame, np.ndarray]] = None,
    penalized: bool = False,
    **options
) -> pd.DataFrame:
    """
    Run NPDR and return the result table.

    Args:
        data: Attribute matrix (samples x attributes).
        outcome: Outcome per sample.
        covariates: Optional covariates.
        penalized: Fit the elastic-net variant instead of per-attribute
            regressions.
        **options: NPDRConfig fields.

    Returns:
        Per-attribute statistics sorted by adjusted p-value, or for
        ``penalized=True`` coefficients sorted by magnitude.

    Example:
        >>> results = npdr(attributes, outcome, nbd_method="multisurf",
        ...                padj_method="fdr")
        >>> results[results['pval_adj'] < 0.05]
    """
    if penalized:
        selector = PenalizedNPDRSelector(**options).fit(data, outcome, covariates)
        return selector.get_feature_importance()
    selector = NPDRSelector(**options).fit(data, outcome, covariates)
    return selector.get_statistics(sort=True)
