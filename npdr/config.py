"""
Configuration for nearest-neighbor projected-distance regression.

All run options live in one dataclass. Values are validated when the
config is created so that a bad option fails before any distance or
regression is computed.

Example:
    >>> from npdr.config import NPDRConfig
    >>>
    >>> config = NPDRConfig(nbd_method="multisurf", sd_frac=0.5)
    >>> config.resolve_family("continuous")
    'ols'

    >>> # Fixed neighborhood size with unique pairs
    >>> config = NPDRConfig(nbd_method="fixed-k", k=10,
    ...                     neighbor_sampling="unique")
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional, Union
import logging
import math
import numbers

from .exceptions import InputError

# Configure module logger
logger = logging.getLogger(__name__)


METRICS = (
    "manhattan",
    "euclidean",
    "relief-scaled-manhattan",
    "relief-scaled-euclidean",
    "allele-sharing-manhattan",
    "allele-sharing",
    "hamming",
    "mixed",
)

NBD_METHODS = ("multisurf", "surf", "fixed-k")

NEIGHBOR_SAMPLING = ("redundant", "unique")

OUTCOME_TYPES = ("continuous", "categorical", "survival")

REGRESSION_FAMILIES = ("ols", "logistic", "proportional-hazards")

PADJ_METHODS = ("bonferroni", "fdr", "fdr_bh", "fdr_by", "holm", "none")

PENALTY_FAMILIES = ("gaussian", "binomial")

LAMBDA_RULES = ("min", "1se")

# Alternative spellings accepted on input
_ALIASES = {
    "nbd_method": {"relieff": "fixed-k", "knn": "fixed-k"},
    "neighbor_sampling": {"none": "redundant"},
    "regression_family": {
        "lm": "ols",
        "gaussian": "ols",
        "binomial": "logistic",
        "glm": "logistic",
        "cox": "proportional-hazards",
    },
}

_DEFAULT_FAMILY = {
    "continuous": "ols",
    "categorical": "logistic",
    "survival": "proportional-hazards",
}

_DEFAULT_PENALTY_FAMILY = {
    "continuous": "gaussian",
    "categorical": "binomial",
}

# Outcome types each regression family can be fitted on
_FAMILY_OUTCOMES = {
    "ols": ("continuous", "categorical"),
    "logistic": ("categorical",),
    "proportional-hazards": ("survival",),
}


def _check_choice(name: str, value: Any, choices: tuple) -> None:
    if value not in choices:
        raise InputError(
            f"Invalid {name} '{value}'. Valid options are: {list(choices)}"
        )


@dataclass
class NPDRConfig:
    """
    Options for one NPDR run.

    Attributes:
        metric: Distance metric for the neighbor search.
        nbd_method: Neighborhood policy: 'multisurf' (per-sample adaptive
            radius), 'surf' (global radius) or 'fixed-k'.
        sd_frac: Density fraction, strictly positive. Adaptive radius is
            ``mean - sd_frac * std``; also used to derive k for 'fixed-k'
            when ``k`` is None.
        k: Neighbors per reference sample for 'fixed-k'.
        neighbor_sampling: 'redundant' keeps every ordered pair,
            'unique' keeps one copy of each unordered pair.
        separate_hitmiss: Build hit and miss neighborhoods separately
            (categorical outcomes only).
        outcome_type: 'continuous', 'categorical' or 'survival'. None
            infers it from the outcome.
        regression_family: 'ols', 'logistic' or 'proportional-hazards'.
            None derives it from the outcome type.
        attr_types: Projected-difference rule for all attributes (string)
            or per attribute name (dict). None infers from dtypes.
        exclude_from_distance: Attributes scored but left out of the
            distance computation.
        padj_method: Multiple-testing correction.
        penalty_alpha: Elastic-net mixing (0 = ridge, 1 = lasso).
        penalty_lower_bound: 0.0 constrains penalized coefficients to be
            non-negative; None or -inf leaves them free. Other finite
            bounds are rejected: the scikit-learn elastic-net solvers only
            support a zero lower bound (``positive=True``) or none.
        penalty_family: 'gaussian' or 'binomial'. None derives it from the
            outcome type.
        lambda_rule: 'min' or '1se' penalty choice after cross-validation.
        cv_folds: Folds for the penalized cross-validation.
        n_jobs: Parallel jobs for the per-attribute regressions.
        random_state: Seed for every randomized step.
    """

    metric: str = "manhattan"
    nbd_method: str = "multisurf"
    sd_frac: float = 0.5
    k: Optional[int] = None
    neighbor_sampling: str = "redundant"
    separate_hitmiss: bool = False
    outcome_type: Optional[str] = None
    regression_family: Optional[str] = None
    attr_types: Optional[Union[str, Dict[str, str]]] = None
    exclude_from_distance: List[str] = field(default_factory=list)
    padj_method: str = "bonferroni"
    penalty_alpha: float = 1.0
    penalty_lower_bound: Optional[float] = 0.0
    penalty_family: Optional[str] = None
    lambda_rule: str = "1se"
    cv_folds: int = 5
    n_jobs: int = 1
    random_state: Optional[int] = 42

    def __post_init__(self):
        """Normalize aliases and validate every option."""
        for name, aliases in _ALIASES.items():
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, aliases.get(value.lower(), value.lower()))

        _check_choice("metric", self.metric, METRICS)
        _check_choice("nbd_method", self.nbd_method, NBD_METHODS)
        _check_choice("neighbor_sampling", self.neighbor_sampling,
                      NEIGHBOR_SAMPLING)
        _check_choice("padj_method", self.padj_method, PADJ_METHODS)
        _check_choice("lambda_rule", self.lambda_rule, LAMBDA_RULES)

        if self.outcome_type is not None:
            _check_choice("outcome_type", self.outcome_type, OUTCOME_TYPES)
        if self.regression_family is not None:
            _check_choice("regression_family", self.regression_family,
                          REGRESSION_FAMILIES)
        if self.penalty_family is not None:
            _check_choice("penalty_family", self.penalty_family,
                          PENALTY_FAMILIES)

        if isinstance(self.sd_frac, bool) or \
                not isinstance(self.sd_frac, numbers.Real) or \
                not math.isfinite(self.sd_frac) or self.sd_frac <= 0:
            raise InputError(
                f"sd_frac must be a positive number, got {self.sd_frac!r}"
            )

        if self.k is not None:
            if isinstance(self.k, bool) or not isinstance(self.k, numbers.Integral) \
                    or self.k < 1:
                raise InputError(f"k must be a positive integer, got {self.k!r}")
            if self.nbd_method != "fixed-k":
                logger.warning("k=%d is ignored by nbd_method '%s'",
                               self.k, self.nbd_method)

        if not 0.0 <= self.penalty_alpha <= 1.0:
            raise InputError(
                f"penalty_alpha must lie in [0, 1], got {self.penalty_alpha}"
            )

        if self.penalty_lower_bound is not None and \
                self.penalty_lower_bound != 0.0 and \
                self.penalty_lower_bound != -math.inf:
            raise InputError(
                "penalty_lower_bound must be 0.0 (non-negative coefficients) "
                f"or None/-inf (unbounded), got {self.penalty_lower_bound}"
            )

        if self.cv_folds < 2:
            raise InputError(f"cv_folds must be at least 2, got {self.cv_folds}")

        if self.n_jobs == 0:
            raise InputError("n_jobs must be non-zero")

        if isinstance(self.exclude_from_distance, str):
            self.exclude_from_distance = [self.exclude_from_distance]

    @property
    def nonnegative(self) -> bool:
        """Whether penalized coefficients are constrained to be >= 0."""
        return self.penalty_lower_bound == 0.0

    def resolve_family(self, outcome_type: str) -> str:
        """
        Regression family to use for an outcome type.

        Args:
            outcome_type: One of OUTCOME_TYPES.

        Returns:
            The configured family, or the default family for the outcome.

        Raises:
            InputError: If the configured family cannot model the outcome.
        """
        _check_choice("outcome_type", outcome_type, OUTCOME_TYPES)
        family = self.regression_family or _DEFAULT_FAMILY[outcome_type]
        if outcome_type not in _FAMILY_OUTCOMES[family]:
            raise InputError(
                f"Regression family '{family}' cannot model a "
                f"{outcome_type} outcome"
            )
        return family

    def resolve_penalty_family(self, outcome_type: str) -> str:
        """Penalized-fit family for an outcome type."""
        if self.penalty_family is not None:
            family = self.penalty_family
        elif outcome_type in _DEFAULT_PENALTY_FAMILY:
            family = _DEFAULT_PENALTY_FAMILY[outcome_type]
        else:
            raise InputError(
                f"No penalized family is available for a {outcome_type} outcome"
            )
        if family == "binomial" and outcome_type != "categorical":
            raise InputError("The binomial penalized family needs a "
                             "categorical outcome")
        return family

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict copy of the configuration."""
        return asdict(self)

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> "NPDRConfig":
        """
        Build a config from a dict, ignoring keys it does not know.

        Args:
            options: Option names and values.

        Returns:
            Validated NPDRConfig.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            logger.warning("Ignoring unknown NPDR options: %s", unknown)
        return cls(**{k: v for k, v in options.items() if k in known})
