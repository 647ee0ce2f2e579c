"""Tests for NPDRConfig."""
import math
import numpy as np
import pytest
from npdr.config import NPDRConfig, METRICS, NBD_METHODS
from npdr.exceptions import InputError


class TestNPDRConfig:
    """Tests for option defaults and validation."""

    def test_defaults(self):
        config = NPDRConfig()
        assert config.metric == "manhattan"
        assert config.nbd_method == "multisurf"
        assert config.sd_frac == 0.5
        assert config.neighbor_sampling == "redundant"
        assert config.padj_method == "bonferroni"
        assert config.nonnegative

    def test_aliases(self):
        config = NPDRConfig(nbd_method="relieff", neighbor_sampling="none",
                            regression_family="cox")
        assert config.nbd_method == "fixed-k"
        assert config.neighbor_sampling == "redundant"
        assert config.regression_family == "proportional-hazards"

    @pytest.mark.parametrize("options", [
        {"metric": "cosine"},
        {"nbd_method": "radius"},
        {"sd_frac": -0.5},
        {"sd_frac": 0.0},
        {"sd_frac": True},
        {"sd_frac": math.nan},
        {"k": 0},
        {"k": 2.5},
        {"neighbor_sampling": "random"},
        {"padj_method": "sidak-ish"},
        {"penalty_alpha": 2.0},
        {"penalty_lower_bound": 1.0},
        {"cv_folds": 1},
        {"outcome_type": "ordinal"},
    ])
    def test_invalid_options(self, options):
        with pytest.raises(InputError):
            NPDRConfig(**options)

    def test_numpy_integer_k(self):
        """NumPy integer scalars are accepted for k."""
        config = NPDRConfig(nbd_method="fixed-k", k=np.int64(10))
        assert config.k == 10

    def test_numpy_float_fraction(self):
        assert NPDRConfig(sd_frac=np.float32(0.5)).sd_frac == pytest.approx(0.5)

    def test_unbounded_penalty(self):
        assert not NPDRConfig(penalty_lower_bound=None).nonnegative
        assert not NPDRConfig(penalty_lower_bound=-math.inf).nonnegative

    def test_vocabularies(self):
        assert "manhattan" in METRICS
        assert set(NBD_METHODS) == {"multisurf", "surf", "fixed-k"}


class TestFamilies:
    """Tests for regression family resolution."""

    @pytest.mark.parametrize("outcome_type, family", [
        ("continuous", "ols"),
        ("categorical", "logistic"),
        ("survival", "proportional-hazards"),
    ])
    def test_default_family(self, outcome_type, family):
        assert NPDRConfig().resolve_family(outcome_type) == family

    def test_incompatible_family(self):
        config = NPDRConfig(regression_family="logistic")
        with pytest.raises(InputError):
            config.resolve_family("continuous")

    def test_ols_on_categorical(self):
        assert NPDRConfig(regression_family="ols").resolve_family("categorical") == "ols"

    def test_penalty_family(self):
        config = NPDRConfig()
        assert config.resolve_penalty_family("continuous") == "gaussian"
        assert config.resolve_penalty_family("categorical") == "binomial"
        with pytest.raises(InputError):
            config.resolve_penalty_family("survival")


class TestSerialization:
    """Tests for dict round-trips."""

    def test_round_trip(self):
        config = NPDRConfig(nbd_method="fixed-k", k=10, padj_method="fdr")
        assert NPDRConfig.from_dict(config.to_dict()) == config

    def test_unknown_keys_ignored(self):
        config = NPDRConfig.from_dict({"k": 5, "nbd_method": "fixed-k", "verbose": True})
        assert config.k == 5
