"""Tests for input validation and preparation."""
import pytest
import numpy as np
import pandas as pd
from npdr.data import (
    drop_attributes,
    encode_categories,
    infer_outcome_type,
    range_scale,
    validate_attributes,
    validate_covariates,
    validate_outcome,
)
from npdr.exceptions import InputError


class TestValidateAttributes:
    """Tests for the attribute matrix checks."""

    def test_array_gets_names(self):
        data = validate_attributes(np.zeros((3, 2)))
        assert list(data.columns) == ["attr_0", "attr_1"]

    def test_frame_passes_through(self, mock_attributes):
        assert validate_attributes(mock_attributes) is mock_attributes

    @pytest.mark.parametrize("data", [
        pd.DataFrame({"a": [1.0]}),
        pd.DataFrame(index=[0, 1]),
        pd.DataFrame({"a": [1.0, np.nan]}),
        np.zeros(3),
        [[1, 2], [3, 4]],
    ])
    def test_rejected(self, data):
        with pytest.raises(InputError):
            validate_attributes(data)

    def test_duplicate_names(self):
        data = pd.DataFrame([[1, 2], [3, 4]], columns=["a", "a"])
        with pytest.raises(InputError):
            validate_attributes(data)


class TestValidateOutcome:
    """Tests for outcome checks and type inference."""

    def test_infer_types(self):
        assert infer_outcome_type(np.array([0.1, 0.5, 0.9])) == "continuous"
        assert infer_outcome_type(np.array([0, 1, 1])) == "categorical"
        assert infer_outcome_type(np.array(["a", "b", "c"])) == "categorical"
        assert infer_outcome_type(np.zeros((3, 2))) == "survival"

    def test_integer_multiclass_labels(self, mock_attributes):
        """0/1/2 labels are inferred continuous unless declared categorical."""
        labels = np.arange(100) % 3
        assert infer_outcome_type(labels) == "continuous"
        values, outcome_type = validate_outcome(labels, mock_attributes, "categorical")
        assert outcome_type == "categorical"
        assert set(values) == {0, 1, 2}

    def test_aligned_by_index(self, mock_attributes, mock_continuous_outcome):
        shuffled = mock_continuous_outcome.sample(frac=1.0, random_state=0)
        values, outcome_type = validate_outcome(shuffled, mock_attributes)
        assert outcome_type == "continuous"
        np.testing.assert_allclose(values, mock_continuous_outcome.to_numpy())

    def test_length_mismatch(self, mock_attributes):
        with pytest.raises(InputError):
            validate_outcome(np.arange(5.0), mock_attributes)

    def test_index_mismatch(self, mock_attributes):
        outcome = pd.Series(np.arange(100.0))
        with pytest.raises(InputError):
            validate_outcome(outcome, mock_attributes)

    def test_single_class(self, mock_attributes):
        with pytest.raises(InputError):
            validate_outcome(np.array(["a"] * 100), mock_attributes, "categorical")

    def test_survival_tuple(self, mock_survival_outcome):
        attributes, (times, events) = mock_survival_outcome
        values, outcome_type = validate_outcome((times, events), attributes)
        assert outcome_type == "survival"
        assert values.shape == (60, 2)

    def test_survival_bad_events(self, mock_survival_outcome):
        attributes, (times, _) = mock_survival_outcome
        with pytest.raises(InputError):
            validate_outcome((times, np.full(60, 2.0)), attributes)

    def test_missing_outcome(self, mock_attributes):
        outcome = np.arange(100.0)
        outcome[5] = np.nan
        with pytest.raises(InputError):
            validate_outcome(outcome, mock_attributes)


class TestCovariates:
    """Tests for covariate checks."""

    def test_array_covariates(self, mock_attributes):
        covariates = validate_covariates(np.arange(100.0), mock_attributes)
        assert list(covariates.columns) == ["covar_0"]

    def test_name_clash(self, mock_attributes):
        with pytest.raises(InputError):
            validate_covariates(mock_attributes[["var1"]], mock_attributes)


class TestPreprocessing:
    """Tests for scaling, encoding and exclusion helpers."""

    def test_range_scale(self):
        data = pd.DataFrame({"a": [0.0, 5.0, 10.0], "c": [3.0, 3.0, 3.0]})
        scaled = range_scale(data)
        np.testing.assert_allclose(scaled["a"], [0.0, 0.5, 1.0])
        np.testing.assert_allclose(scaled["c"], [3.0, 3.0, 3.0])

    def test_encode_categories(self):
        codes = encode_categories(pd.DataFrame({"g": ["x", "y", "x"]}))
        assert codes["g"].tolist() == [0, 1, 0]

    def test_drop_all_rejected(self):
        data = pd.DataFrame({"a": [0.0, 1.0]})
        with pytest.raises(InputError):
            drop_attributes(data, ["a"])
