"""Shared pytest fixtures for NPDR tests."""
import pytest
import numpy as np
import pandas as pd


def _sample_index(n_samples):
    return [f"S{i:04d}" for i in range(n_samples)]


@pytest.fixture
def mock_attributes():
    """Standard-normal attribute matrix (100 samples x 20 attributes)."""
    np.random.seed(42)
    n_samples, n_attributes = 100, 20
    return pd.DataFrame(
        np.random.normal(size=(n_samples, n_attributes)),
        columns=[f"var{i}" for i in range(1, n_attributes + 1)],
        index=_sample_index(n_samples),
    )


@pytest.fixture
def mock_continuous_outcome(mock_attributes):
    """Outcome fully determined by var1 (y = 3 * var1)."""
    return pd.Series(3.0 * mock_attributes["var1"], name="outcome")


@pytest.fixture
def mock_class_outcome():
    """Binary outcome with attributes shifted for the first class on var1."""
    np.random.seed(7)
    n_samples, n_attributes = 60, 10
    labels = np.array(["case"] * 30 + ["control"] * 30)
    data = np.random.normal(size=(n_samples, n_attributes))
    data[labels == "case", 0] += 2.5
    attributes = pd.DataFrame(
        data,
        columns=[f"var{i}" for i in range(1, n_attributes + 1)],
        index=_sample_index(n_samples),
    )
    return attributes, pd.Series(labels, index=attributes.index, name="group")


@pytest.fixture
def mock_survival_outcome():
    """Survival times driven by var1, every event observed but two."""
    np.random.seed(11)
    n_samples, n_attributes = 60, 8
    attributes = pd.DataFrame(
        np.random.normal(size=(n_samples, n_attributes)),
        columns=[f"var{i}" for i in range(1, n_attributes + 1)],
        index=_sample_index(n_samples),
    )
    times = np.exp(attributes["var1"].to_numpy() + 0.1 * np.random.normal(size=n_samples))
    events = np.ones(n_samples)
    events[[3, 17]] = 0
    return attributes, (times, events)


@pytest.fixture
def mock_penalized_data():
    """100 samples x 100 attributes; var1-var3 drive the outcome."""
    np.random.seed(3)
    n_samples, n_attributes = 100, 100
    attributes = pd.DataFrame(
        np.random.normal(size=(n_samples, n_attributes)),
        columns=[f"var{i}" for i in range(1, n_attributes + 1)],
        index=_sample_index(n_samples),
    )
    outcome = 2.0 * attributes[["var1", "var2", "var3"]].sum(axis=1) + \
        0.1 * np.random.normal(size=n_samples)
    return attributes, pd.Series(outcome, name="outcome")


@pytest.fixture
def mock_genotypes():
    """Genotype matrix coded 0/1/2 (30 samples x 12 SNPs)."""
    np.random.seed(5)
    return pd.DataFrame(
        np.random.choice([0, 1, 2], size=(30, 12)),
        columns=[f"rs{i}" for i in range(12)],
    )


@pytest.fixture
def mock_pvalues():
    """Create mock p-values array."""
    np.random.seed(42)
    return np.concatenate([
        np.random.uniform(0.0001, 0.001, 10),
        np.random.uniform(0.01, 0.05, 20),
        np.random.uniform(0.05, 1.0, 70),
    ])
