import numpy as np
import pandas as pd
import pytest

from prettyplots.core.data import load_iris


@pytest.fixture(scope="session")
def iris() -> pd.DataFrame:
    return load_iris()


@pytest.fixture
def beaver() -> pd.DataFrame:
    # Shape of R's beaver1 for day 346: time as hhmm, temperature in deg C.
    n = 24
    return pd.DataFrame(
        {
            "day": [346] * n,
            "time": np.arange(n) * 50 + 840,
            "temp": 36.6 + 0.3 * np.sin(np.linspace(0, 3, n)),
            "activ": [0] * (n - 2) + [1, 1],
        }
    )
