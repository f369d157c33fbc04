import math

import numpy as np
import pandas as pd
import pytest

import StochasticIPM.diagnostics as diagnostics

@pytest.fixture
def growth_data():
    rng = np.random.default_rng(42)
    size = rng.uniform(-2, 5, 400)
    size1 = 0.96 + 0.59*size + rng.normal(0, 0.67, 400)
    size1[::17] = np.nan
    return pd.DataFrame({'size': size, 'size1': size1, 'year': 0})

@pytest.fixture
def thinned(growth_data):
    return diagnostics.thin_census(growth_data, n=300)

def test_thin_census(thinned):
    assert len(thinned) <= 300
    assert list(thinned.columns) == ['size', 'size1']
    assert not thinned.isna().any().any()
    assert thinned['size'].is_monotonic_increasing

def test_load_census(tmp_path, growth_data):
    path = tmp_path / 'census.csv'
    growth_data.to_csv(path, index=False)
    loaded = diagnostics.load_census(path)
    assert list(loaded.columns) == ['size', 'size1', 'year']
    assert len(loaded) == len(growth_data)

def test_fit_growth_recovers_coefficients(thinned):
    fit = diagnostics.fit_growth(thinned)
    assert float(fit.coef[0]) == pytest.approx(0.96, abs=0.15)
    assert float(fit.coef[1]) == pytest.approx(0.59, abs=0.05)
    assert fit.sigma == pytest.approx(0.67, rel=0.15)
    assert float(fit.residuals.sum()) == pytest.approx(0, abs=1e-8)
    assert float(fit.std_residuals.std()) == pytest.approx(1, rel=0.1)

def test_fit_growth_aic(thinned):
    fit = diagnostics.fit_growth(thinned)
    n = len(thinned)
    rss = float((fit.residuals**2).sum())
    expected = n*math.log(2*math.pi) + n*math.log(rss/n) + n + 2*3
    assert fit.aic == pytest.approx(expected)

def test_fit_growth_too_small():
    with pytest.raises(ValueError):
        diagnostics.fit_growth(pd.DataFrame({'size': [1.0, 2.0], 'size1': [1.0, 2.0]}))

def test_smooth_trend_keeps_lines():
    x = np.linspace(0, 10, 50)
    y = 2.0 + 0.5*x
    np.testing.assert_allclose(diagnostics.smooth_trend(x, y, lam=1.0), y, atol=1e-6)

def test_smooth_trend_repeated_x():
    x = np.repeat(np.linspace(0, 1, 10), 3)
    y = np.sin(x) + np.tile([-0.1, 0.0, 0.1], 10)
    smooth = diagnostics.smooth_trend(x, y)
    assert smooth.shape == x.shape
    assert np.isfinite(smooth).all()

def test_growth_diagnostics(thinned):
    table = diagnostics.growth_diagnostics(thinned)
    assert len(table) == len(thinned)
    for column in ['fitted', 'residual', 'residual_smooth', 'std_residual',
                   'theoretical_quantile', 'scale', 'scale_smooth']:
        assert np.isfinite(table[column]).all()
    # Quantiles are assigned by rank of the standardized residuals.
    order = np.argsort(table['std_residual'].to_numpy(), kind='stable')
    assert np.all(np.diff(table['theoretical_quantile'].to_numpy()[order]) > 0)
    assert (table['scale'] >= 0).all()

def test_compare_growth_fits(thinned):
    comparison = diagnostics.compare_growth_fits(thinned)
    assert list(comparison.columns) == ['size', 'linear', 'smooth']
    # The data are linear, so both fits should agree closely.
    assert np.abs(comparison['linear'] - comparison['smooth']).max() < 0.5
    assert set(comparison.attrs['aic']) == {'linear', 'smooth'}
    assert comparison.attrs['edf'] >= 2 - 1e-6

def test_smooth_fit_edf(thinned):
    smooth = diagnostics.smooth_fit(thinned['size'], thinned['size1'])
    assert 2 - 1e-6 < smooth.edf < 10
    assert smooth.lam > 0
    assert np.isfinite(smooth.gcv)
    assert smooth.aic == pytest.approx(
        diagnostics.smooth_fit(thinned['size'], thinned['size1'], lam=smooth.lam).aic)

def test_smooth_fit_stiff_limit():
    """A very stiff smooth is the least squares line with two degrees of
       freedom."""
    rng = np.random.default_rng(3)
    x = rng.uniform(0, 3, 100)
    y = 1.0 + 2.0*x + rng.normal(0, 0.3, 100)
    smooth = diagnostics.smooth_fit(x, y, lam=1e8)
    line = diagnostics.fit_growth(pd.DataFrame({'size': x, 'size1': y}))
    assert smooth.edf == pytest.approx(2, abs=1e-3)
    np.testing.assert_allclose(smooth.fitted, line.fitted.numpy(), atol=1e-3)
    assert smooth.aic == pytest.approx(line.aic, abs=0.01)

def test_compare_growth_fits_aic_prefers_smooth_for_curves():
    rng = np.random.default_rng(7)
    size = rng.uniform(0, 3, 200)
    df = pd.DataFrame({'size': size, 'size1': size**2 + rng.normal(0, 0.3, 200)})
    comparison = diagnostics.compare_growth_fits(df)
    aic = comparison.attrs['aic']
    assert aic['smooth'] < aic['linear']
    assert comparison.attrs['edf'] > 2
