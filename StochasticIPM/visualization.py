import matplotlib.pyplot as plt
import numpy as np

from StochasticIPM.diffusion import quantile_bands

def kernel_imshow(kernel, xs):
    """Takes a 2d kernel and displays it as a heatmap over sizes."""
    fig, ax = plt.subplots()
    extent = [float(xs[0]), float(xs[-1]), float(xs[0]), float(xs[-1])]
    im = ax.imshow(kernel, cmap='Reds', origin='lower', extent=extent)
    fig.colorbar(im)
    ax.plot(extent[:2], extent[2:], color='blue', zorder=2)
    ax.set_xlabel('Size $t$')
    ax.set_ylabel('Size $t + 1$')
    return fig, ax

def plot_eigenvectors(xs, u, v):
    fig, axes = plt.subplots(ncols=2, figsize=(8, 3))
    axes[0].plot(xs, u)
    axes[0].set_xlabel('Size')
    axes[0].set_ylabel('Stable distribution')
    axes[1].plot(xs, v)
    axes[1].set_xlabel('Size')
    axes[1].set_ylabel('Reproductive value')
    return fig, axes

def plot_trajectory_bands(trajectories, ax=None, label=None, log=False):
    """Median and 5-95% / 25-75% ribbons of a trajectory ensemble."""
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure
    data = np.log(trajectories.clip(lower=1)) if log else trajectories
    bands = quantile_bands(data)
    times = bands.index.to_numpy()
    ax.fill_between(times, bands[0.05], bands[0.95], alpha=0.2)
    ax.fill_between(times, bands[0.25], bands[0.75], alpha=0.4)
    ax.plot(times, bands[0.5], label=label)
    ax.set_xlabel('Time')
    if label is not None:
        ax.legend()
    return fig, ax

def plot_final_histogram(trajectories, bins=30):
    fig, ax = plt.subplots()
    ax.hist(trajectories.iloc[:, -1], bins=bins)
    ax.set_xlabel(f'Value at time {trajectories.columns[-1]}')
    return fig, ax

def plot_growth_diagnostics(diagnostics, comparison, x='size'):
    """Four panel growth model check: residuals, normal quantiles,
       scale-location and linear against smooth fit."""
    fig, axes = plt.subplots(nrows=2, ncols=2, figsize=(8, 8))
    ax = axes[0, 0]
    ax.scatter(diagnostics['fitted'], diagnostics['residual'], s=8)
    ax.plot(diagnostics['fitted'], diagnostics['residual_smooth'], color='black')
    ax.set_xlabel('Fitted values')
    ax.set_ylabel('Residuals')

    ax = axes[0, 1]
    ax.scatter(diagnostics['theoretical_quantile'], diagnostics['std_residual'], s=8)
    lims = [diagnostics['theoretical_quantile'].min(),
            diagnostics['theoretical_quantile'].max()]
    ax.plot(lims, lims, color='black')
    ax.set_xlabel('Normal quantiles')
    ax.set_ylabel('Standardized residual quantiles')

    ax = axes[1, 0]
    ax.scatter(diagnostics['fitted'], diagnostics['scale'], s=8)
    ax.plot(diagnostics['fitted'], diagnostics['scale_smooth'], color='black')
    ax.set_xlabel('Fitted values')
    ax.set_ylabel('sqrt(|Std Residuals|)')

    ax = axes[1, 1]
    ax.plot(comparison[x], comparison['linear'], lw=2)
    ax.plot(comparison[x], comparison['smooth'], lw=2, ls='--')
    ax.set_xlabel('Size t')
    ax.set_ylabel('Fitted size t+1')

    for label, ax in zip('abcd', axes.flat):
        ax.set_title(label, loc='left')
    return fig, axes
