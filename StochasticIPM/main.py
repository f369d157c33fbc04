if __name__ == '__main__':
    import math

    import matplotlib.pyplot as plt
    import torch

    from StochasticIPM.config import Config, configure_logging
    import StochasticIPM.demography as demography
    import StochasticIPM.diagnostics as diagnostics
    import StochasticIPM.diffusion as diffusion
    from StochasticIPM.kernels import IPM
    from StochasticIPM.rng import make_generator
    from StochasticIPM.simulation import StructuredSimulation
    import StochasticIPM.visualization as viz
    from StochasticIPM.vital_rates import SizeStructured

    logger = configure_logging()

    ##############
    # Model Setup
    ##############
    config = Config(dtype=torch.float64,
                    min_x=0,
                    max_x=20,
                    n_bins=200,
                    tol=1e-6,
                    max_iter=10000,
                    delta_t=0.01)
    ipm = IPM(config, SizeStructured())
    K1 = ipm.build_kernel()

    ################
    # Eigen-analysis
    ################
    analysis = ipm.eigen_analysis()
    demvar = demography.demographic_variance(ipm, analysis.u, analysis.v).value
    envvar = 0.0
    print(f"lambda = {analysis.lam:.5f}, demographic variance = {demvar:.5f}")

    #############
    # Simulations
    #############
    n_sim = 250
    n0 = 50
    t_max = 50
    seed = 20170203

    y0 = math.log(n0)
    diffusion_paths = diffusion.simulate_diffusion(analysis.lam,
                                                   demvar,
                                                   envvar,
                                                   y0,
                                                   t_max,
                                                   delta_t=config.delta_t,
                                                   n_sim=n_sim,
                                                   generator=make_generator(seed))

    sim = StructuredSimulation(ipm, analysis.u, analysis.v)
    ibm_paths = sim.simulate(n_sim, n0, t_max, v_max=1e5, seed=seed)

    print("Fraction extinct by the final year:")
    print(f"  diffusion:   {diffusion.extinction_curve(diffusion_paths).iloc[-1]:.3f}")
    print(f"  individuals: {diffusion.extinction_curve(ibm_paths, threshold=1).iloc[-1]:.3f}")

    #######################
    # Growth model checking
    #######################
    census = sim.simulate_census(n0, 20, generator=make_generator(seed))
    census = diagnostics.thin_census(census, n=300)
    growth_table = diagnostics.growth_diagnostics(census)
    comparison = diagnostics.compare_growth_fits(census)
    logger.info("Growth model AIC = %.2f", diagnostics.fit_growth(census).aic)

    ##########
    # Plotting
    ##########
    viz.kernel_imshow(K1.numpy(), ipm.xs.numpy())
    viz.plot_eigenvectors(ipm.xs.numpy(), analysis.u.numpy(), analysis.v.numpy())
    fig, ax = viz.plot_trajectory_bands(diffusion_paths, label='Diffusion')
    viz.plot_trajectory_bands(ibm_paths, ax=ax, label='Individual based', log=True)
    viz.plot_final_histogram(ibm_paths)
    viz.plot_growth_diagnostics(growth_table, comparison)
    plt.show()
