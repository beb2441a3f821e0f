# ODE solver, fixed-step 4th order
def rk4(state, derivative_func, dt):
    """
    Runge-Kutta 4th order integrator.

    The derivative function also receives the fraction of the step elapsed
    at each stage (0, 0.5, 0.5, 1) so inputs that vary over the step, such as
    interpolated control coefficients, are evaluated at the right instant.

    Parameters
    ----------
    state : list
        state vector, e.g. [theta, v, x, y].

    derivative_func : function
        function ``f(state, fraction)`` that returns derivatives.

    dt : float
        the time period to use. e.g 0.25

    Returns
    -------
    new_state : list
        The updated state with the added effects of the derivities applied over dt.
    """

    def add_scaled(state, derivative, scale):
        return [s + scale * d for s, d in zip(state, derivative)]

    # k1
    k1 = derivative_func(state, 0.0)

    # k2
    state_k2 = add_scaled(state, k1, dt / 2)
    k2 = derivative_func(state_k2, 0.5)

    # k3
    state_k3 = add_scaled(state, k2, dt / 2)
    k3 = derivative_func(state_k3, 0.5)

    # k4
    state_k4 = add_scaled(state, k3, dt)
    k4 = derivative_func(state_k4, 1.0)

    # Weighted average
    new_state = [
        s + (dt / 6) * (d1 + 2 * d2 + 2 * d3 + d4)
        for s, d1, d2, d3, d4 in zip(state, k1, k2, k3, k4)
    ]

    return new_state
