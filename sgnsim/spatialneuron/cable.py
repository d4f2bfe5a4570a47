"""
Implicit integration of the double cable equation.

For every compartment ``i`` the unknowns are the intracellular potential
``u_i`` and the periaxonal potential ``x_i`` (the membrane potential is
``v_i = u_i - x_i``). With backward Euler and the membrane current linearized
around the current potential (``Im = g*v + I0``), current conservation gives::

    C_i/dt*(v_i - v_i^n) + g_i*v_i + I0_i + sum_j Ga_ij*(u_i - u_j) = 0

for the intracellular space and::

    Cx_i/dt*((x_i - e_i) - (x_i^n - e_i^n)) + Gx_i*(x_i - e_i)
        + sum_j Gxa_ij*(x_i - x_j) = C_i/dt*(v_i - v_i^n) + g_i*v_i + I0_i

for the periaxonal space, where ``e`` is the imposed extracellular potential
and the right hand side is the current crossing the axolemma. Compartments
form a single path, so ordering the unknowns as ``u_0, x_0, u_1, x_1, ...``
makes the system banded with two diagonals above and below the main one.
Both ends of the path are sealed.
"""
import numpy as np
from scipy.linalg import solve_banded

from sgnsim.core.base import ConfigurationError, NumericalError
from sgnsim.core.preferences import prefs
from sgnsim.utils.logger import get_logger

logger = get_logger(__name__)

__all__ = ["CableSolver"]


class CableSolver:
    """
    Fixed step backward Euler solver for a `SpiralGanglionNeuron`.

    Parameters
    ----------
    neuron : `SpiralGanglionNeuron`
        The neuron to integrate. Its state vectors are updated in place.
    dt : float
        The time step in ms.
    """

    def __init__(self, neuron, dt):
        if dt <= 0:
            raise ConfigurationError(f"The time step has to be positive, got {dt}.")
        parent = neuron.morphology.parent
        n = len(parent)
        if parent[0] != -1 or np.any(parent[1:] != np.arange(n - 1)):
            raise ConfigurationError(
                "The cable solver needs the compartments ordered along a "
                "single path."
            )
        self.neuron = neuron
        self.dt = dt
        self.n = n
        # Imposed potential during the previous step
        self.e_previous = np.zeros(n)
        # Axial couplings are constant: prepare the off-diagonals once
        Ga = neuron.Ga
        Gxa = neuron.Gxa
        self._axial = np.zeros(n)
        self._axial_x = np.zeros(n)
        self._axial[1:] += Ga[1:]
        self._axial[:-1] += Ga[1:]
        self._axial_x[1:] += Gxa[1:]
        self._axial_x[:-1] += Gxa[1:]
        self._ab = np.zeros((5, 2 * n))
        self._rhs = np.zeros(2 * n)
        # u_i <-> u_{i+1} and x_i <-> x_{i+1}, a[i, j] = ab[2 + i - j, j]
        self._ab[0, 2::2] = -Ga[1:]
        self._ab[0, 3::2] = -Gxa[1:]
        self._ab[4, 0:-2:2] = -Ga[1:]
        self._ab[4, 1:-2:2] = -Gxa[1:]
        logger.diagnostic(
            f"Cable solver for {n} compartments with dt = {dt} ms", once=True
        )

    def reinit(self):
        self.e_previous[:] = self.neuron.e_extracellular

    def step(self, t=None):
        """
        Advance the neuron by one time step, using the current content of
        ``neuron.e_extracellular`` as the imposed potential.

        Parameters
        ----------
        t : float, optional
            Time at the start of the step (only used for error messages).

        Raises
        ------
        NumericalError
            If the new state contains non-finite values (only checked if the
            ``solver.check_finite`` preference is set).
        """
        neuron = self.neuron
        dt = self.dt
        v_old = neuron.v
        x_old = neuron.vext
        e_new = neuron.e_extracellular
        e_old = self.e_previous

        g, I0 = neuron.linearize()
        c_dt = neuron.C / dt
        cx_dt = neuron.Cx / dt
        membrane = c_dt + g

        ab = self._ab
        ab[2, 0::2] = membrane + self._axial
        ab[2, 1::2] = cx_dt + neuron.Gx + self._axial_x + membrane
        ab[1, 1::2] = -membrane
        ab[3, 0::2] = -membrane

        rhs = self._rhs
        rhs[0::2] = c_dt * v_old - I0
        rhs[1::2] = (
            cx_dt * (e_new + x_old - e_old)
            + neuron.Gx * e_new
            - c_dt * v_old
            + I0
        )

        solution = solve_banded((2, 2), ab, rhs, check_finite=False)
        u = solution[0::2]
        x = solution[1::2]

        if prefs.solver.check_finite and not np.all(np.isfinite(solution)):
            bad = np.flatnonzero(~(np.isfinite(u) & np.isfinite(x)))
            raise NumericalError(
                "Non-finite potentials after an integration step", t=t, indices=bad
            )

        neuron.v[:] = u - x
        neuron.vext[:] = x
        self.e_previous[:] = e_new
        neuron.update_gates(dt)
