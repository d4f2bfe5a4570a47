"""
Membrane mechanisms: passive leak and the Frankenhaeuser-Huxley node model.

Every mechanism describes its transmembrane current density ``Im`` (mA/cm**2,
outward positive) as a sympy expression of the membrane potential ``v``, its
gating variables and its parameters. The expression is differentiated with
respect to ``v`` to split the current into a conductance ``gtot = dIm/dv`` and
a remaining current ``I0 = Im - gtot*v``, which is what the implicit cable
solver needs. Expressions are compiled to numpy functions with
`sympy.lambdify`.
"""
import numpy as np
import sympy as sp

from sgnsim.core.base import ConfigurationError
from sgnsim.core.preferences import prefs
from sgnsim.utils.logger import get_logger

logger = get_logger(__name__)

__all__ = ["MembraneMechanism", "PassiveLeak", "FrankenhaeuserHuxley", "vtrap"]

FARADAY = 96485.3  # C/mol
GAS_CONSTANT = 8.314  # J/(K*mol)

#: Offset (in mV) used to step over removable singularities
_NUDGE = 1e-4


def _evaluate(func, v, *args):
    """
    Evaluate ``func(v, *args)`` and re-evaluate entries that are not finite
    (removable singularities such as ``0/0``) at a slightly shifted potential.
    """
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        values = np.asarray(func(v, *args), dtype=float)
        values = np.broadcast_to(values, np.shape(v)).copy()
        bad = ~np.isfinite(values)
        if np.any(bad):
            shifted_args = [
                a[bad] if np.ndim(a) else a for a in args
            ]
            values[bad] = func(v[bad] + _NUDGE, *shifted_args)
    return values


def vtrap(x, y):
    """
    ``x/(1 - exp(-x/y))``, with the removable singularity at ``x = 0``
    replaced by the value at a slightly shifted ``x``.

    Examples
    --------
    >>> float(vtrap(np.array([0.0]), 10.0)[0])  # doctest: +ELLIPSIS
    10.0000...
    """
    x = np.asarray(x, dtype=float)
    return _evaluate(lambda x_, y_: x_ / (1 - np.exp(-x_ / y_)), x, y)


class MembraneMechanism:
    """
    Base class for membrane mechanisms installed on a set of compartments.

    Subclasses define `state_names`, `parameter_names` and the symbolic
    current density in `current_expression`.

    Parameters
    ----------
    indices : array-like of int
        Global indices of the compartments carrying the mechanism.
    parameters : dict
        Values of all names in `parameter_names`, either scalars (applied to
        all compartments) or arrays with one value per compartment.
    """

    #: Names of the gating variables
    state_names = ()
    #: Names of the (per-compartment) parameters
    parameter_names = ()

    # Compiled functions, per subclass
    _compiled = None

    def __init__(self, indices, **parameters):
        self.indices = np.asarray(indices, dtype=np.int64)
        n = len(self.indices)
        dtype = prefs.core.default_float_dtype
        missing = set(self.parameter_names) - set(parameters)
        unknown = set(parameters) - set(self.parameter_names)
        if missing or unknown:
            raise ConfigurationError(
                f"{self.__class__.__name__}: missing parameters "
                f"{sorted(missing)}, unknown parameters {sorted(unknown)}."
            )
        self.parameters = {}
        for name in self.parameter_names:
            value = np.asarray(parameters[name], dtype=dtype)
            if value.ndim and value.shape != (n,):
                raise ConfigurationError(
                    f"Parameter '{name}' has {value.shape[0]} values for {n} "
                    "compartments."
                )
            self.parameters[name] = np.array(np.broadcast_to(value, (n,)))
        self.states = {name: np.zeros(n, dtype=dtype) for name in self.state_names}
        self._compile()

    def __len__(self):
        return len(self.indices)

    def current_expression(self, v, states, parameters):
        """
        Return the current density ``Im`` (mA/cm**2, outward positive) as a
        sympy expression of the symbols ``v``, ``states`` and ``parameters``
        (the latter two being dictionaries mapping names to symbols).
        """
        raise NotImplementedError()

    @classmethod
    def _symbols(cls):
        v = sp.Symbol("v", real=True)
        states = {name: sp.Symbol(name, real=True) for name in cls.state_names}
        parameters = {
            name: sp.Symbol(name, real=True) for name in cls.parameter_names
        }
        return v, states, parameters

    def _compile(self):
        cls = self.__class__
        if cls.__dict__.get("_compiled") is not None:
            return
        v, states, parameters = cls._symbols()
        Im = self.current_expression(v, states, parameters)
        diffed = sp.diff(Im, v)
        if len(diffed.atoms(sp.Derivative)):
            raise TypeError(f'Cannot take the derivative of "{Im}" with respect to v.')
        I0 = Im - diffed * v
        args = [v] + list(states.values()) + list(parameters.values())
        cls._compiled = {
            "Im": sp.lambdify(args, Im, modules="numpy"),
            "gtot": sp.lambdify(args, diffed, modules="numpy"),
            "I0": sp.lambdify(args, I0, modules="numpy"),
        }
        logger.diagnostic(
            f"Compiled {cls.__name__}: Im = {Im}, gtot = {diffed}",
            once=True,
        )

    def _call(self, name, v):
        args = [self.states[s] for s in self.state_names] + [
            self.parameters[p] for p in self.parameter_names
        ]
        v = np.asarray(v, dtype=float)
        return _evaluate(self._compiled[name], v, *args)

    def current(self, v):
        """Current density (mA/cm**2) at membrane potential ``v``."""
        return self._call("Im", v)

    def linearize(self, v):
        """
        Split the current density at ``v`` into ``gtot`` (S/cm**2) and ``I0``
        (mA/cm**2), so that ``Im = gtot*v + I0``.
        """
        return self._call("gtot", v), self._call("I0", v)

    def initialize(self, v):
        """Set all gating variables to their steady state at ``v``."""
        pass

    def update(self, v, dt):
        """Advance the gating variables by ``dt`` (ms) at potential ``v``."""
        pass


class PassiveLeak(MembraneMechanism):
    """
    A passive leak current ``g_pas*(v - e_pas)``.
    """

    parameter_names = ("g_pas", "e_pas")

    def current_expression(self, v, states, parameters):
        return parameters["g_pas"] * (v - parameters["e_pas"])


def _ghk(v, ci, co, T):
    u = v * 1e-3 * FARADAY / (GAS_CONSTANT * T)
    return 1e-3 * FARADAY * u * (ci - co * sp.exp(-u)) / (1 - sp.exp(-u))


def _ghk_numpy(v, ci, co, T):
    u = v * 1e-3 * FARADAY / (GAS_CONSTANT * T)
    return 1e-3 * FARADAY * u * (ci - co * np.exp(-u)) / (1 - np.exp(-u))


class FrankenhaeuserHuxley(MembraneMechanism):
    """
    Frankenhaeuser-Huxley model of the node of Ranvier.

    Sodium, potassium and a nonspecific (``p``) current are described with the
    Goldman-Hodgkin-Katz current equation, the leak current is linear::

        ina = pnabar * m**2 * h * ghk(v, nai, nao)
        ip  = ppbar * p**2 * ghk(v, nai, nao)
        ik  = pkbar * n**2 * ghk(v, ki, ko)
        il  = gl * (v - el)

    The rate constants are functions of the displacement from the model's
    resting potential (-70 mV) and are scaled with a Q10 of 3 relative to
    20 degC.
    """

    state_names = ("m", "h", "n", "p")
    parameter_names = (
        "pnabar",
        "ppbar",
        "pkbar",
        "gl",
        "el",
        "nai",
        "nao",
        "ki",
        "ko",
        "T",
    )

    #: Resting potential of the original model, reference for the rates
    v_rest = -70.0

    def __init__(self, indices, pnabar, ppbar, pkbar, gl, el=-70.0, nai=13.74,
                 nao=114.5, ki=120.0, ko=2.5, celsius=20.0):
        super().__init__(
            indices,
            pnabar=pnabar,
            ppbar=ppbar,
            pkbar=pkbar,
            gl=gl,
            el=el,
            nai=nai,
            nao=nao,
            ki=ki,
            ko=ko,
            T=celsius + 273.15,
        )
        self.celsius = celsius
        self.q10 = 3.0 ** ((celsius - 20.0) / 10.0)

    def current_expression(self, v, states, parameters):
        m, h, n, p = (states[name] for name in self.state_names)
        P = parameters
        ghk_na = _ghk(v, P["nai"], P["nao"], P["T"])
        ghk_k = _ghk(v, P["ki"], P["ko"], P["T"])
        ina = P["pnabar"] * m**2 * h * ghk_na
        ip = P["ppbar"] * p**2 * ghk_na
        ik = P["pkbar"] * n**2 * ghk_k
        il = P["gl"] * (v - P["el"])
        return ina + ip + ik + il

    def rates(self, v):
        """
        Opening and closing rates (1/ms) of all gates at potential ``v``.

        Returns
        -------
        rates : dict
            Mapping from gate name to ``(alpha, beta)``.
        """
        V = np.asarray(v, dtype=float) - self.v_rest
        q10 = self.q10
        with np.errstate(over="ignore"):
            bh = 4.5 / (1 + np.exp((45 - V) / 10))
        return {
            "m": (q10 * 0.36 * vtrap(V - 22, 3), q10 * 0.4 * vtrap(13 - V, 20)),
            "h": (q10 * 0.1 * vtrap(-10 - V, 6), q10 * bh),
            "n": (q10 * 0.02 * vtrap(V - 35, 10), q10 * 0.05 * vtrap(10 - V, 10)),
            "p": (q10 * 0.006 * vtrap(V - 40, 10), q10 * 0.09 * vtrap(-25 - V, 20)),
        }

    def steady_state(self, v):
        """Steady-state values of all gates at potential ``v``."""
        return {
            name: alpha / (alpha + beta)
            for name, (alpha, beta) in self.rates(v).items()
        }

    def initialize(self, v):
        for name, value in self.steady_state(v).items():
            self.states[name][:] = value

    def update(self, v, dt):
        # Exponential Euler, exact for constant v over the step
        for name, (alpha, beta) in self.rates(v).items():
            total = alpha + beta
            x_inf = alpha / total
            state = self.states[name]
            state[:] = x_inf + (state - x_inf) * np.exp(-dt * total)

    def ionic_currents(self, v):
        """
        Individual current densities (mA/cm**2) at ``v``, with the current
        gating variables.
        """
        v = np.asarray(v, dtype=float)
        P = self.parameters

        def ghk(ci, co):
            return _evaluate(_ghk_numpy, v, ci, co, P["T"])

        s = self.states
        return {
            "ina": P["pnabar"] * s["m"] ** 2 * s["h"] * ghk(P["nai"], P["nao"]),
            "ip": P["ppbar"] * s["p"] ** 2 * ghk(P["nai"], P["nao"]),
            "ik": P["pkbar"] * s["n"] ** 2 * ghk(P["ki"], P["ko"]),
            "il": P["gl"] * (v - P["el"]),
        }

    def balance_leak(self, v):
        """
        Set the leak reversal potential so that the total current at ``v`` is
        zero (with the current gating variables, usually at steady state).
        """
        currents = self.ionic_currents(v)
        active = currents["ina"] + currents["ip"] + currents["ik"]
        self.parameters["el"][:] = v + active / self.parameters["gl"]
        logger.debug(
            f"Balanced leak reversal potential: el = "
            f"{np.mean(self.parameters['el']):.3f} mV"
        )
