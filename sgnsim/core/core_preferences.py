"""
Definitions, documentation, default values and validation functions for the
core, solver and search preferences.
"""

from numpy import float32, float64

from sgnsim.core.preferences import SimPreference, prefs

__all__ = []


def dtype_repr(dtype):
    return dtype.__name__


def default_float_dtype_validator(dtype):
    return dtype in [float32, float64]


def positive_int_validator(value):
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


prefs.register_preferences(
    "core",
    "Core preferences",
    default_float_dtype=SimPreference(
        default=float64,
        docs="""
        Default dtype for the state vectors of the model (membrane potential,
        periaxonal potential, gating variables).
        """,
        representor=dtype_repr,
        validator=default_float_dtype_validator,
    ),
)

prefs.register_preferences(
    "solver",
    "Preferences of the cable equation solver",
    check_finite=SimPreference(
        default=True,
        docs="""
        Whether to check the state for NaN/Inf values after every integration
        step. A fixed step implicit scheme does not fall back to smaller
        steps, so divergence only shows up as non-finite potentials. If this
        is switched off, a diverging simulation will silently produce NaN
        recordings.
        """,
    ),
)

prefs.register_preferences(
    "search",
    "Preferences of the threshold search",
    max_iterations=SimPreference(
        default=200,
        docs="""
        Maximum number of simulation runs a threshold search performs before
        it gives up and reports that it did not converge. Used when no
        explicit ``max_iterations`` argument is given.
        """,
        validator=positive_int_validator,
    ),
)
