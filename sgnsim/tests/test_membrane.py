import numpy as np
import pytest
from numpy.testing import assert_allclose

from sgnsim.core.base import ConfigurationError
from sgnsim.membrane import FrankenhaeuserHuxley, PassiveLeak, vtrap


def _fh(n=1, **kwds):
    return FrankenhaeuserHuxley(
        np.arange(n), pnabar=8e-3, ppbar=0.54e-3, pkbar=1.2e-3, gl=0.0303, **kwds
    )


def test_vtrap():
    assert_allclose(vtrap(np.array([0.0]), 10.0), [10.0], rtol=1e-5)
    assert_allclose(vtrap(np.array([5.0]), 10.0), [5.0 / (1 - np.exp(-0.5))])


def test_rates_at_singular_points():
    fh = _fh()
    # potentials where one of the rate expressions is 0/0
    for v in [-48.0, -57.0, -80.0, -35.0, -60.0, -30.0, -95.0]:
        for alpha, beta in fh.rates(np.array([v])).values():
            assert np.all(np.isfinite(alpha)) and np.all(alpha > 0)
            assert np.all(np.isfinite(beta)) and np.all(beta > 0)
    alpha_m, _ = fh.rates(np.array([-48.0]))["m"]
    assert_allclose(alpha_m, 0.36 * 3, rtol=1e-4)


def test_q10():
    v = np.array([-70.0, -40.0])
    cold = _fh().rates(v)
    warm = _fh(celsius=30.0).rates(v)
    for gate in "mhnp":
        assert_allclose(warm[gate][0], 3 * cold[gate][0])
        assert_allclose(warm[gate][1], 3 * cold[gate][1])


def test_balanced_resting_state():
    fh = _fh()
    v = np.array([-70.0])
    fh.initialize(v)
    # with el = v_rest only the leak is balanced
    assert fh.current(v)[0] != 0
    fh.balance_leak(v)
    assert_allclose(fh.current(v), [0.0], atol=1e-12)
    # nearly all of the resting current is leak
    assert abs(fh.parameters["el"][0] + 70.0) < 5.0


def test_linearization():
    v = np.array([-90.0, -70.0, -48.0, -20.0, 0.0, 35.0])
    fh = _fh(n=len(v))
    fh.initialize(np.full(len(v), -60.0))
    gtot, I0 = fh.linearize(v)
    assert np.all(np.isfinite(gtot)) and np.all(np.isfinite(I0))
    assert_allclose(gtot * v + I0, fh.current(v), rtol=1e-5, atol=1e-6)

    # gtot is the slope of the current
    h = 1e-4
    v = np.array([-60.0, -20.0, 30.0])
    fh = _fh(n=len(v))
    fh.initialize(np.full(len(v), -60.0))
    slope = (fh.current(v + h) - fh.current(v - h)) / (2 * h)
    assert_allclose(fh.linearize(v)[0], slope, rtol=1e-4)


def test_ghk_at_zero_potential():
    fh = _fh()
    fh.initialize(np.array([0.0]))
    currents = fh.ionic_currents(np.array([0.0]))
    for name in ("ina", "ip", "ik"):
        assert np.all(np.isfinite(currents[name]))
    assert np.all(np.isfinite(fh.current(np.array([0.0]))))
    # sodium flows in at 0 mV (nao > nai), potassium out
    assert currents["ina"][0] < 0
    assert currents["ik"][0] > 0


def test_gate_update():
    fh = _fh()
    rest = np.array([-70.0])
    fh.initialize(rest)
    before = {name: state.copy() for name, state in fh.states.items()}
    fh.update(rest, 0.01)
    for name in fh.state_names:
        assert_allclose(fh.states[name], before[name])

    depolarized = np.array([30.0])
    fh.update(depolarized, 0.05)
    assert fh.states["m"][0] > before["m"][0]
    assert fh.states["h"][0] < before["h"][0]
    for state in fh.states.values():
        assert 0 <= state[0] <= 1
    # long steps converge to the steady state
    fh.update(depolarized, 1000.0)
    for name, value in fh.steady_state(depolarized).items():
        assert_allclose(fh.states[name], value)


def test_passive_leak():
    leak = PassiveLeak([3, 4], g_pas=np.array([1e-4, 2e-4]), e_pas=-70.0)
    v = np.array([-70.0, -50.0])
    assert_allclose(leak.current(v), [0.0, 2e-4 * 20])
    gtot, I0 = leak.linearize(v)
    assert_allclose(gtot, [1e-4, 2e-4])
    assert_allclose(I0, [1e-4 * 70, 2e-4 * 70])


def test_invalid_parameters():
    with pytest.raises(ConfigurationError):
        PassiveLeak([0, 1], g_pas=np.array([1e-4, 2e-4, 3e-4]), e_pas=-70.0)
    with pytest.raises(ConfigurationError):
        PassiveLeak([0, 1], g_pas=1e-4)
    with pytest.raises(ConfigurationError):
        PassiveLeak([0, 1], g_pas=1e-4, e_pas=-70.0, e_rev=0.0)
