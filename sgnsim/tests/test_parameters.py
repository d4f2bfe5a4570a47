import math

import pytest
from numpy.testing import assert_allclose

from sgnsim.config import default_config
from sgnsim.core.base import ConfigurationError
from sgnsim.morphology import (
    CompartmentClass,
    build_class_parameters,
    diameter_ratio,
    node_channel_densities,
    periaxonal_resistance,
)


def test_periaxonal_resistance():
    r = periaxonal_resistance(0.7e6, 1.42, 0.002)
    expected = 0.7e6 * 0.01 / (math.pi * ((0.71 + 0.002) ** 2 - 0.71**2))
    assert_allclose(r, expected)
    # wider gaps conduct better
    values = [periaxonal_resistance(0.7e6, 1.42, gap) for gap in (0.001, 0.002, 0.004, 0.01)]
    assert all(v > 0 for v in values)
    assert all(a > b for a, b in zip(values[:-1], values[1:]))


@pytest.mark.parametrize("diameter, gap", [(1.42, 0.0), (1.42, -0.002), (0.0, 0.002)])
def test_periaxonal_resistance_invalid(diameter, gap):
    with pytest.raises(ConfigurationError):
        periaxonal_resistance(0.7e6, diameter, gap)


def test_diameter_ratio():
    assert diameter_ratio(1.78, 2.5) == pytest.approx(0.712)
    # degenerate case, no myelin narrowing
    assert diameter_ratio(20.0, 20.0) == 1.0
    with pytest.raises(ConfigurationError):
        diameter_ratio(1.0, 0.0)


def test_axon_class_parameters():
    config = default_config()
    params = build_class_parameters(config.axon, config.membrane)
    assert set(params) == set(CompartmentClass)

    node = params[CompartmentClass.NODE]
    assert node.active
    assert node.Ra == pytest.approx(70.0)
    assert node.cm == 2.0
    assert node.xg == 1e10
    assert node.xc == 0.0
    assert node.diameter == 1.42

    stin = params[CompartmentClass.STIN]
    ratio = 1.78 / 2.5
    assert not stin.active
    assert stin.ratio == pytest.approx(ratio)
    assert stin.diameter == 2.5
    assert stin.Ra == pytest.approx(70.0 / ratio**2)
    assert stin.cm == pytest.approx(2.0 * ratio)
    assert stin.g_pas == pytest.approx(0.0001 * ratio)
    assert stin.e_pas == -70.0
    assert stin.xg == pytest.approx(0.001 / (2 * 38))
    assert stin.xc == pytest.approx(0.1 / (2 * 38))
    assert stin.length == pytest.approx(config.axon.stin_length)

    mysa = params[CompartmentClass.MYSA]
    assert mysa.g_pas == pytest.approx(0.001 * 1.42 / 2.5)
    assert mysa.xraxial == pytest.approx(periaxonal_resistance(0.7e6, 1.42, 0.002))
    flut = params[CompartmentClass.FLUT]
    assert flut.xraxial == pytest.approx(periaxonal_resistance(0.7e6, 1.78, 0.004))


def test_soma_class_parameters_degenerate_ratio():
    config = default_config()
    params = build_class_parameters(config.soma, config.membrane)
    for kind in (CompartmentClass.MYSA, CompartmentClass.FLUT, CompartmentClass.STIN):
        p = params[kind]
        assert p.ratio == 1.0
        assert p.Ra == pytest.approx(70.0)
        assert p.cm == pytest.approx(2.0)
        assert math.isfinite(p.xraxial)


def test_node_channel_densities():
    axon = default_config().axon
    densities = node_channel_densities(axon)
    assert_allclose(densities["pnabar"], 8e-3)
    assert_allclose(densities["pkbar"], 1.2e-3)
    assert_allclose(densities["ppbar"], 0.54e-3)
    assert_allclose(densities["gl"], 0.0303)
    # constant totals: halving the node length doubles the densities
    halved = node_channel_densities(axon, length=axon.node_length / 2)
    for name in densities:
        assert_allclose(halved[name], 2 * densities[name])
    with pytest.raises(ConfigurationError):
        node_channel_densities(axon, diameter=0.0)
