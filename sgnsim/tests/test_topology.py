import numpy as np
import pytest

from sgnsim.config import default_config
from sgnsim.core.base import ConfigurationError
from sgnsim.morphology import (
    Chain,
    CompartmentClass,
    Topology,
    build_topology,
    region_pattern,
    soma_pattern,
)

NODE, MYSA, FLUT, STIN = (
    CompartmentClass.NODE,
    CompartmentClass.MYSA,
    CompartmentClass.FLUT,
    CompartmentClass.STIN,
)


def _counts(pattern):
    return tuple(sum(1 for c in pattern if c is kind) for kind in (NODE, MYSA, FLUT, STIN))


def test_region_pattern():
    assert region_pattern(1) == (NODE,)
    pattern = region_pattern(2)
    assert pattern == (NODE, MYSA, FLUT) + (STIN,) * 6 + (FLUT, MYSA, NODE)
    for n in (1, 2, 5, 21):
        assert _counts(region_pattern(n)) == (n, 2 * (n - 1), 2 * (n - 1), 6 * (n - 1))
    with pytest.raises(ConfigurationError):
        region_pattern(0)


def test_soma_pattern():
    a = soma_pattern("A")
    assert _counts(a) == (1, 2, 2, 6)
    assert a[len(a) // 2] is NODE
    b = soma_pattern("B")
    assert _counts(b) == (1, 3, 3, 12)
    assert b.index(NODE) != len(b) // 2
    with pytest.raises(ConfigurationError):
        soma_pattern("C")


@pytest.mark.parametrize("variant, soma_counts", [("A", (1, 2, 2, 6)), ("B", (1, 3, 3, 12))])
def test_default_counts(variant, soma_counts):
    topology = build_topology(default_config(variant))
    counts = {
        region: tuple(topology.counts(region)[kind] for kind in (NODE, MYSA, FLUT, STIN))
        for region in ("dendrite", "soma", "axon")
    }
    assert counts["axon"] == (21, 40, 40, 120)
    assert counts["dendrite"] == (5, 8, 8, 24)
    assert counts["soma"] == soma_counts
    assert len(topology) == 221 + 45 + sum(soma_counts)


def test_walk_visits_every_compartment_once():
    topology = build_topology(default_config())
    visited = [c.index for c in topology.walk()]
    assert visited == list(range(len(topology)))
    first = topology[visited[0]]
    last = topology[visited[-1]]
    assert (first.region, first.kind, first.ordinal) == ("dendrite", NODE, 0)
    assert (last.region, last.kind, last.ordinal) == ("axon", NODE, 20)


def test_regions_are_connected_in_order():
    topology = build_topology(default_config())
    dendrite = topology.chain("dendrite")
    soma = topology.chain("soma")
    axon = topology.chain("axon")
    assert (dendrite.indices.stop - 1, soma.indices.start) in topology.edges
    assert (soma.indices.stop - 1, axon.indices.start) in topology.edges
    assert topology[axon.indices.start].kind is NODE
    assert all(child == parent + 1 for parent, child in topology.edges)


def test_positions_increase_along_the_path():
    topology = build_topology(default_config())
    x = np.array([c.x for c in topology.walk()])
    assert np.all(np.diff(x) > 0)
    first = topology[0]
    assert x[0] == pytest.approx(first.length / 2)
    # neighbouring axon nodes are one internode apart
    n0 = topology[topology.lookup("axon", "node", 0)]
    n1 = topology[topology.lookup("axon", "node", 1)]
    assert n1.x - n0.x == pytest.approx(175.0)


def test_lookup():
    topology = build_topology(default_config())
    axon = topology.chain("axon")
    assert topology.lookup("axon", "node", 0) == axon.indices.start
    assert topology.lookup("axon", NODE, -1) == axon.indices.stop - 1
    assert topology.lookup("axon", "stin", 0) == axon.indices.start + 3
    dendrite_mid = topology.lookup("dendrite", "node", None)
    assert dendrite_mid == topology.midpoint("dendrite")
    assert topology[dendrite_mid].ordinal == 2
    for site in [("axon", "node", 21), ("spine", "node", 0), ("axon", "axon", 0),
                 ("soma", "mysa", None)]:
        with pytest.raises(ConfigurationError):
            topology.lookup(*site)


def _small_topology():
    return build_topology(
        default_config().replace(
            dendrite=default_config().dendrite.replace(n_nodes=1),
            axon=default_config().axon.replace(n_nodes=1),
        )
    )


def test_validate_rejects_invalid_edges():
    reference = _small_topology()
    chains = list(reference.chains.values())
    n = len(reference)
    good = list(reference.edges)

    Topology(chains, good).validate()

    with pytest.raises(ConfigurationError):
        Topology(chains, good + [(n - 1, n)]).validate()  # out of range
    with pytest.raises(ConfigurationError):
        Topology(chains, good[:-1] + [(0, n - 1)]).validate()  # two parents
    with pytest.raises(ConfigurationError):
        Topology(chains, good[:3] + good[4:]).validate()  # two roots
    with pytest.raises(ConfigurationError):
        Topology(chains, good[1:] + [(n - 1, 1)]).validate()  # cycle


def test_walk_without_validation():
    reference = _small_topology()
    chains = list(reference.chains.values())
    topology = Topology(chains, reference.edges)
    assert [c.index for c in topology.walk()] == list(range(len(reference)))
    # invalid connections are reported when walking
    broken = Topology(chains, reference.edges[1:] + ((len(reference) - 1, 1),))
    with pytest.raises(ConfigurationError):
        list(broken.walk())


def test_chain():
    topology = build_topology(default_config())
    soma = topology.chain("soma")
    assert isinstance(soma, Chain)
    assert len(soma) == 11
    assert soma.count("node") == 1
    assert soma.midpoint_node is soma.nodes[0]
    assert soma.midpoint_node.index == soma.indices.start + 5
    assert "axon" in str(topology)
