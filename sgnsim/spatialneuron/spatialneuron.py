"""
Compartmental spiral ganglion neuron with a double cable structure.

The neuron stores, for every compartment, the membrane potential ``v``, the
potential of the periaxonal space ``vext`` (between axolemma and myelin
sheath) and the imposed extracellular potential ``e_extracellular``. The
intracellular potential is ``v + vext``.
"""
import numpy as np

from sgnsim.core.base import ConfigurationError
from sgnsim.core.preferences import prefs
from sgnsim.membrane.channels import FrankenhaeuserHuxley, PassiveLeak
from sgnsim.morphology.parameters import node_channel_densities
from sgnsim.morphology.topology import CompartmentClass, build_topology
from sgnsim.utils.logger import get_logger

logger = get_logger(__name__)

__all__ = ["FlatMorphology", "SpiralGanglionNeuron"]


class FlatMorphology:
    """
    Container object to store the flattened representation of a topology.
    Note that all values are stored as plain numpy arrays, lengths and
    diameters in um, areas in cm**2.
    """

    def __init__(self, topology):
        self.n = n = len(topology)
        self.regions = list(topology.chains)
        self.length = np.zeros(n)
        self.diameter = np.zeros(n)
        self.x = np.zeros(n)
        self.Ra = np.zeros(n)
        self.cm = np.zeros(n)
        self.g_pas = np.zeros(n)
        self.e_pas = np.zeros(n)
        self.xraxial = np.zeros(n)
        self.xg = np.zeros(n)
        self.xc = np.zeros(n)
        self.kind = np.zeros(n, dtype=np.int32)
        self.region = np.zeros(n, dtype=np.int32)
        self.node = np.zeros(n, dtype=bool)
        for c in topology.compartments:
            p = c.parameters
            i = c.index
            self.length[i] = c.length
            self.diameter[i] = c.diameter
            self.x[i] = c.x
            self.Ra[i] = p.Ra
            self.cm[i] = p.cm
            self.g_pas[i] = p.g_pas
            self.e_pas[i] = p.e_pas
            self.xraxial[i] = p.xraxial
            self.xg[i] = p.xg
            self.xc[i] = p.xc
            self.kind[i] = c.kind.code
            self.region[i] = self.regions.index(c.region)
            self.node[i] = c.kind is CompartmentClass.NODE
        # Index of the parent for each compartment (-1 for the root)
        self.parent = np.array(topology.parent_indices(), dtype=np.int32)
        self.area = np.pi * self.diameter * self.length * 1e-8

    @property
    def r_half(self):
        """Axial resistance (MOhm) of half of each compartment."""
        radius = self.diameter / 2
        return 0.01 * self.Ra * (self.length / 2) / (np.pi * radius**2)

    @property
    def rx_half(self):
        """Periaxonal axial resistance (MOhm) of half of each compartment."""
        return self.xraxial * (self.length * 1e-4) / 2

    def positions(self):
        """Compartment midpoints as (x, y, z) coordinates in mm."""
        pos = np.zeros((self.n, 3))
        pos[:, 0] = self.x * 1e-3
        return pos


class SpiralGanglionNeuron:
    """
    A spiral ganglion neuron built from a `ModelConfig`.

    Frankenhaeuser-Huxley channels are installed on all nodes (including the
    somatic node), a passive leak on all other compartments.

    Parameters
    ----------
    config : `ModelConfig`
        The model configuration.

    Attributes
    ----------
    topology : `Topology`
    morphology : `FlatMorphology`
    v, vext, e_extracellular : `numpy.ndarray`
        Membrane potential, periaxonal potential and imposed extracellular
        potential of each compartment (mV).
    C, Cx : `numpy.ndarray`
        Membrane and myelin capacitance (nF).
    Gx : `numpy.ndarray`
        Myelin conductance (uS).
    Ga, Gxa : `numpy.ndarray`
        Axial conductances (uS) between each compartment and its parent
        (intracellular and periaxonal), 0 for the root.
    """

    def __init__(self, config):
        self.config = config
        self.topology = build_topology(config)
        self.morphology = morpho = FlatMorphology(self.topology)
        n = morpho.n
        dtype = prefs.core.default_float_dtype
        self.v = np.full(n, config.membrane.v_rest, dtype=dtype)
        self.vext = np.zeros(n, dtype=dtype)
        self.e_extracellular = np.zeros(n, dtype=dtype)

        area = morpho.area
        self.C = morpho.cm * area * 1e3
        self.Cx = morpho.xc * area * 1e3
        self.Gx = morpho.xg * area * 1e6
        self.Ga = np.zeros(n)
        self.Gxa = np.zeros(n)
        children = np.flatnonzero(morpho.parent >= 0)
        parents = morpho.parent[children]
        r_half = morpho.r_half
        rx_half = morpho.rx_half
        self.Ga[children] = 1 / (r_half[children] + r_half[parents])
        self.Gxa[children] = 1 / (rx_half[children] + rx_half[parents])

        self.mechanisms = [self._install_nodes(), self._install_passive()]
        self.reinit()
        logger.debug(
            f"Created neuron with {n} compartments ({int(morpho.node.sum())} "
            f"nodes), total membrane area {area.sum() * 1e8:.1f} um^2"
        )

    def _install_nodes(self):
        membrane = self.config.membrane
        indices = np.flatnonzero(self.morphology.node)
        densities = {"pnabar": [], "ppbar": [], "pkbar": [], "gl": []}
        for idx in indices:
            compartment = self.topology[idx]
            region = self.config.region(compartment.region)
            node = node_channel_densities(
                region, length=compartment.length, diameter=compartment.diameter
            )
            for name in densities:
                densities[name].append(node[name])
        return FrankenhaeuserHuxley(
            indices,
            el=membrane.v_rest,
            nai=membrane.nai,
            nao=membrane.nao,
            ki=membrane.ki,
            ko=membrane.ko,
            celsius=membrane.celsius,
            **{name: np.array(values) for name, values in densities.items()},
        )

    def _install_passive(self):
        indices = np.flatnonzero(~self.morphology.node)
        return PassiveLeak(
            indices,
            g_pas=self.morphology.g_pas[indices],
            e_pas=self.morphology.e_pas[indices],
        )

    @property
    def nodes(self):
        """The Frankenhaeuser-Huxley mechanism of the nodes."""
        return self.mechanisms[0]

    def __len__(self):
        return self.morphology.n

    @property
    def vi(self):
        """Intracellular potential (mV)."""
        return self.v + self.vext

    def reinit(self):
        """
        Restore the resting state: ``v = v_rest``, no periaxonal or imposed
        extracellular potential and gating variables at steady state.
        """
        v_rest = self.config.membrane.v_rest
        self.v[:] = v_rest
        self.vext[:] = 0
        self.e_extracellular[:] = 0
        for mechanism in self.mechanisms:
            mechanism.initialize(self.v[mechanism.indices])
        if self.config.membrane.balance_leak:
            self.nodes.balance_leak(self.v[self.nodes.indices])

    def linearize(self):
        """
        Membrane conductance (uS) and remaining current (nA) of every
        compartment at the current membrane potential, so that the total
        transmembrane current is ``g*v + I0``.
        """
        n = len(self)
        g = np.zeros(n)
        I0 = np.zeros(n)
        area = self.morphology.area
        for mechanism in self.mechanisms:
            idx = mechanism.indices
            gtot, i0 = mechanism.linearize(self.v[idx])
            g[idx] = gtot * area[idx] * 1e6
            I0[idx] = i0 * area[idx] * 1e6
        return g, I0

    def membrane_current(self):
        """Net ionic transmembrane current of every compartment (nA)."""
        current = np.zeros(len(self))
        area = self.morphology.area
        for mechanism in self.mechanisms:
            idx = mechanism.indices
            current[idx] = mechanism.current(self.v[idx]) * area[idx] * 1e6
        return current

    def update_gates(self, dt):
        for mechanism in self.mechanisms:
            mechanism.update(self.v[mechanism.indices], dt)

    def index(self, region, kind="node", ordinal=None):
        """
        Global index of a compartment, see `Topology.lookup`.
        """
        return self.topology.lookup(region, kind, ordinal)

    def indices(self, sites):
        """Global indices for a sequence of ``(region, kind, ordinal)`` sites."""
        result = []
        for site in sites:
            if len(site) != 3:
                raise ConfigurationError(
                    f"Recording site {site!r} is not a (region, kind, index) triple."
                )
            result.append(self.index(*site))
        return result

    def positions(self):
        """Compartment midpoints in mm."""
        return self.morphology.positions()

    def __repr__(self):
        return (
            f"<SpiralGanglionNeuron with {len(self)} compartments, soma "
            f"variant {self.config.soma_variant}>"
        )
