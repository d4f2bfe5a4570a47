"""
Immutable model configuration.

A `ModelConfig` is built once (usually with `default_config`) and then passed
explicitly to the parts of the model that need it: the parameter builder, the
topology generator, the membrane setup and the simulation driver. All values
are plain numbers in the units listed below; nothing in here is modified
during a simulation. Use `ModelConfig.replace`, `ModelConfig.with_stimulus` or
`ModelConfig.with_simulation` to derive modified configurations.

Units: lengths and diameters in um, time in ms, potentials in mV, specific
capacitances in uF/cm**2, specific conductances in S/cm**2, permeabilities in
cm/s (per-node totals in cm**3/s, leak totals in S), stimulus currents in mA,
electrode distances in mm, medium conductivity in S/mm.
"""
import dataclasses
import math
from dataclasses import dataclass, field

from sgnsim.core.base import ConfigurationError

__all__ = [
    "RegionParameters",
    "MembraneParameters",
    "StimulusParameters",
    "SimulationParameters",
    "ModelConfig",
    "fh_channel_totals",
    "default_config",
    "REGIONS",
    "SOMA_VARIANTS",
]

#: The three regions of the neuron, in the order in which they are connected
REGIONS = ("dendrite", "soma", "axon")

#: The supported topologies of the soma chain
SOMA_VARIANTS = ("A", "B")

# Frankenhaeuser-Huxley densities, used to derive per-node totals
FH_PNABAR = 8e-3  # cm/s
FH_PKBAR = 1.2e-3  # cm/s
FH_PPBAR = 0.54e-3  # cm/s
FH_GL = 0.0303  # S/cm**2


def _check_positive(owner, **values):
    for name, value in values.items():
        if not value > 0:
            raise ConfigurationError(
                f"{owner}: '{name}' has to be strictly positive, got {value!r}."
            )


def fh_channel_totals(node_diameter, node_length):
    """
    Per-node channel totals that reproduce the Frankenhaeuser-Huxley
    densities on a node of the given size.

    Parameters
    ----------
    node_diameter : float
        Node diameter in um.
    node_length : float
        Node length in um.

    Returns
    -------
    totals : dict
        Total sodium, potassium and nonspecific permeabilities (cm**3/s) and
        total leak conductance (S), with keys ``pna_total``, ``pk_total``,
        ``pp_total`` and ``gl_total``.
    """
    area = math.pi * node_diameter * node_length * 1e-8  # um**2 -> cm**2
    return {
        "pna_total": FH_PNABAR * area,
        "pk_total": FH_PKBAR * area,
        "pp_total": FH_PPBAR * area,
        "gl_total": FH_GL * area,
    }


@dataclass(frozen=True)
class RegionParameters:
    """
    Geometry, myelination and node channel totals of one region (dendrite,
    soma or axon).

    The compartments of a region follow the myelinated fiber pattern: a node,
    then per internode two short paranodal compartments (MYSA), two long
    paranodal compartments (FLUT) and six internodal compartments (STIN). The
    length of a single STIN compartment is derived from the node-to-node
    distance ``internode_length``.
    """

    name: str
    n_nodes: int
    fiber_diameter: float
    node_diameter: float
    mysa_diameter: float
    flut_diameter: float
    stin_diameter: float
    node_length: float
    mysa_length: float
    flut_length: float
    internode_length: float
    lamellae: int
    pna_total: float
    pk_total: float
    pp_total: float
    gl_total: float
    space_mysa: float = 0.002
    space_flut: float = 0.004
    space_stin: float = 0.004

    def __post_init__(self):
        if self.name not in REGIONS:
            raise ConfigurationError(
                f"Unknown region '{self.name}', has to be one of {REGIONS}."
            )
        if not isinstance(self.n_nodes, int) or self.n_nodes < 1:
            raise ConfigurationError(
                f"Region '{self.name}' needs at least one node, got "
                f"n_nodes={self.n_nodes!r}."
            )
        _check_positive(
            f"Region '{self.name}'",
            fiber_diameter=self.fiber_diameter,
            node_diameter=self.node_diameter,
            mysa_diameter=self.mysa_diameter,
            flut_diameter=self.flut_diameter,
            stin_diameter=self.stin_diameter,
            node_length=self.node_length,
            mysa_length=self.mysa_length,
            flut_length=self.flut_length,
            internode_length=self.internode_length,
            lamellae=self.lamellae,
            space_mysa=self.space_mysa,
            space_flut=self.space_flut,
            space_stin=self.space_stin,
            pna_total=self.pna_total,
            pk_total=self.pk_total,
            pp_total=self.pp_total,
            gl_total=self.gl_total,
        )
        if self.stin_length <= 0:
            raise ConfigurationError(
                f"Region '{self.name}': the internode length "
                f"({self.internode_length} um) is too short for the node and "
                "paranodal compartments."
            )

    @property
    def stin_length(self):
        """Length of a single internodal (STIN) compartment in um."""
        return (
            self.internode_length
            - self.node_length
            - 2 * self.mysa_length
            - 2 * self.flut_length
        ) / 6

    def replace(self, **changes):
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class MembraneParameters:
    """
    Electrical constants shared by all regions.
    """

    v_rest: float = -70.0  # mV
    rhoa: float = 0.7e6  # ohm*um
    node_cm: float = 2.0  # uF/cm**2
    axolemma_cm: float = 2.0  # uF/cm**2
    myelin_cm: float = 0.1  # uF/cm**2, per lamella membrane
    myelin_gm: float = 0.001  # S/cm**2, per lamella membrane
    g_mysa: float = 0.001  # S/cm**2
    g_flut: float = 0.0001  # S/cm**2
    g_stin: float = 0.0001  # S/cm**2
    node_xg: float = 1e10  # S/cm**2, no sheath at nodes
    nai: float = 13.74  # mM
    nao: float = 114.5  # mM
    ki: float = 120.0  # mM
    ko: float = 2.5  # mM
    celsius: float = 20.0
    balance_leak: bool = True

    def __post_init__(self):
        _check_positive(
            "Membrane",
            rhoa=self.rhoa,
            node_cm=self.node_cm,
            axolemma_cm=self.axolemma_cm,
            myelin_cm=self.myelin_cm,
            myelin_gm=self.myelin_gm,
            g_mysa=self.g_mysa,
            g_flut=self.g_flut,
            g_stin=self.g_stin,
            node_xg=self.node_xg,
            nai=self.nai,
            nao=self.nao,
            ki=self.ki,
            ko=self.ko,
        )
        if self.celsius <= -273.15:
            raise ConfigurationError(f"Invalid temperature {self.celsius} degC.")


@dataclass(frozen=True)
class StimulusParameters:
    """
    The extracellular point-current stimulus.

    The electrode sits ``electrode_distance`` mm perpendicular to the fiber,
    above node ``stimulated_node`` of region ``stimulated_region``. Negative
    amplitudes are cathodic.
    """

    amplitude: float = -8.75  # mA
    pulse_width: float = 0.05  # ms
    delay: float = 1.0  # ms
    electrode_distance: float = 0.5  # mm
    shape: str = "monophasic"
    interphase_gap: float = 0.0  # ms
    sigma: float = 1 / 700  # S/mm
    stimulated_region: str = "axon"
    stimulated_node: int = 0

    def __post_init__(self):
        _check_positive(
            "Stimulus",
            pulse_width=self.pulse_width,
            sigma=self.sigma,
            electrode_distance=self.electrode_distance,
        )
        if self.delay < 0 or self.interphase_gap < 0:
            raise ConfigurationError(
                "Stimulus delay and interphase gap cannot be negative."
            )
        if self.shape not in ("monophasic", "biphasic"):
            raise ConfigurationError(
                f"Unknown pulse shape '{self.shape}', use 'monophasic' or "
                "'biphasic'."
            )
        if self.stimulated_region not in REGIONS:
            raise ConfigurationError(
                f"Unknown stimulated region '{self.stimulated_region}'."
            )


@dataclass(frozen=True)
class SimulationParameters:
    """
    Time window, step size and recording sites.

    Recording sites are ``(region, kind, index)`` triples, where ``kind`` is
    one of ``'node'``, ``'mysa'``, ``'flut'`` or ``'stin'`` and ``index``
    counts compartments of that kind within the region. An index of ``None``
    selects the middle node of the region.
    """

    tstop: float = 10.0  # ms
    dt: float = 0.001  # ms
    recording_sites: tuple = (
        ("dendrite", "node", None),
        ("soma", "node", 0),
        ("axon", "node", 0),
        ("axon", "node", 10),
        ("axon", "node", 20),
    )
    spike_threshold: float = 0.0  # mV

    def __post_init__(self):
        _check_positive("Simulation", tstop=self.tstop, dt=self.dt)
        if len(self.recording_sites) == 0:
            raise ConfigurationError("At least one recording site is needed.")
        n_steps = self.tstop / self.dt
        if abs(n_steps - round(n_steps)) > 1e-6:
            raise ConfigurationError(
                f"tstop ({self.tstop} ms) is not a multiple of dt ({self.dt} ms)."
            )

    @property
    def n_steps(self):
        """Number of integration steps of a run."""
        return int(round(self.tstop / self.dt))


def _default_dendrite():
    return RegionParameters(
        name="dendrite",
        n_nodes=5,
        fiber_diameter=1.6,
        node_diameter=1.0,
        mysa_diameter=1.0,
        flut_diameter=1.2,
        stin_diameter=1.2,
        node_length=1.0,
        mysa_length=3.0,
        flut_length=3.0,
        internode_length=120.0,
        lamellae=25,
        **fh_channel_totals(1.0, 1.0),
    )


def _default_soma():
    # A short segment of the fiber's caliber. The sheath is only a few
    # lamellae thick and not narrowed at the paranodes, so all inner
    # diameters equal the fiber diameter. Its capacitance has to stay small
    # next to that of axon node 0, otherwise node 0 cannot fire.
    return RegionParameters(
        name="soma",
        n_nodes=1,
        fiber_diameter=2.5,
        node_diameter=2.5,
        mysa_diameter=2.5,
        flut_diameter=2.5,
        stin_diameter=2.5,
        node_length=1.0,
        mysa_length=1.0,
        flut_length=1.5,
        internode_length=25.0,
        lamellae=4,
        **fh_channel_totals(2.5, 1.0),
    )


def _default_axon():
    return RegionParameters(
        name="axon",
        n_nodes=21,
        fiber_diameter=2.5,
        node_diameter=1.42,
        mysa_diameter=1.42,
        flut_diameter=1.78,
        stin_diameter=1.78,
        node_length=1.0,
        mysa_length=3.0,
        flut_length=5.3,
        internode_length=175.0,
        lamellae=38,
        **fh_channel_totals(1.42, 1.0),
    )


@dataclass(frozen=True)
class ModelConfig:
    """
    The complete, immutable description of a model and its stimulation.
    """

    dendrite: RegionParameters = field(default_factory=_default_dendrite)
    soma: RegionParameters = field(default_factory=_default_soma)
    axon: RegionParameters = field(default_factory=_default_axon)
    soma_variant: str = "A"
    membrane: MembraneParameters = field(default_factory=MembraneParameters)
    stimulus: StimulusParameters = field(default_factory=StimulusParameters)
    simulation: SimulationParameters = field(default_factory=SimulationParameters)

    def __post_init__(self):
        if self.soma_variant not in SOMA_VARIANTS:
            raise ConfigurationError(
                f"Unknown soma variant '{self.soma_variant}', has to be one "
                f"of {SOMA_VARIANTS}."
            )
        for name in REGIONS:
            region = getattr(self, name)
            if region.name != name:
                raise ConfigurationError(
                    f"Region parameters for '{region.name}' were given as "
                    f"'{name}'."
                )
        if self.soma.n_nodes != 1:
            raise ConfigurationError(
                "The soma chain has exactly one node, got "
                f"n_nodes={self.soma.n_nodes}."
            )

    def region(self, name):
        """Return the `RegionParameters` of region ``name``."""
        if name not in REGIONS:
            raise ConfigurationError(
                f"Unknown region '{name}', has to be one of {REGIONS}."
            )
        return getattr(self, name)

    @property
    def regions(self):
        """The region parameters in connection order."""
        return tuple(getattr(self, name) for name in REGIONS)

    def replace(self, **changes):
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def with_stimulus(self, **changes):
        """Return a copy with the given stimulus parameters replaced."""
        return self.replace(stimulus=dataclasses.replace(self.stimulus, **changes))

    def with_simulation(self, **changes):
        """Return a copy with the given simulation parameters replaced."""
        return self.replace(
            simulation=dataclasses.replace(self.simulation, **changes)
        )

    def with_membrane(self, **changes):
        """Return a copy with the given membrane parameters replaced."""
        return self.replace(membrane=dataclasses.replace(self.membrane, **changes))


def default_config(soma_variant="A"):
    """
    The reference model: a dendrite with 5 nodes, a soma with a single node
    and an axon with 21 nodes, stimulated with a -8.75 mA, 50 us cathodic
    pulse from an electrode 0.5 mm above the first axon node.

    Parameters
    ----------
    soma_variant : {'A', 'B'}, optional
        The topology of the soma chain, see `sgnsim.morphology.soma_pattern`.
    """
    return ModelConfig(soma_variant=soma_variant)
