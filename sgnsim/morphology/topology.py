"""
Generation of the compartment chain of the spiral ganglion neuron.

The neuron is a single unbranched path of compartments: the dendrite, the
soma and the axon are built with the same chain builder from a declarative
pattern of compartment classes and are then connected in this order. Edges
are derived from the pattern and never written down by hand.
"""
import enum
from collections import Counter
from dataclasses import dataclass

from sgnsim.core.base import ConfigurationError
from sgnsim.utils.logger import get_logger
from sgnsim.utils.stringtools import format_table

logger = get_logger(__name__)

__all__ = [
    "CompartmentClass",
    "Compartment",
    "StridePattern",
    "region_pattern",
    "soma_pattern",
    "Chain",
    "Topology",
    "build_topology",
]


class CompartmentClass(enum.Enum):
    """
    The four compartment types of a myelinated fiber.
    """

    #: Node of Ranvier, the only compartment with active channels
    NODE = "node"
    #: Myelin attachment segment (short paranode)
    MYSA = "mysa"
    #: Fluted segment (long paranode)
    FLUT = "flut"
    #: Stereotyped internode
    STIN = "stin"

    @classmethod
    def from_name(cls, name):
        """
        Look up a class by its name (case insensitive), e.g. ``'node'``.
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown compartment class '{name}', has to be one of "
                f"{[c.value for c in cls]}."
            ) from None

    @property
    def code(self):
        """Integer code of the class, used for flat arrays."""
        return list(CompartmentClass).index(self)


NODE = CompartmentClass.NODE
MYSA = CompartmentClass.MYSA
FLUT = CompartmentClass.FLUT
STIN = CompartmentClass.STIN


@dataclass(frozen=True)
class Compartment:
    """
    A single compartment of the chain.

    Attributes
    ----------
    index : int
        Position of the compartment on the path (global index).
    region : str
        ``'dendrite'``, ``'soma'`` or ``'axon'``.
    kind : `CompartmentClass`
        The compartment class.
    ordinal : int
        Index of the compartment among the compartments of the same class in
        the same region.
    length, diameter : float
        Dimensions in um.
    parameters : `ClassParameters`
        Electrical parameters of the class in this region.
    x : float
        Position of the compartment midpoint along the fiber (um).
    """

    index: int
    region: str
    kind: CompartmentClass
    ordinal: int
    length: float
    diameter: float
    parameters: object
    x: float

    def __str__(self):
        return f"{self.region} {self.kind.value} {self.ordinal}"


@dataclass(frozen=True)
class StridePattern:
    """
    Declarative description of a region: ``node, (unit, node) x (N-1)``.
    """

    unit: tuple = (MYSA, FLUT) + (STIN,) * 6 + (FLUT, MYSA)

    def expand(self, n_nodes):
        if n_nodes < 1:
            raise ConfigurationError(
                f"A region needs at least one node, got {n_nodes}."
            )
        return (NODE,) + (self.unit + (NODE,)) * (n_nodes - 1)


def region_pattern(n_nodes):
    """
    The compartment classes of a general region with ``n_nodes`` nodes.

    Examples
    --------
    >>> [c.value for c in region_pattern(1)]
    ['node']
    >>> len(region_pattern(21))
    221
    """
    return StridePattern().expand(n_nodes)


def soma_pattern(variant):
    """
    The compartment classes of the soma chain.

    Parameters
    ----------
    variant : {'A', 'B'}
        Variant ``'A'`` surrounds a central node with one complete internode
        split in half (``MYSA FLUT STINx3 NODE STINx3 FLUT MYSA``). Variant
        ``'B'`` places the node after one complete internode and continues
        with a half internode (``MYSA FLUT STINx6 FLUT MYSA NODE MYSA FLUT
        STINx6``).
    """
    if variant == "A":
        return (MYSA, FLUT) + (STIN,) * 3 + (NODE,) + (STIN,) * 3 + (FLUT, MYSA)
    elif variant == "B":
        return (
            (MYSA, FLUT)
            + (STIN,) * 6
            + (FLUT, MYSA, NODE, MYSA, FLUT)
            + (STIN,) * 6
        )
    raise ConfigurationError(
        f"Unknown soma variant '{variant}', has to be 'A' or 'B'."
    )


class Chain:
    """
    The compartments of one region, in path order.
    """

    def __init__(self, region, compartments):
        self.region = region
        self.compartments = tuple(compartments)

    def __len__(self):
        return len(self.compartments)

    def __iter__(self):
        return iter(self.compartments)

    def __getitem__(self, item):
        return self.compartments[item]

    def count(self, kind):
        kind = CompartmentClass.from_name(kind)
        return sum(1 for c in self.compartments if c.kind is kind)

    def of_kind(self, kind):
        kind = CompartmentClass.from_name(kind)
        return [c for c in self.compartments if c.kind is kind]

    @property
    def nodes(self):
        return self.of_kind(NODE)

    @property
    def indices(self):
        """Global indices of the chain's compartments."""
        return range(self.compartments[0].index, self.compartments[-1].index + 1)

    @property
    def midpoint_node(self):
        """The middle node of the region (the lower one for an even count)."""
        nodes = self.nodes
        return nodes[(len(nodes) - 1) // 2]

    def __repr__(self):
        return f"<Chain '{self.region}' with {len(self)} compartments>"


class Topology:
    """
    The complete, validated compartment path of a neuron.

    Parameters
    ----------
    chains : sequence of `Chain`
        The region chains in connection order.
    edges : sequence of (int, int)
        Connections ``(parent, child)`` between global compartment indices.
    """

    def __init__(self, chains, edges):
        self.chains = {chain.region: chain for chain in chains}
        self.compartments = tuple(c for chain in chains for c in chain)
        self.edges = tuple(edges)
        # filled in by validate
        self._root = None
        self._children = None

    def __len__(self):
        return len(self.compartments)

    def __getitem__(self, item):
        return self.compartments[item]

    def validate(self):
        """
        Check that the edges describe a simple path over all compartments.

        Raises
        ------
        ConfigurationError
            If an edge refers to a non-existing compartment, a compartment
            has more than one parent or child, the path has no unique start,
            contains a cycle or does not reach all compartments, or a
            compartment has a non-positive size.
        """
        n = len(self.compartments)
        if n == 0:
            raise ConfigurationError("The topology does not contain any compartments.")
        for position, compartment in enumerate(self.compartments):
            if compartment.index != position:
                raise ConfigurationError(
                    f"Compartment '{compartment}' has index "
                    f"{compartment.index}, expected {position}."
                )
            if compartment.length <= 0 or compartment.diameter <= 0:
                raise ConfigurationError(
                    f"Compartment '{compartment}' has a non-positive size "
                    f"(length={compartment.length}, "
                    f"diameter={compartment.diameter})."
                )
        parents = {}
        children = {}
        for parent, child in self.edges:
            for idx in (parent, child):
                if not 0 <= idx < n:
                    raise ConfigurationError(
                        f"Connection ({parent}, {child}) refers to compartment "
                        f"{idx}, but there are only {n} compartments."
                    )
            if child in parents:
                raise ConfigurationError(
                    f"Compartment {child} has more than one parent."
                )
            if parent in children:
                raise ConfigurationError(
                    f"Compartment {parent} has more than one child."
                )
            parents[child] = parent
            children[parent] = child
        roots = [idx for idx in range(n) if idx not in parents]
        if len(roots) != 1:
            raise ConfigurationError(
                f"The path needs exactly one starting compartment, found "
                f"{len(roots)}."
            )
        visited = 0
        current = roots[0]
        while current is not None:
            visited += 1
            if visited > n:
                raise ConfigurationError("The compartment path contains a cycle.")
            current = children.get(current)
        if visited != n:
            raise ConfigurationError(
                f"The path only reaches {visited} of {n} compartments."
            )
        self._children = children
        self._root = roots[0]

    def walk(self):
        """
        Iterate over all compartments, from the distal end of the dendrite
        to the distal end of the axon, following the connections. The
        connections are validated first if that has not happened yet.
        """
        if self._root is None:
            self.validate()
        current = self._root
        while current is not None:
            yield self.compartments[current]
            current = self._children.get(current)

    def parent_indices(self):
        """Index of the parent of every compartment (-1 for the first one)."""
        parent = [-1] * len(self.compartments)
        for p, c in self.edges:
            parent[c] = p
        return parent

    def chain(self, region):
        try:
            return self.chains[region]
        except KeyError:
            raise ConfigurationError(
                f"Unknown region '{region}', has to be one of "
                f"{list(self.chains)}."
            ) from None

    def lookup(self, region, kind, ordinal=None):
        """
        Global index of a compartment.

        Parameters
        ----------
        region : str
            Name of the region.
        kind : str or `CompartmentClass`
            Class of the compartment.
        ordinal : int, optional
            Index among the compartments of this class in the region (negative
            values count from the end). ``None`` selects the middle node.

        Raises
        ------
        ConfigurationError
            If the site does not exist.
        """
        chain = self.chain(region)
        kind = CompartmentClass.from_name(kind)
        if ordinal is None:
            if kind is not NODE:
                raise ConfigurationError(
                    "Only node sites can be selected without an index."
                )
            return chain.midpoint_node.index
        candidates = chain.of_kind(kind)
        if not -len(candidates) <= ordinal < len(candidates):
            raise ConfigurationError(
                f"Region '{region}' has {len(candidates)} '{kind.value}' "
                f"compartments, cannot select index {ordinal}."
            )
        return candidates[ordinal].index

    def midpoint(self, region):
        """Global index of the middle node of a region."""
        return self.chain(region).midpoint_node.index

    def counts(self, region):
        """Number of compartments per class in a region."""
        counter = Counter(c.kind for c in self.chain(region))
        return {kind: counter.get(kind, 0) for kind in CompartmentClass}

    def __str__(self):
        rows = []
        for region, chain in self.chains.items():
            counts = self.counts(region)
            rows.append(
                [region, chain.indices.start, chain.indices.stop - 1]
                + [counts[kind] for kind in CompartmentClass]
            )
        header = ["region", "first", "last"] + [k.value for k in CompartmentClass]
        return format_table(header, rows)

    __repr__ = __str__


def _build_chain(region, pattern, parameters, offset, start_x):
    ordinals = Counter()
    compartments = []
    x = start_x
    for position, kind in enumerate(pattern):
        p = parameters[kind]
        compartments.append(
            Compartment(
                index=offset + position,
                region=region,
                kind=kind,
                ordinal=ordinals[kind],
                length=p.length,
                diameter=p.diameter,
                parameters=p,
                x=x + p.length / 2,
            )
        )
        ordinals[kind] += 1
        x += p.length
    return Chain(region, compartments), x


def build_topology(config):
    """
    Build and validate the compartment path of a neuron.

    Parameters
    ----------
    config : `ModelConfig`
        The model configuration.

    Returns
    -------
    topology : `Topology`
    """
    from sgnsim.morphology.parameters import build_class_parameters

    chains = []
    offset = 0
    x = 0.0
    for region in config.regions:
        if region.name == "soma":
            pattern = soma_pattern(config.soma_variant)
        else:
            pattern = region_pattern(region.n_nodes)
        parameters = build_class_parameters(region, config.membrane)
        chain, x = _build_chain(region.name, pattern, parameters, offset, x)
        chains.append(chain)
        offset += len(pattern)
    edges = [(i, i + 1) for i in range(offset - 1)]
    topology = Topology(chains, edges)
    topology.validate()
    logger.debug(
        f"Built topology with {len(topology)} compartments "
        f"(soma variant {config.soma_variant}), total length {x:.1f} um"
    )
    return topology
