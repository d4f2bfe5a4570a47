"""
Derivation of the per-class electrical parameters of the double cable.

All functions in this module are pure: they take the immutable configuration
objects from `sgnsim.config` and return new values, without side effects.
"""
import math
from dataclasses import dataclass

from sgnsim.core.base import ConfigurationError
from sgnsim.morphology.topology import CompartmentClass
from sgnsim.utils.logger import get_logger

logger = get_logger(__name__)

__all__ = [
    "ClassParameters",
    "periaxonal_resistance",
    "diameter_ratio",
    "build_class_parameters",
    "node_channel_densities",
]


@dataclass(frozen=True)
class ClassParameters:
    """
    Electrical parameters shared by all compartments of one class within one
    region.

    Attributes
    ----------
    length : float
        Compartment length (um).
    diameter : float
        Diameter used for the membrane area and the axial resistance (um).
    ratio : float
        Ratio of the axolemma diameter to the fiber diameter (1 for nodes).
    Ra : float
        Axial resistivity (ohm*cm).
    cm : float
        Axolemma specific capacitance (uF/cm**2).
    g_pas : float
        Passive conductance (S/cm**2), 0 for active nodes.
    e_pas : float
        Passive reversal potential (mV).
    xraxial : float
        Periaxonal axial resistance (MOhm/cm).
    xg : float
        Conductance of the myelin sheath (S/cm**2).
    xc : float
        Capacitance of the myelin sheath (uF/cm**2).
    active : bool
        Whether the compartment carries voltage-gated channels.
    """

    length: float
    diameter: float
    ratio: float
    Ra: float
    cm: float
    g_pas: float
    e_pas: float
    xraxial: float
    xg: float
    xc: float
    active: bool = False


def periaxonal_resistance(rhoa, diameter, gap):
    """
    Axial resistance per unit length of the periaxonal space.

    The periaxonal space is the annulus of width ``gap`` around an axolemma
    of the given diameter, filled with axoplasm-like fluid of resistivity
    ``rhoa``.

    Parameters
    ----------
    rhoa : float
        Resistivity in ohm*um.
    diameter : float
        Inner diameter of the annulus in um.
    gap : float
        Width of the periaxonal space in um.

    Returns
    -------
    xraxial : float
        The resistance in MOhm/cm.

    Examples
    --------
    >>> round(periaxonal_resistance(0.7e6, 1.42, 0.002), 1)
    783463.2
    """
    if diameter <= 0:
        raise ConfigurationError(f"Diameter has to be positive, got {diameter}.")
    if gap <= 0:
        raise ConfigurationError(
            f"Periaxonal space has to be positive, got {gap}."
        )
    r = diameter / 2
    return (rhoa * 0.01) / (math.pi * ((r + gap) ** 2 - r**2))


def diameter_ratio(inner, fiber):
    """
    Ratio of an inner (axolemma) diameter to the fiber diameter.

    A ratio of 1 is a valid, degenerate case (unmyelinated-like geometry,
    e.g. at the soma).
    """
    if fiber <= 0:
        raise ConfigurationError(
            f"Fiber diameter has to be positive, got {fiber}."
        )
    if inner <= 0:
        raise ConfigurationError(f"Diameter has to be positive, got {inner}.")
    return inner / fiber


def node_channel_densities(region, length=None, diameter=None):
    """
    Convert the per-node channel totals of a region into densities.

    Parameters
    ----------
    region : `RegionParameters`
        The region whose node totals should be used.
    length, diameter : float, optional
        Node dimensions in um, default to the ones of the region.

    Returns
    -------
    densities : dict
        ``pnabar``, ``pkbar``, ``ppbar`` (cm/s) and ``gl`` (S/cm**2).
    """
    if length is None:
        length = region.node_length
    if diameter is None:
        diameter = region.node_diameter
    if length <= 0 or diameter <= 0:
        raise ConfigurationError(
            f"Node of region '{region.name}' has a non-positive size "
            f"(length={length}, diameter={diameter})."
        )
    area = math.pi * diameter * length * 1e-8  # cm**2
    return {
        "pnabar": region.pna_total / area,
        "pkbar": region.pk_total / area,
        "ppbar": region.pp_total / area,
        "gl": region.gl_total / area,
    }


def _sheath(membrane, lamellae):
    # Two membranes per lamella, all in series
    return (
        membrane.myelin_gm / (lamellae * 2),
        membrane.myelin_cm / (lamellae * 2),
    )


def build_class_parameters(region, membrane):
    """
    Build the electrical parameters of every compartment class of a region.

    Parameters
    ----------
    region : `RegionParameters`
        Geometry and myelination of the region.
    membrane : `MembraneParameters`
        Electrical constants.

    Returns
    -------
    parameters : dict
        Mapping from `CompartmentClass` to `ClassParameters`.
    """
    rhoa = membrane.rhoa
    xg, xc = _sheath(membrane, region.lamellae)
    parameters = {
        CompartmentClass.NODE: ClassParameters(
            length=region.node_length,
            diameter=region.node_diameter,
            ratio=1.0,
            Ra=rhoa / 10000,
            cm=membrane.node_cm,
            g_pas=0.0,
            e_pas=membrane.v_rest,
            xraxial=periaxonal_resistance(
                rhoa, region.node_diameter, region.space_mysa
            ),
            xg=membrane.node_xg,
            xc=0.0,
            active=True,
        )
    }
    internodal = [
        (
            CompartmentClass.MYSA,
            region.mysa_length,
            region.mysa_diameter,
            region.space_mysa,
            membrane.g_mysa,
        ),
        (
            CompartmentClass.FLUT,
            region.flut_length,
            region.flut_diameter,
            region.space_flut,
            membrane.g_flut,
        ),
        (
            CompartmentClass.STIN,
            region.stin_length,
            region.stin_diameter,
            region.space_stin,
            membrane.g_stin,
        ),
    ]
    for kind, length, diameter, gap, g_base in internodal:
        ratio = diameter_ratio(diameter, region.fiber_diameter)
        parameters[kind] = ClassParameters(
            length=length,
            diameter=region.fiber_diameter,
            ratio=ratio,
            Ra=rhoa * (1 / ratio) ** 2 / 10000,
            cm=membrane.axolemma_cm * ratio,
            g_pas=g_base * ratio,
            e_pas=membrane.v_rest,
            xraxial=periaxonal_resistance(rhoa, diameter, gap),
            xg=xg,
            xc=xc,
        )
    logger.diagnostic(
        f"Class parameters for region '{region.name}': "
        + ", ".join(
            f"{kind.name}(Ra={p.Ra:.4g}, cm={p.cm:.4g}, xraxial={p.xraxial:.4g})"
            for kind, p in parameters.items()
        )
    )
    return parameters
