"""
Geometry, electrical parameters and compartment topology of the neuron.
"""
from .topology import *
from .parameters import *

__all__ = [
    "CompartmentClass",
    "Compartment",
    "StridePattern",
    "region_pattern",
    "soma_pattern",
    "Chain",
    "Topology",
    "build_topology",
    "ClassParameters",
    "periaxonal_resistance",
    "diameter_ratio",
    "build_class_parameters",
    "node_channel_densities",
]
