"""
The spatially extended neuron and its numerical integration.
"""
from .cable import *
from .spatialneuron import *

__all__ = ["FlatMorphology", "SpiralGanglionNeuron", "CableSolver"]
