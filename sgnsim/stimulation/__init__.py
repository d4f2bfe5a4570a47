"""
Extracellular stimulation with a point current source.
"""
from .field import *
from .stimulus import *

__all__ = [
    "Waveform",
    "MonophasicPulse",
    "BiphasicPulse",
    "Stimulus",
    "make_waveform",
    "point_source_potential",
    "PointSourceField",
]
