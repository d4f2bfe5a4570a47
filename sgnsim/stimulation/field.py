"""
Extracellular potential of a point current source in an infinite homogeneous
isotropic medium.
"""
import numpy as np

from sgnsim.core.base import ConfigurationError
from sgnsim.utils.logger import get_logger

logger = get_logger(__name__)

__all__ = ["point_source_potential", "PointSourceField"]


def point_source_potential(current, sigma, distance):
    """
    Potential ``I/(4*pi*sigma*r)`` of a point source.

    Parameters
    ----------
    current : float or array
        Source current in mA.
    sigma : float
        Conductivity of the medium in S/mm.
    distance : float or array
        Distance from the source in mm.

    Returns
    -------
    potential : float or array
        The potential in mV.

    Examples
    --------
    >>> round(point_source_potential(-8.75, 1/700, 1.0), 2)
    -487.41
    """
    distance = np.asarray(distance, dtype=float)
    if sigma <= 0:
        raise ConfigurationError(f"Conductivity has to be positive, got {sigma}.")
    if np.any(distance <= 0):
        raise ConfigurationError(
            "The distance to a point source has to be positive."
        )
    potential = current / (4 * np.pi * sigma * distance)
    if potential.ndim == 0:
        return float(potential)
    return potential


class PointSourceField:
    """
    The potential imposed by a point electrode on a fixed set of positions.

    Distances are calculated once; evaluating the field for a given current
    only rescales the potential of a unit current.

    Parameters
    ----------
    positions : array-like, shape (n, 3)
        Positions of the compartments in mm.
    electrode_position : array-like, shape (3,)
        Position of the electrode in mm.
    sigma : float
        Conductivity of the medium in S/mm.
    """

    def __init__(self, positions, electrode_position, sigma):
        positions = np.atleast_2d(np.asarray(positions, dtype=float))
        electrode_position = np.asarray(electrode_position, dtype=float)
        if positions.shape[1] != 3 or electrode_position.shape != (3,):
            raise ConfigurationError("Positions need three coordinates.")
        self.positions = positions
        self.electrode_position = electrode_position
        self.sigma = sigma
        self.distances = np.sqrt(
            np.sum((positions - electrode_position) ** 2, axis=1)
        )
        if np.any(self.distances == 0):
            coincident = np.flatnonzero(self.distances == 0)
            raise ConfigurationError(
                "The electrode is located exactly at compartment(s) "
                f"{coincident.tolist()}."
            )
        self._unit_potential = point_source_potential(1.0, sigma, self.distances)
        logger.debug(
            f"Point source at {electrode_position.tolist()} mm, distances "
            f"{self.distances.min():.4g}-{self.distances.max():.4g} mm"
        )

    def __len__(self):
        return len(self.distances)

    def potentials(self, current, out=None):
        """
        Potentials (mV) at all positions for a source current (mA).
        """
        if out is None:
            return current * self._unit_potential
        np.multiply(self._unit_potential, current, out=out)
        return out

    def at(self, t, stimulus, out=None):
        """Potentials at time ``t`` for a `Stimulus`."""
        return self.potentials(float(stimulus.current(t)), out=out)
