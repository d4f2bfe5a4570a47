"""
Exceptions shared by all parts of the model.
"""

__all__ = ["ConfigurationError", "NumericalError"]


class ConfigurationError(ValueError):
    """
    Raised when a model cannot be built from the given parameters.

    This covers invalid topologies (e.g. a connection referring to a
    compartment that does not exist), non-positive lengths or diameters,
    degenerate parameter combinations that would lead to a division by zero,
    unknown recording sites and a stimulating electrode placed exactly at the
    position of a compartment. It is always raised while the model is built,
    never during a simulation.
    """

    pass


class NumericalError(ArithmeticError):
    """
    Raised when the numerical integration produced non-finite values.

    Parameters
    ----------
    message : str
        Description of the problem.
    t : float, optional
        The simulation time (in ms) at which the problem was detected.
    indices : sequence of int, optional
        The indices of the compartments with non-finite values.
    """

    def __init__(self, message, t=None, indices=None):
        super().__init__(message)
        self.t = t
        self.indices = [] if indices is None else list(indices)

    def __str__(self):
        message = super().__str__()
        if self.t is not None:
            message += f" (t = {self.t:.4f} ms"
            if len(self.indices):
                shown = ", ".join(str(i) for i in self.indices[:10])
                if len(self.indices) > 10:
                    shown += ", ..."
                message += f", compartments {shown}"
            message += ")"
        return message
