"""
sgnsim: double-cable model of a cochlear spiral ganglion neuron
"""


def _check_dependencies():
    """Check basic dependencies"""
    import sys

    missing = []
    try:
        import numpy
    except ImportError as ex:
        sys.stderr.write(f"Importing numpy failed: '{ex}'\n")
        missing.append("numpy")
    try:
        import scipy
    except ImportError as ex:
        sys.stderr.write(f"Importing scipy failed: '{ex}'\n")
        missing.append("scipy")
    try:
        import sympy
    except ImportError as ex:
        sys.stderr.write(f"Importing sympy failed: '{ex}'\n")
        missing.append("sympy")

    if len(missing):
        raise ImportError(
            f"Some required dependencies are missing:\n{', '.join(missing)}"
        )


_check_dependencies()

__version__ = "0.1.0"
__docformat__ = "restructuredtext en"

from sgnsim.core.base import ConfigurationError, NumericalError
from sgnsim.core.preferences import PreferenceError, SimPreference, prefs
import sgnsim.core.core_preferences
from sgnsim.utils.logger import SimLogger, catch_logs, get_logger

from sgnsim.config import (
    MembraneParameters,
    ModelConfig,
    RegionParameters,
    SimulationParameters,
    StimulusParameters,
    default_config,
)
from sgnsim.morphology import (
    CompartmentClass,
    Topology,
    build_class_parameters,
    build_topology,
)
from sgnsim.membrane import FrankenhaeuserHuxley, PassiveLeak
from sgnsim.stimulation import (
    BiphasicPulse,
    MonophasicPulse,
    PointSourceField,
    Stimulus,
    point_source_potential,
)
from sgnsim.spatialneuron import CableSolver, FlatMorphology, SpiralGanglionNeuron
from sgnsim.monitors import StateMonitor
from sgnsim.simulation import RunResult, Simulation
from sgnsim.threshold import SearchState, ThresholdResult, ThresholdSearch

prefs.load_preferences()
prefs.do_validation()


# Check for outdated dependency versions
def _check_dependency_version(name, version):
    import sys

    from packaging.version import Version

    logger = get_logger(__name__)

    module = sys.modules[name]
    if not isinstance(module.__version__, str):  # mocked module
        return
    if not Version(module.__version__) >= Version(version):
        logger.warn(
            f"{name} is outdated (got version {module.__version__}, need version"
            f" {version})",
            "outdated_dependency",
        )


def _check_dependency_versions():
    for name, version in [("numpy", "1.20"), ("scipy", "1.6"), ("sympy", "1.6")]:
        _check_dependency_version(name, version)


_check_dependency_versions()

# Initialize the logging system
SimLogger.initialize()
logger = get_logger(__name__)
