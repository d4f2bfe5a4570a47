"""
Membrane mechanisms of the compartments.
"""
from .channels import *

__all__ = ["MembraneMechanism", "PassiveLeak", "FrankenhaeuserHuxley", "vtrap"]
