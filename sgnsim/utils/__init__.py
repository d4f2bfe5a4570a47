"""
Utility functions (logging, string formatting).
"""
