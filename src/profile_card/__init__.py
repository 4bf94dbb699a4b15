"""
GitHub Profile Card - cached GitHub profile statistics.
"""

__version__ = "0.1.1"
