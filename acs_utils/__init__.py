"""
acs_utils: load American Community Survey bulk releases into a relational store.
"""

__version__ = "0.1.0"
