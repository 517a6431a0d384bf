"""
Staged, cancellable loading of the resources an interactive
application needs to start up.
"""

__version__ = "0.3.0"
