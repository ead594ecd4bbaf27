"""
lanes - terminal kanban board with live multi-instance sync
"""

__version__ = "0.1.0"
