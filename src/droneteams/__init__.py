"""
drone-teams — Microsoft Teams notifications for Drone CI pipelines.
"""

__version__ = "1.0.0"
