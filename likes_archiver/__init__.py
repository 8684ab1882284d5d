"""
Archive liked posts and their media to a local directory, resumably.
"""

__version__ = "1.0.0"
