"""
Application Services

Services composing several ports into one domain operation.
"""

from .researcher import GroundTruthResearcher

__all__ = ["GroundTruthResearcher"]
