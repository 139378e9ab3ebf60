"""
MediLens Authenticity Core

Verifies medicine authenticity from a photograph.
Pipeline: EXTRACTION → (RESEARCH ∥ INSPECTION) → SCORING
"""

__version__ = "1.0.0"
__author__ = "MediLens Team"
