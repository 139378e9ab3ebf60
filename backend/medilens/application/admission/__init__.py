"""
Admission Module

Queueing, single-flight and cooldown control in front of the pipeline.
"""

from .controller import AdmissionController, AdmissionSnapshot, AdmissionState, epoch_millis

__all__ = [
    "AdmissionController",
    "AdmissionSnapshot",
    "AdmissionState",
    "epoch_millis",
]
