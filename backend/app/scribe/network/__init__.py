"""
Network Capture Module

Correlates browser network lifecycle events into request records,
classifies them and exports them as JSON or HAR.
"""

from .correlation import NetworkCorrelationEngine, NetworkEvent, NetworkSummary
from .classifier import RequestClassification, classify
from .exporter import export_network_data, build_har

__all__ = [
    "NetworkCorrelationEngine",
    "NetworkEvent",
    "NetworkSummary",
    "RequestClassification",
    "classify",
    "export_network_data",
    "build_har"
]
