"""
MeshForge Network Health
Derived health metrics for Meshtastic mesh networks.

Turns node and telemetry rows into the four dashboard views:
- Network health score
- Per-node signal quality
- Channel congestion history
- Node reliability ranking
"""

__version__ = "0.6.0"
__author__ = "MeshForge Team"
