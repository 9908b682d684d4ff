"""
Profile Ingester - load profile extraction for utility meter exports.

This package turns heterogeneous meter CSV exports (SCADA portals, retailer
downloads, logger dumps) into normalized weekday/weekend 24-hour load
profiles, either inline for small files or through a queue-backed worker
for large ones.
"""

__version__ = "0.1.0"
