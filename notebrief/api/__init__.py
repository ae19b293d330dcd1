"""
HTTP surface for the retrieval pipeline.

Run with ``notebrief-server`` or ``python -m notebrief.api.server``.
"""
