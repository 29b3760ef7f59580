"""
Operational CLI for UI Watch.
"""
