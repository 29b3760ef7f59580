"""
HTTP API for driving change detectors over the network.
"""

__all__ = ["change_api", "http_server"]
