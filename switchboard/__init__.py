"""
switchboard: multi-account identity and session bookkeeping for client apps.
"""

__version__ = "0.1.0"
