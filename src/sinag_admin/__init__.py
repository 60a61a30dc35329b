"""Sinag admin console backend.

Reconstructs campaign and yield-round lifecycle state from the Sui event log
and object store, and builds the protocol calls admins sign in their wallet.
"""

__version__ = "1.0.0"
