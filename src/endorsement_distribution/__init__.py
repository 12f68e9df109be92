"""Endorsement Distribution Service.

Serves CoSERV (Concise Selector for Endorsements and Reference Values)
queries: remote verifiers ask for reference values or trust anchors by
profile and environment selector, and receive the matching stored artifacts
packaged as a CoSERV result.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
