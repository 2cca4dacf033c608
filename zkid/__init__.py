# zkid/__init__.py
"""Interactive Schnorr identification between a prover and a verifier."""

__version__ = "0.1.0"
