"""Pedersen commitments and the sigma-protocol engine."""
