"""Accumulators for credential revocation: positive (VB) and KB universal."""
