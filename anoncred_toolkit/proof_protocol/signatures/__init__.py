"""Credential signature schemes."""
