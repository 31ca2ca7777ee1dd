"""Predicates over hidden attributes."""
