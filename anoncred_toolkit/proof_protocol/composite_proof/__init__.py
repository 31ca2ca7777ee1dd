"""Statements, witnesses, meta-statements and the composite proof over them."""
