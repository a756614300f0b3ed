"""Outputs subpackage: shared figure helpers for the report modules."""
