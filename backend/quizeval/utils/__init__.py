"""Helpers shared by the validator, comparator and service layer."""
