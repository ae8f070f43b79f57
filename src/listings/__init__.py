"""Listing classification, derivation, query planning and projection."""
