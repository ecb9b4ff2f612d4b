"""Parking spaces, the spot ledger and proximity search."""
