"""Bookings app package.

The booking lifecycle (create, update, cancel, complete), the pricing
engine and the expiration sweep. Overlap checks and spot accounting run
inside one transaction that holds a row lock on the parking space.
"""
