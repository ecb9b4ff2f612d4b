"""Finances app package.

Payments and refunds for bookings. The payment gateway client lives in
``gateway.py``; it talks to a real HTTP API when credentials are
configured and falls back to a simulated gateway otherwise.
"""
