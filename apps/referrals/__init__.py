"""Referral codes, redemptions and rewards."""
