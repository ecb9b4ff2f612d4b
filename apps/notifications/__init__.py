"""Notifications app package.

In-app notifications: availability alerts for nearby parking spaces and
booking reminders created by background tasks.
"""
