"""Users app package.

Defines the custom user model with an explicit role (driver, space owner,
platform admin) and the per-user referral statistics. Use
``apps.users.models.CustomUser`` as the AUTH_USER_MODEL throughout the
project.
"""
