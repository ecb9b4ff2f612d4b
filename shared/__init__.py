"""
Shared Kernel

Base value objects, the domain error taxonomy and the API glue that
renders those errors. Every app under ``apps/`` builds on this package.
"""
