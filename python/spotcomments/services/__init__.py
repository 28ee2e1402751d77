"""Service layer.

Service functions correspond 1:1 with route handlers; routes stay
transport-only.
"""
