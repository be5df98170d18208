"""
Link store persistence: connection lifecycle, merge policies and repositories.
"""
