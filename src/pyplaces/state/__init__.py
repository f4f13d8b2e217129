"""State layer.

Owns the membership state of the device relative to cached POIs and
the datastores it is persisted to.
"""
