"""
models/ - Domain Models
=======================
Plain dataclasses mirroring one row of a tracker table.
Optional columns are ``Optional[...]`` fields that default to None.
"""
