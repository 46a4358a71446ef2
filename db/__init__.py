"""
db/ - Database Layer
====================
Handles the PostgreSQL connection pool, schema initialization, and the
error types shared by everything built on top of it.
This layer is the lowest in the architecture and has no dependencies on other layers.
"""
