"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all SQL queries for a specific tracker table.
Repositories receive a `db.connection.Database` at construction time,
map rows to domain model objects, and translate driver failures into the
typed errors of `db.errors`.
"""
