"""
Storage Package.

This package manages registry persistence.

Modules:
- database: Connection management and transaction boundaries
- models/: ORM models
- repositories/: Data access layer
"""
