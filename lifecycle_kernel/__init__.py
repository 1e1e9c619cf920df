"""
Lifecycle kernel: the transition-gating core for product lifecycle workflows.

Layers (imports point downwards only):

    services/   write paths (trajectory store, dictionary administration)
    selectors/  read-only queries returning domain DTOs
    models/     SQLAlchemy ORM tables
    domain/     pure value objects and pure functions, zero I/O
    db/         engine, session scope, declarative base
"""
