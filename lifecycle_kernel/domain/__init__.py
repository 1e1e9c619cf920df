"""Pure domain layer: value objects and pure functions, zero I/O."""
