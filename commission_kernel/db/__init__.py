"""Database base classes, column types, and engine management."""
