"""Core business logic layer.

Subpackages:
- favorites: per-user favorite plan ids
- editor: selective merge of generated candidates into plans

Module session ties the stores, ledgers, editors and generation clients of one user together.
"""
__all__ = ["favorites", "editor", "session"]
