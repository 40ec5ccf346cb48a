"""Persistence for builder sessions, templates and deployment records.

- :class:`BuilderStore` -- abstract base class
- :class:`InMemoryBuilderStore` -- process-local store for tests and demos
- :class:`SupabaseBuilderStore` -- PostgREST tables over ``httpx``
"""

from __future__ import annotations

from atlas_builder.store.base import BuilderStore, new_builder_id, new_builder_state
from atlas_builder.store.memory import InMemoryBuilderStore
from atlas_builder.store.supabase import SupabaseBuilderStore

__all__ = [
    "BuilderStore",
    "InMemoryBuilderStore",
    "SupabaseBuilderStore",
    "new_builder_id",
    "new_builder_state",
]
