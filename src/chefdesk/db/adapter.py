"""
Database Adapter Protocol.

The persistence code talks to storage through this thin wrapper matching the
Supabase/PostgREST query builder: table() returns a fluent builder
(.select(), .upsert(), .eq(), .in_(), .order(), .limit(), .execute()).

A supabase.Client satisfies it directly; tests pass an in-memory fake.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DatabaseAdapter(Protocol):
    """Abstract database access for the schedule repository and item source."""

    def table(self, name: str) -> Any:
        """
        Return a query builder for the given table.

        `.execute()` on the finished builder yields an object with `.data`.
        """
        ...
