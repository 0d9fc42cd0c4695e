"""Index context: the named binding of a repository directory to its index storage."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from repodex.exceptions import ContextStateError
from repodex.search.schema import DEFAULT_FIELDS, IndexFields


@dataclass(eq=False)
class IndexContext:
    """A live, named index bound to one repository and one storage directory.

    Contexts are created and closed by an index backend; ``handle`` holds the
    backend's own index object. ``write_lock`` serializes adds and deletes.
    """

    id: str
    repository_base_dir: Path
    index_dir: Path
    searchable: bool = True
    fields: IndexFields = DEFAULT_FIELDS
    handle: Any = field(default=None, repr=False)
    closed: bool = False
    write_lock: Any = field(default_factory=threading.RLock, repr=False)

    def require_open(self) -> None:
        if self.closed or self.handle is None:
            raise ContextStateError(f"index context {self.id!r} is closed")
