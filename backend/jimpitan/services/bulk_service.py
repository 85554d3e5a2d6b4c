# Overview: Service-layer operations for bulk requests; encapsulates business logic and database work.

"""
Bulk Operation Coordinator

Applies one per-item operation to a list of ids. Each item is its own unit
of work: one bad id never aborts, or rolls back, the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from flask import current_app

from ..errors import JimpitanError, ValidationError
from ..extensions import db


@dataclass
class BulkResult:
    succeeded: int = 0
    errors: list[dict] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        data = {"deleted": self.succeeded}
        if self.errors:
            data["errors"] = self.errors
        return data


def apply_bulk(ids: Iterable[str] | None, operation: Callable[[str], object], *, label: str = "item") -> BulkResult:
    """
    Run operation(id) for every id, collecting failures as {id, error}.

    Raises ValidationError (before anything runs) if ids is empty.
    Domain errors are reported with their message; anything else is logged
    with its traceback and reported as "Internal error".
    """
    ids = list(ids or [])
    if not ids:
        raise ValidationError("ids array is required and cannot be empty")

    result = BulkResult()
    for item_id in ids:
        try:
            operation(item_id)
        except JimpitanError as exc:
            current_app.logger.warning("Bulk %s %s failed: %s", label, item_id, exc.message)
            result.errors.append({"id": item_id, "error": exc.message})
            continue
        except Exception:  # noqa: BLE001
            db.session.rollback()
            current_app.logger.exception("Bulk %s %s failed", label, item_id)
            result.errors.append({"id": item_id, "error": "Internal error"})
            continue
        result.succeeded += 1

    current_app.logger.info(
        "Bulk %s: %d succeeded, %d failed", label, result.succeeded, result.failed
    )
    return result
