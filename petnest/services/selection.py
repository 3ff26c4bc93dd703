"""Single-winner selection: one candidate ACCEPTED, its siblings REJECTED,
the parent flipped to a terminal state, all in one transaction.

Used for adoption acceptance (parent: donation post, candidates: adoption
forms) and caregiver selection (parent: job post, candidates: applications).

The parent is flipped with a conditional UPDATE guarded by its pre-selection
state, so two concurrent selections on the same parent cannot both win: the
second sees zero affected rows and is rejected before touching candidates.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy import update

from ..errors import Conflict
from ..extensions import db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionRule:
    parent: type
    candidate: type
    group_column: str
    guard: dict
    outcome: Callable[[object], dict]
    closed_message: str
    decided_message: str = "This application has already been decided"
    pending: str = "PENDING"
    accepted: str = "ACCEPTED"
    rejected: str = "REJECTED"
    name: str = field(default="selection")


def select_winner(
    rule: SelectionRule,
    winner,
    on_selected: Optional[Callable[[object, list], None]] = None,
):
    """Returns ``(winner, losers)``; losers are the siblings that were still
    undecided before the selection."""
    if winner.status != rule.pending:
        raise Conflict(rule.decided_message)

    parent_id = getattr(winner, rule.group_column)
    group_col = getattr(rule.candidate, rule.group_column)

    try:
        losers = (
            db.session.query(rule.candidate)
            .filter(
                group_col == parent_id,
                rule.candidate.id != winner.id,
                rule.candidate.status == rule.pending,
            )
            .all()
        )

        guard = [getattr(rule.parent, col) == value for col, value in rule.guard.items()]
        flipped = db.session.execute(
            update(rule.parent)
            .where(rule.parent.id == parent_id, *guard)
            .values(**rule.outcome(winner))
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            db.session.rollback()
            logger.warning("%s rejected: parent %s no longer selectable", rule.name, parent_id)
            raise Conflict(rule.closed_message)

        db.session.execute(
            update(rule.candidate)
            .where(group_col == parent_id, rule.candidate.id != winner.id)
            .values(status=rule.rejected)
            .execution_options(synchronize_session=False)
        )
        db.session.execute(
            update(rule.candidate)
            .where(rule.candidate.id == winner.id)
            .values(status=rule.accepted)
            .execution_options(synchronize_session=False)
        )
        # bulk updates bypass the identity map
        db.session.expire_all()

        if on_selected is not None:
            on_selected(winner, losers)
        db.session.commit()
    except Conflict:
        raise
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "%s: candidate %s accepted for parent %s, %d rejected",
        rule.name, winner.id, parent_id, len(losers),
    )
    return winner, losers
