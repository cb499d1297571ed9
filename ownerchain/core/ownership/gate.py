"""Pre-write ownership gate.

Two ways in:

  gate.save(session, entity)
      Explicit save. Returns False and leaves storage untouched when the
      entity's owner graph is inconsistent; otherwise adds and flushes it
      inside the caller's transaction and returns True.
      A rejected entity is taken out of the unit of work: pending records
      (the entity and any cascaded from it) are expunged, and a persistent
      entity is expired, so its unflushed changes are discarded and a later
      commit writes nothing for it.

  gate.install(Session) / gate.install(session_factory)
      Registers a before_flush listener. Every new or modified instance in a
      flush is checked; the first inconsistent one aborts the flush with
      OwnershipRejected, before any SQL is sent.

The check and the write share the caller's transaction; commit is left to
the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List

from sqlalchemy import event
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from ownerchain.core.observability.metrics import record_gate_decision

from .errors import OwnershipRejected

if TYPE_CHECKING:
    from .registry import OwnershipRegistry

log = logging.getLogger("ownerchain.gate")


class OwnershipGate:
    def __init__(self, registry: "OwnershipRegistry"):
        self.registry = registry

    def check(self, session: Session, entity: Any) -> bool:
        model = sa_inspect(entity).mapper.class_.__name__
        allowed = self.registry.verifier.is_consistent(session, entity)
        record_gate_decision(model, allowed)
        if not allowed:
            log.warning("write rejected model=%s identity=%s", model, sa_inspect(entity).identity)
        return allowed

    def save(self, session: Session, entity: Any) -> bool:
        if not self.check(session, entity):
            self._discard(session, entity)
            return False
        session.add(entity)
        session.flush()
        return True

    def _discard(self, session: Session, entity: Any) -> None:
        state = sa_inspect(entity)
        # collect before expiring; expire drops the loaded relations
        cascaded = [obj for obj, _, _, _ in state.mapper.cascade_iterator("save-update", state)]
        for obj in cascaded:
            if obj in session and sa_inspect(obj).pending:
                session.expunge(obj)

        if state.session is not session:
            return
        if state.pending:
            session.expunge(entity)
        elif state.persistent:
            session.expire(entity)
        log.debug("discarded rejected %s identity=%s", state.mapper.class_.__name__, state.identity)

    # ------------------------------------------------------------
    # Flush listener
    # ------------------------------------------------------------
    def _pending(self, session: Session) -> List[Any]:
        out = list(session.new)
        out.extend(obj for obj in session.dirty if session.is_modified(obj))
        return out

    def _before_flush(self, session: Session, flush_context, instances) -> None:
        for obj in self._pending(session):
            if not self.check(session, obj):
                state = sa_inspect(obj)
                raise OwnershipRejected(state.mapper.class_.__name__, state.identity)

    def install(self, target: Any) -> None:
        if not event.contains(target, "before_flush", self._before_flush):
            event.listen(target, "before_flush", self._before_flush)

    def uninstall(self, target: Any) -> None:
        if event.contains(target, "before_flush", self._before_flush):
            event.remove(target, "before_flush", self._before_flush)
