"""Audit log: append-only record of money-affecting events that change no order state."""

import json
from datetime import UTC, datetime

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout


@checkout.aggregate
class AuditLogEntry:
    actor = String(required=True, max_length=100)
    action = String(required=True, max_length=100)
    entity_type = String(required=True, max_length=50)
    entity_id = Identifier(required=True)
    details = Text()  # JSON object
    created_at = DateTime()


@checkout.command(part_of="AuditLogEntry")
class RecordAuditEntry:
    actor = String(required=True, max_length=100)
    action = String(required=True, max_length=100)
    entity_type = String(required=True, max_length=50)
    entity_id = Identifier(required=True)
    details = Text()


@checkout.command_handler(part_of=AuditLogEntry)
class RecordAuditEntryHandler:
    @handle(RecordAuditEntry)
    def record_audit_entry(self, command):
        entry = AuditLogEntry(
            actor=command.actor,
            action=command.action,
            entity_type=command.entity_type,
            entity_id=command.entity_id,
            details=command.details or json.dumps({}),
            created_at=datetime.now(UTC),
        )
        current_domain.repository_for(AuditLogEntry).add(entry)
        return str(entry.id)


@checkout.repository(part_of=AuditLogEntry)
class AuditLogRepository:
    def for_entity(self, entity_type: str, entity_id) -> list[AuditLogEntry]:
        return self._dao.query.filter(entity_type=entity_type, entity_id=str(entity_id)).all().items
