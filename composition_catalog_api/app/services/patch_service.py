"""
Single‑field patches of a composition.

A patch names one field from ``FIELD_RULES`` and a raw value.  Three
outcomes are possible and all of them are normal return values:

* ``applied`` – the value passed its rule and was written;
* ``unknown-field`` – the name is not in the table, nothing changed;
* ``validation-failed`` – the value was rejected, nothing changed.

Only a missing composition is an error (``NotFound``).  Patches never
touch ``comment_count``.
"""

import logging
from typing import Any

from ..core.db import transaction
from ..core.errors import NotFound
from ..schemas.composition import PatchResult
from .audit_service import AuditService
from .field_validators import InvalidValue, lookup_rule

APPLIED = "applied"
UNKNOWN_FIELD = "unknown-field"
VALIDATION_FAILED = "validation-failed"
NO_CHANGE = "noChange"


class PatchService:
    """Applies one validated attribute change to a composition."""

    @classmethod
    async def apply_patch(
        cls,
        composition_id: int,
        field_name: str,
        raw_value: Any,
        current_user: dict | None = None,
        authorize=None,
    ) -> PatchResult:
        """Apply ``raw_value`` to ``field_name`` of a composition.

        ``authorize(current_user, adder_id)``, when given, runs after
        the composition is found and before anything is written.
        """
        logger = logging.getLogger(__name__)
        rule = lookup_rule(field_name)
        value = None
        reason = APPLIED
        if rule is None:
            reason = UNKNOWN_FIELD
        else:
            try:
                value = rule.validate(raw_value)
            except InvalidValue as e:
                logger.info("Patch of %s on composition %s rejected: %s", field_name, composition_id, e)
                reason = VALIDATION_FAILED

        with transaction() as cursor:
            row = cursor.execute(
                "SELECT id, adder_id FROM compositions WHERE id = ?",
                (composition_id,),
            ).fetchone()
            if not row:
                raise NotFound(f"Composition {composition_id} not found")
            if authorize is not None:
                authorize(current_user, row["adder_id"])
            if reason == APPLIED:
                # rule.column comes from the closed FIELD_RULES table
                cursor.execute(
                    f"UPDATE compositions SET {rule.column} = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (value, composition_id),
                )

        if reason != APPLIED:
            return PatchResult(applied=False, field=field_name, reason=reason, status=NO_CHANGE)

        logger.info("Composition %s field %s set to %r", composition_id, field_name, value)
        await AuditService.try_log(
            user_id=current_user.get("user_id") if current_user else None,
            action="update",
            object_type="composition",
            object_id=composition_id,
            details={"field": field_name, "value": value},
        )
        return PatchResult(
            applied=True,
            field=field_name,
            reason=APPLIED,
            status=rule.status,
            new_value=value,
        )
