"""Bulk Messaging Agent.

Sends one personalised email per student matching a filter. Delivery is
reported per recipient, so one bad address never aborts the rest.
"""

import re
from typing import Any, Optional

from educrm.store.repository import EntityStore
from educrm.utils.errors import InvalidInputError
from educrm.utils.filtering import filter_records
from educrm.utils.logger import get_logger
from educrm.utils.mailer import MailDeliveryError, Mailer

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_message(template: str, values: dict[str, Any]) -> str:
    """Replace ``{{name}}``-style placeholders; unknown ones are left as-is."""

    def substitute(match: re.Match) -> str:
        key = match.group(1)
        value = values.get(key)
        return str(value) if value is not None else match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


async def send_bulk_email(
    store: EntityStore,
    mailer: Mailer,
    subject: str,
    body: str,
    filters: Optional[dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Email every student matching ``filters``.

    Supported filters are those of FilterCriteria (``status``, ``country``,
    ``degreeLevel`` ...). ``{{name}}`` in the body becomes the student's first
    name, or "Student" when it is empty.

    Returns:
        Dict with total, sent, failed and per-recipient results

    Raises:
        InvalidInputError: If subject or body is empty, or nobody matches
    """
    logger = get_logger(correlation_id=correlation_id, phase="messaging", component="bulk_email")

    if not subject or not subject.strip() or not body or not body.strip():
        raise InvalidInputError("Subject and message body are required")

    students = filter_records(store["StudentProfile"].list(), filters or {})
    recipients = [s for s in students if s.email]
    if not recipients:
        raise InvalidInputError("No recipients match the selected filters")

    logger.info("Sending bulk email", recipients=len(recipients))

    results = []
    for student in recipients:
        message = render_message(
            body,
            {
                "name": student.first_name or "Student",
                "student_name": student.full_name or "Student",
                "student_email": student.email,
            },
        )
        try:
            await mailer.send(student.email, subject, message)
            results.append({"student_id": student.id, "email": student.email, "success": True})
        except MailDeliveryError as e:
            logger.warning("Bulk email delivery failed", student_id=student.id, error=str(e))
            results.append(
                {"student_id": student.id, "email": student.email, "success": False, "error": str(e)}
            )

    sent = sum(1 for r in results if r["success"])
    logger.info("Bulk email complete", sent=sent, failed=len(results) - sent)
    return {
        "success": True,
        "total": len(results),
        "sent": sent,
        "failed": len(results) - sent,
        "results": results,
    }
