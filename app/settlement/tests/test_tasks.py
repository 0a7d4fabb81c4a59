"""
Tests for settlement Celery tasks.

Tasks are called directly (synchronously); queueing is patched.
"""

import datetime
import uuid
from unittest.mock import patch

import pytest
from django.utils import timezone

from core.services import ServiceResult
from settlement.models import LedgerEntry, WebhookEvent
from settlement.state_machines import WebhookEventStatus
from settlement.tasks import (
    cleanup_old_webhook_events,
    process_webhook_event,
    retry_failed_webhooks,
)
from settlement.tests.factories import (
    LedgerEntryFactory,
    WebhookEventFactory,
    checkout_session_payload,
)

pytestmark = pytest.mark.django_db


def _reload(event):
    return WebhookEvent.objects.get(pk=event.pk)


class TestProcessWebhookEvent:
    def test_processes_and_settles(self, fake_channel):
        entry = LedgerEntryFactory()
        event = WebhookEventFactory(payload=checkout_session_payload(entry.id))

        with patch("settlement.webhooks.handlers.get_settlement_channel", return_value=fake_channel):
            result = process_webhook_event(str(event.id))

        assert result["status"] == "processed"
        event = _reload(event)
        assert event.status == WebhookEventStatus.PROCESSED
        assert event.processed_at is not None
        assert event.retry_count == 1
        assert LedgerEntry.objects.get(pk=entry.pk).is_paid

    def test_missing_reference_is_discarded(self, fake_channel):
        event = WebhookEventFactory()

        with patch("settlement.webhooks.handlers.get_settlement_channel", return_value=fake_channel):
            result = process_webhook_event(str(event.id))

        assert result["status"] == "discarded"
        event = _reload(event)
        assert event.status == WebhookEventStatus.DISCARDED
        assert event.error_message

    def test_handler_failure_marks_failed(self):
        event = WebhookEventFactory()

        with patch(
            "settlement.webhooks.handlers.dispatch_webhook",
            return_value=ServiceResult.failure("temporary", error_code="TEMPORARY"),
        ):
            result = process_webhook_event(str(event.id))

        assert result["status"] == "handler_failed"
        event = _reload(event)
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "temporary"

    def test_exception_marks_failed_and_reraises(self):
        event = WebhookEventFactory()

        with patch(
            "settlement.webhooks.handlers.dispatch_webhook",
            side_effect=RuntimeError("db gone"),
        ):
            with pytest.raises(RuntimeError):
                process_webhook_event.run(str(event.id))

        event = _reload(event)
        assert event.status == WebhookEventStatus.FAILED
        assert "RuntimeError" in event.error_message

    @pytest.mark.parametrize("status", [WebhookEventStatus.PROCESSED, WebhookEventStatus.DISCARDED])
    def test_finished_event_skipped(self, status):
        event = WebhookEventFactory(status=status)

        with patch("settlement.webhooks.handlers.dispatch_webhook") as dispatch:
            result = process_webhook_event(str(event.id))

        assert result["status"] == f"already_{status}"
        dispatch.assert_not_called()

    def test_unknown_event(self):
        result = process_webhook_event(str(uuid.uuid4()))

        assert result["status"] == "not_found"


class TestRetryFailedWebhooks:
    def test_requeues_failed_and_unqueued_events(self):
        failed = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=1)
        exhausted = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=99)
        unqueued = WebhookEventFactory()
        fresh = WebhookEventFactory()
        WebhookEvent.objects.filter(pk=unqueued.pk).update(
            created_at=timezone.now() - datetime.timedelta(minutes=30)
        )

        with patch("settlement.tasks.process_webhook_event.delay") as delay:
            result = retry_failed_webhooks()

        queued = {call.args[0] for call in delay.call_args_list}
        assert queued == {str(failed.id), str(unqueued.id)}
        assert str(exhausted.id) not in queued
        assert str(fresh.id) not in queued
        assert result == {"queued_count": 2, "reset_count": 0}

    def test_resets_stuck_processing(self):
        stuck = WebhookEventFactory(status=WebhookEventStatus.PROCESSING, retry_count=1)
        WebhookEvent.objects.filter(pk=stuck.pk).update(
            updated_at=timezone.now() - datetime.timedelta(hours=1)
        )
        active = WebhookEventFactory(status=WebhookEventStatus.PROCESSING, retry_count=1)

        with patch("settlement.tasks.process_webhook_event.delay") as delay:
            result = retry_failed_webhooks()

        assert result["reset_count"] == 1
        assert _reload(stuck).status == WebhookEventStatus.FAILED
        assert _reload(active).status == WebhookEventStatus.PROCESSING
        delay.assert_called_once_with(str(stuck.id))


class TestCleanupOldWebhookEvents:
    def test_deletes_only_old_finished_events(self):
        old = timezone.now() - datetime.timedelta(days=120)
        old_processed = WebhookEventFactory(status=WebhookEventStatus.PROCESSED, processed_at=old)
        old_discarded = WebhookEventFactory(status=WebhookEventStatus.DISCARDED, processed_at=old)
        old_failed = WebhookEventFactory(status=WebhookEventStatus.FAILED)
        recent = WebhookEventFactory(
            status=WebhookEventStatus.PROCESSED, processed_at=timezone.now()
        )

        result = cleanup_old_webhook_events(days=90)

        assert result == {"deleted_count": 2}
        remaining = set(WebhookEvent.objects.values_list("pk", flat=True))
        assert remaining == {old_failed.pk, recent.pk}
        assert old_processed.pk not in remaining
        assert old_discarded.pk not in remaining
