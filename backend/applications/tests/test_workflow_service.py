"""
Tests for ``ApplicationWorkflowService``: the transition table,
assignment, escalation and their audit/side-effect guarantees.
"""

from __future__ import annotations

from unittest import mock

from django.test import TestCase

from applications.models import Application, ApplicationStatus, LogEvent
from applications.services import ApplicationSubmissionService, ApplicationWorkflowService
from core.constants import ESCALATION_FLAG_ONLY_COMMENT, SYSTEM_ACTOR
from core.domain.exceptions import Conflict, DomainError, InvalidTransition, NotFound
from core.domain.finalization import FinalizationService
from core.models import FinalizationArtifact, Notification

from .factories import T0, hours, make_citizen, make_handler


class WorkflowTestBase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.citizen = make_citizen()
        cls.handler = make_handler("Health", 1)

    def submit(self, **kwargs) -> Application:
        kwargs.setdefault("department", "Health")
        kwargs.setdefault("now", T0)
        return ApplicationSubmissionService.submit(self.citizen, **kwargs)

    def refreshed(self, application: Application) -> Application:
        return Application.objects.get(pk=application.pk)


class TestTransitionTable(WorkflowTestBase):

    def test_happy_path_to_approved(self):
        app = self.submit()
        self.assertEqual(app.status, ApplicationStatus.ASSIGNED)

        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))
        app = ApplicationWorkflowService.apply_transition(
            app.pk, ApplicationStatus.APPROVED, self.handler, "All documents verified.", now=T0 + hours(2),
        )

        self.assertEqual(app.status, ApplicationStatus.APPROVED)
        self.assertEqual(app.approved_at, T0 + hours(2))
        self.assertEqual(app.last_updated_at, T0 + hours(2))
        self.assertEqual(FinalizationArtifact.objects.filter(application_id=app.pk).count(), 1)

    def test_rejection_sets_no_approved_at_and_no_artifact(self):
        app = self.submit()
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))
        app = ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.REJECTED, self.handler, now=T0 + hours(2))

        self.assertIsNone(app.approved_at)
        self.assertFalse(FinalizationArtifact.objects.filter(application_id=app.pk).exists())

    def test_cannot_skip_in_progress(self):
        app = self.submit()
        with self.assertRaises(InvalidTransition):
            ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.APPROVED, self.handler)
        self.assertEqual(self.refreshed(app).status, ApplicationStatus.ASSIGNED)

    def test_unknown_status_is_rejected(self):
        app = self.submit()
        with self.assertRaises(InvalidTransition):
            ApplicationWorkflowService.apply_transition(app.pk, "archived", self.handler)

    def test_assigned_and_escalated_are_reserved_targets(self):
        app = self.submit()
        for target in (ApplicationStatus.ASSIGNED, ApplicationStatus.ESCALATED):
            with self.assertRaises(InvalidTransition):
                ApplicationWorkflowService.apply_transition(app.pk, target, self.handler)

    def test_terminal_statuses_are_absorbing(self):
        app = self.submit()
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.REJECTED, self.handler, now=T0 + hours(2))
        other = make_handler("Health", 2)

        for target in ApplicationStatus.values:
            with self.assertRaises(InvalidTransition):
                ApplicationWorkflowService.apply_transition(app.pk, target, SYSTEM_ACTOR)
        with self.assertRaises(InvalidTransition):
            ApplicationWorkflowService.assign(app.pk, other.pk)
        with self.assertRaises(InvalidTransition):
            ApplicationWorkflowService.escalate(app.pk, 1, other.pk)

        self.assertEqual(self.refreshed(app).status, ApplicationStatus.REJECTED)

    def test_unknown_application_raises_not_found(self):
        with self.assertRaises(NotFound):
            ApplicationWorkflowService.apply_transition(
                "00000000-0000-0000-0000-000000000000", ApplicationStatus.IN_PROGRESS, SYSTEM_ACTOR,
            )

    def test_history_records_each_step_in_order(self):
        app = self.submit()
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, "Started", now=T0 + hours(1))

        logs = list(app.status_logs.order_by("timestamp", "id"))
        self.assertEqual(
            [(log.event, log.to_status) for log in logs],
            [
                (LogEvent.SUBMITTED, ApplicationStatus.SUBMITTED),
                (LogEvent.ASSIGNED, ApplicationStatus.ASSIGNED),
                (LogEvent.STATUS_CHANGED, ApplicationStatus.IN_PROGRESS),
            ],
        )
        self.assertEqual(logs[-1].actor, self.handler.username)
        self.assertEqual(logs[-1].changed_by, self.handler)
        self.assertEqual(logs[-1].message, "Started")
        self.assertEqual(logs[-1].timestamp, self.refreshed(app).last_updated_at)

    def test_last_updated_at_is_strictly_monotonic(self):
        app = self.submit()
        before = self.refreshed(app).last_updated_at
        # A clock reading that is not after the last update still moves forward.
        app = ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0)
        self.assertGreater(app.last_updated_at, before)

    def test_citizen_is_notified_of_decision(self):
        app = self.submit()
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.APPROVED, self.handler, now=T0 + hours(2))
        self.assertTrue(
            Notification.objects.filter(recipient=self.citizen, event_type="application_approved").exists()
        )

    def test_stamping_failure_does_not_undo_approval(self):
        app = self.submit()
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))
        with mock.patch(
            "applications.services.FinalizationService.stamp",
            side_effect=RuntimeError("ledger unavailable"),
        ):
            app = ApplicationWorkflowService.apply_transition(
                app.pk, ApplicationStatus.APPROVED, self.handler, now=T0 + hours(2),
            )
        self.assertEqual(self.refreshed(app).status, ApplicationStatus.APPROVED)
        self.assertFalse(FinalizationArtifact.objects.filter(application_id=app.pk).exists())

    def test_block_number_collision_still_stamps_approval(self):
        first = self.submit()
        second = self.submit()
        for app in (first, second):
            ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))

        ApplicationWorkflowService.apply_transition(first.pk, ApplicationStatus.APPROVED, self.handler, now=T0 + hours(2))
        # A concurrent stamper read the ledger head before block 1 was written.
        with mock.patch.object(FinalizationService, "_next_block_number", side_effect=[1, 2]):
            ApplicationWorkflowService.apply_transition(second.pk, ApplicationStatus.APPROVED, self.handler, now=T0 + hours(2))

        artifact = FinalizationArtifact.objects.get(application_id=second.pk)
        self.assertEqual(artifact.block_number, 2)
        self.assertEqual(
            list(FinalizationArtifact.objects.values_list("block_number", flat=True)), [1, 2],
        )

    def test_stamping_twice_returns_the_same_artifact(self):
        app = self.submit()
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.APPROVED, self.handler, now=T0 + hours(2))

        stamped = FinalizationArtifact.objects.get(application_id=app.pk)
        self.assertEqual(FinalizationService.stamp(app.pk), stamped)
        self.assertEqual(FinalizationArtifact.objects.count(), 1)

    def test_notification_failure_does_not_undo_transition(self):
        app = self.submit()
        with mock.patch(
            "core.domain.notifications.NotificationService.create",
            side_effect=RuntimeError("mail relay down"),
        ):
            ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))
        self.assertEqual(self.refreshed(app).status, ApplicationStatus.IN_PROGRESS)


class TestAssign(WorkflowTestBase):

    def test_assign_increments_lifetime_counter_once(self):
        app = self.submit(department="Police")  # nobody to route to
        officer = make_handler("Police", 1)
        self.assertEqual(app.status, ApplicationStatus.SUBMITTED)

        ApplicationWorkflowService.assign(app.pk, officer.pk, actor=SYSTEM_ACTOR, now=T0 + hours(1))

        officer.refresh_from_db()
        self.assertEqual(officer.total_assigned_count, 1)
        self.assertEqual(officer.handled_applications.filter(status=ApplicationStatus.ASSIGNED).count(), 1)

    def test_reassignment_moves_workload(self):
        app = self.submit()
        colleague = make_handler("Health", 1)

        app = ApplicationWorkflowService.assign(app.pk, colleague.pk, actor=SYSTEM_ACTOR, now=T0 + hours(1))

        self.assertEqual(app.handler, colleague)
        self.assertEqual(app.assigned_at, T0 + hours(1))
        self.assertFalse(self.handler.handled_applications.exists())
        self.handler.refresh_from_db()
        colleague.refresh_from_db()
        self.assertEqual(self.handler.total_assigned_count, 1)
        self.assertEqual(colleague.total_assigned_count, 1)

    def test_reassign_from_in_progress_returns_to_assigned(self):
        app = self.submit()
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))
        colleague = make_handler("Health", 1)

        app = ApplicationWorkflowService.assign(app.pk, colleague.pk, now=T0 + hours(2))
        self.assertEqual(app.status, ApplicationStatus.ASSIGNED)

    def test_same_handler_is_a_conflict(self):
        app = self.submit()
        with self.assertRaises(Conflict):
            ApplicationWorkflowService.assign(app.pk, self.handler.pk)
        self.handler.refresh_from_db()
        self.assertEqual(self.handler.total_assigned_count, 1)

    def test_non_handler_cannot_be_assigned(self):
        app = self.submit()
        with self.assertRaises(DomainError):
            ApplicationWorkflowService.assign(app.pk, self.citizen.pk)

    def test_inactive_handler_cannot_be_assigned(self):
        app = self.submit()
        retired = make_handler("Health", 1, is_active=False)
        with self.assertRaises(DomainError):
            ApplicationWorkflowService.assign(app.pk, retired.pk)

    def test_unknown_handler_raises_not_found(self):
        app = self.submit()
        with self.assertRaises(NotFound):
            ApplicationWorkflowService.assign(app.pk, 999999)

    def test_sla_restarts_but_never_moves_earlier(self):
        app = self.submit(priority="high")
        self.assertEqual(app.sla_due_at, T0 + hours(24))
        colleague = make_handler("Health", 1)

        app = ApplicationWorkflowService.assign(app.pk, colleague.pk, now=T0 + hours(10))
        self.assertEqual(app.sla_due_at, T0 + hours(34))

        # A clock reading behind the current deadline window cannot pull it in.
        app = ApplicationWorkflowService.assign(app.pk, self.handler.pk, now=T0 + hours(1))
        self.assertEqual(app.sla_due_at, T0 + hours(34))

    def test_handler_and_citizen_are_notified(self):
        app = self.submit()
        self.assertTrue(Notification.objects.filter(
            recipient=self.handler, event_type="application_assigned", application_id=app.pk,
        ).exists())
        self.assertTrue(Notification.objects.filter(
            recipient=self.citizen, event_type="assignment_confirmed", application_id=app.pk,
        ).exists())


class TestEscalate(WorkflowTestBase):

    def test_escalation_reassigns_to_higher_tier(self):
        app = self.submit(priority="high")
        senior = make_handler("Health", 2)

        app = ApplicationWorkflowService.escalate(app.pk, 1, senior.pk, now=T0 + hours(25))

        self.assertEqual(app.escalation_level, 1)
        self.assertEqual(app.handler, senior)
        self.assertEqual(app.status, ApplicationStatus.ASSIGNED)
        self.assertEqual(app.sla_due_at, T0 + hours(49))
        senior.refresh_from_db()
        self.assertEqual(senior.total_assigned_count, 1)

        log = app.status_logs.latest("timestamp")
        self.assertEqual(log.event, LogEvent.ESCALATED)
        self.assertEqual(log.actor, SYSTEM_ACTOR)
        self.assertIsNone(log.changed_by)

    def test_escalated_is_never_persisted(self):
        app = self.submit()
        senior = make_handler("Health", 2)
        ApplicationWorkflowService.escalate(app.pk, 1, senior.pk, now=T0 + hours(200))
        self.assertFalse(Application.objects.filter(status=ApplicationStatus.ESCALATED).exists())
        self.assertFalse(app.status_logs.filter(to_status=ApplicationStatus.ESCALATED).exists())

    def test_flag_only_keeps_handler_and_status(self):
        app = self.submit()
        ApplicationWorkflowService.apply_transition(app.pk, ApplicationStatus.IN_PROGRESS, self.handler, now=T0 + hours(1))

        app = ApplicationWorkflowService.escalate(app.pk, 1, None, now=T0 + hours(200))

        self.assertEqual(app.escalation_level, 1)
        self.assertEqual(app.handler, self.handler)
        self.assertEqual(app.status, ApplicationStatus.IN_PROGRESS)
        log = app.status_logs.latest("timestamp")
        self.assertEqual(log.event, LogEvent.FLAGGED)
        self.assertEqual(log.message, ESCALATION_FLAG_ONLY_COMMENT)
        self.assertTrue(Notification.objects.filter(recipient=self.handler, event_type="sla_breached").exists())

    def test_level_must_increase(self):
        app = self.submit()
        ApplicationWorkflowService.escalate(app.pk, 1, None, now=T0 + hours(200))
        for level in (0, 1):
            with self.assertRaises(InvalidTransition):
                ApplicationWorkflowService.escalate(app.pk, level, None)
        self.assertEqual(self.refreshed(app).escalation_level, 1)

    def test_target_tier_must_be_strictly_higher(self):
        app = self.submit()
        peer = make_handler("Health", 1)
        with self.assertRaises(InvalidTransition):
            ApplicationWorkflowService.escalate(app.pk, 1, peer.pk)
        app = self.refreshed(app)
        self.assertEqual(app.escalation_level, 0)
        self.assertEqual(app.handler, self.handler)

    def test_sla_is_capped_at_auto_approval_deadline(self):
        app = self.submit(priority="low")
        senior = make_handler("Health", 3)
        late = app.auto_approval_deadline - hours(1)
        app = ApplicationWorkflowService.escalate(app.pk, 1, senior.pk, now=late)
        self.assertEqual(app.sla_due_at, app.auto_approval_deadline)
