"""
Integration tests for the applications HTTP API.

Every request goes through real endpoints with a JWT obtained from
``accounts:login``.
"""

from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from applications.models import ApplicationStatus

from .factories import PASSWORD, make_admin, make_citizen, make_handler


class ApplicationApiTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.citizen = make_citizen(username="api_citizen")
        cls.other_citizen = make_citizen(username="api_other_citizen")
        cls.handler = make_handler("Health", 1, username="api_handler")
        cls.admin = make_admin(username="api_admin")

    def setUp(self):
        self.client = APIClient()
        self.list_url = reverse("applications:application-list")

    def login(self, user) -> None:
        response = self.client.post(
            reverse("accounts:login"),
            {"identifier": user.username, "password": PASSWORD},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def action_url(self, name: str, application_id) -> str:
        return reverse(f"applications:application-{name}", kwargs={"pk": str(application_id)})

    def submit(self, **payload) -> dict:
        payload.setdefault("department", "Health")
        self.login(self.citizen)
        response = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, msg=response.data)
        return response.data


class TestSubmitAndRead(ApplicationApiTestBase):

    def test_citizen_submits_and_application_is_routed(self):
        data = self.submit(priority="high", application_type="Health – Permit")

        self.assertEqual(data["status"], ApplicationStatus.ASSIGNED)
        self.assertEqual(data["handler"], self.handler.pk)
        self.assertEqual(data["priority"], "high")
        self.assertTrue(data["tracking_id"].startswith("APP-"))
        self.assertFalse(data["is_terminal"])

    def test_submission_requires_department_or_type(self):
        self.login(self.citizen)
        response = self.client.post(self.list_url, {"description": "No routing info"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_priority_is_rejected(self):
        self.login(self.citizen)
        response = self.client.post(self.list_url, {"department": "Health", "priority": "urgent"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_handler_cannot_submit(self):
        self.login(self.handler)
        response = self.client.post(self.list_url, {"department": "Health"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_requests_are_rejected(self):
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_is_scoped_by_role(self):
        data = self.submit()

        self.login(self.other_citizen)
        self.assertEqual(self.client.get(self.list_url).data, [])

        self.login(self.handler)
        self.assertEqual([row["id"] for row in self.client.get(self.list_url).data], [data["id"]])

        self.login(self.admin)
        self.assertEqual(len(self.client.get(self.list_url).data), 1)

    def test_list_filters(self):
        self.submit(priority="high")
        self.submit(department="Police", priority="low")

        self.login(self.admin)
        response = self.client.get(self.list_url, {"priority": "high"})
        self.assertEqual(len(response.data), 1)
        response = self.client.get(self.list_url, {"status": ApplicationStatus.SUBMITTED})
        self.assertEqual([row["department"] for row in response.data], ["Police"])
        response = self.client.get(self.list_url, {"escalated": "true"})
        self.assertEqual(response.data, [])

    def test_other_citizen_gets_404_on_detail(self):
        data = self.submit()
        self.login(self.other_citizen)
        response = self.client.get(self.action_url("detail", data["id"]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_history_lists_events_oldest_first(self):
        data = self.submit()
        response = self.client.get(
            reverse("applications:application-history-list", kwargs={"application_pk": data["id"]})
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["event"] for row in response.data], ["submitted", "assigned"])

    def test_public_tracking_lookup(self):
        data = self.submit()
        self.client.credentials()
        url = reverse("applications:application-track", kwargs={"tracking_id": data["tracking_id"].lower()})
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], ApplicationStatus.ASSIGNED)
        self.assertNotIn("citizen", response.data)

    def test_unknown_tracking_id_is_404(self):
        url = reverse("applications:application-track", kwargs={"tracking_id": "APP-1999-000001"})
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)


class TestWorkflowActions(ApplicationApiTestBase):

    def test_handler_processes_to_approval(self):
        data = self.submit()
        self.login(self.handler)

        response = self.client.post(self.action_url("transition", data["id"]), {"status": "in_progress"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        response = self.client.post(
            self.action_url("transition", data["id"]),
            {"status": "approved", "comment": "Verified"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["status"], ApplicationStatus.APPROVED)
        self.assertIsNotNone(response.data["approved_at"])

        artifact = self.client.get(self.action_url("artifact", data["id"]))
        self.assertEqual(artifact.status_code, status.HTTP_200_OK)
        self.assertEqual(len(artifact.data["document_hash"]), 64)

    def test_artifact_is_404_before_finalization(self):
        data = self.submit()
        response = self.client.get(self.action_url("artifact", data["id"]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_transition_is_409(self):
        data = self.submit()
        self.login(self.handler)
        response = self.client.post(self.action_url("transition", data["id"]), {"status": "approved"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_closed_application_rejects_changes(self):
        data = self.submit()
        self.login(self.handler)
        for target in ("in_progress", "rejected"):
            self.client.post(self.action_url("transition", data["id"]), {"status": target}, format="json")
        response = self.client.post(self.action_url("transition", data["id"]), {"status": "in_progress"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_only_current_handler_may_transition(self):
        data = self.submit()
        colleague = make_handler("Health", 1, username="api_colleague")
        self.login(colleague)
        response = self.client.post(self.action_url("transition", data["id"]), {"status": "in_progress"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_auto_approved_is_reserved_for_the_system(self):
        data = self.submit()
        self.login(self.admin)
        response = self.client.post(self.action_url("transition", data["id"]), {"status": "auto_approved"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_admin_reassigns(self):
        data = self.submit()
        colleague = make_handler("Health", 1, username="api_reassign_target")
        self.login(self.admin)

        response = self.client.post(self.action_url("assign", data["id"]), {"handler_id": colleague.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["handler"], colleague.pk)

        response = self.client.post(self.action_url("assign", data["id"]), {"handler_id": colleague.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_assigning_a_non_handler_is_400(self):
        data = self.submit()
        self.login(self.admin)
        response = self.client.post(self.action_url("assign", data["id"]), {"handler_id": self.citizen.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_handler_cannot_use_admin_assign(self):
        data = self.submit()
        self.login(self.handler)
        response = self.client.post(self.action_url("assign", data["id"]), {"handler_id": self.handler.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_handler_accepts_unassigned_application_of_own_department(self):
        data = self.submit(department="Police")
        self.assertIsNone(data["handler"])
        officer = make_handler("Police – Traffic Division", 1, username="api_officer")

        self.login(self.handler)
        response = self.client.post(self.action_url("accept", data["id"]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.login(officer)
        response = self.client.post(self.action_url("accept", data["id"]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["handler"], officer.pk)

        response = self.client.post(self.action_url("accept", data["id"]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_citizen_toggles_solved_flag(self):
        data = self.submit()
        url = self.action_url("mark-solved", data["id"])

        response = self.client.post(url, {}, format="json")
        self.assertTrue(response.data["is_solved"])
        response = self.client.post(url, {"is_solved": True}, format="json")
        self.assertTrue(response.data["is_solved"])
        response = self.client.post(url, {}, format="json")
        self.assertFalse(response.data["is_solved"])
        self.assertEqual(response.data["status"], ApplicationStatus.ASSIGNED)

        self.login(self.other_citizen)
        self.assertEqual(self.client.post(url, {}, format="json").status_code, status.HTTP_403_FORBIDDEN)


class TestRunLifecycleJobsEndpoint(ApplicationApiTestBase):

    def test_admin_runs_a_tick(self):
        self.login(self.admin)
        response = self.client.post(reverse("applications:application-run-lifecycle-jobs"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            set(response.data),
            {"auto_approved", "escalated", "flagged", "failed", "stale_reminders"},
        )

    def test_non_admin_is_forbidden(self):
        self.login(self.handler)
        response = self.client.post(reverse("applications:application-run-lifecycle-jobs"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
