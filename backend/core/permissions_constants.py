"""
Permissions Constants — **Single Source of Truth**

Every permission referenced in code (views, services, ``setup_rbac``,
DRF permission classes) MUST use one of the constants defined here.

Organisation
------------
- **Standard CRUD** permissions follow Django's auto-generated naming:
  ``<action>_<model_lowercase>``. They are listed here for reference so
  that the ``setup_rbac`` command can map them to roles without typos.

- **Custom workflow** permissions are constants that map to codenames
  registered via each model's ``Meta.permissions`` tuple. Adding a new
  custom permission requires:
    1. Add the constant below.
    2. Add the ``(codename, description)`` to the related model's
       ``Meta.permissions``.
    3. Run ``makemigrations`` + ``migrate`` to insert it into Django's
       ``auth_permission`` table.
    4. Add the constant to the appropriate role lists in ``setup_rbac``.

All constants store the **codename only** (no ``app_label.`` prefix).
Use ``ApplicationsPerms.full(...)`` where ``user.has_perm`` needs the
``app_label.codename`` form.
"""


# ════════════════════════════════════════════════════════════════════
#  ACCOUNTS APP — Standard CRUD
# ════════════════════════════════════════════════════════════════════

class AccountsPerms:
    """Standard CRUD permissions for accounts models."""

    APP_LABEL = "accounts"

    # Role
    VIEW_ROLE = "view_role"
    ADD_ROLE = "add_role"
    CHANGE_ROLE = "change_role"
    DELETE_ROLE = "delete_role"

    # User
    VIEW_USER = "view_user"
    ADD_USER = "add_user"
    CHANGE_USER = "change_user"
    DELETE_USER = "delete_user"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_MANAGE_USERS = "can_manage_users"
    """Admin-level user management (handler provisioning, role changes)."""

    @classmethod
    def full(cls, codename: str) -> str:
        return f"{cls.APP_LABEL}.{codename}"


# ════════════════════════════════════════════════════════════════════
#  APPLICATIONS APP — Standard CRUD + Custom Workflow
# ════════════════════════════════════════════════════════════════════

class ApplicationsPerms:
    """Standard + custom permissions for the applications app."""

    APP_LABEL = "applications"

    # ── Application — standard CRUD ─────────────────────────────────
    VIEW_APPLICATION = "view_application"
    ADD_APPLICATION = "add_application"
    CHANGE_APPLICATION = "change_application"
    DELETE_APPLICATION = "delete_application"

    # ── ApplicationStatusLog — standard CRUD ────────────────────────
    VIEW_APPLICATIONSTATUSLOG = "view_applicationstatuslog"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_SUBMIT_APPLICATION = "can_submit_application"
    """Citizen may file a new service request."""

    CAN_BE_ASSIGNED_APPLICATION = "can_be_assigned_application"
    """Marks the user as a Handler eligible for assignment/escalation."""

    CAN_PROCESS_APPLICATION = "can_process_application"
    """Handler may move an application assigned to them through its lifecycle."""

    CAN_ASSIGN_APPLICATION = "can_assign_application"
    """Administrative (re)assignment of any application to any handler."""

    CAN_RUN_LIFECYCLE_JOBS = "can_run_lifecycle_jobs"
    """Trigger an escalation / auto-finalization tick on demand."""

    # ── Scope permissions (data-visibility tiers) ───────────────────
    CAN_SCOPE_ALL_APPLICATIONS = "can_scope_all_applications"
    CAN_SCOPE_ASSIGNED_APPLICATIONS = "can_scope_assigned_applications"
    CAN_SCOPE_OWN_APPLICATIONS = "can_scope_own_applications"

    @classmethod
    def full(cls, codename: str) -> str:
        return f"{cls.APP_LABEL}.{codename}"


# ════════════════════════════════════════════════════════════════════
#  CORE APP — Standard CRUD
# ════════════════════════════════════════════════════════════════════

class CorePerms:
    """Standard CRUD permissions for core models."""

    # ── Notification — standard CRUD ────────────────────────────────
    VIEW_NOTIFICATION = "view_notification"
    ADD_NOTIFICATION = "add_notification"
    CHANGE_NOTIFICATION = "change_notification"
    DELETE_NOTIFICATION = "delete_notification"

    # ── FinalizationArtifact — standard CRUD ────────────────────────
    VIEW_FINALIZATIONARTIFACT = "view_finalizationartifact"
