"""
Accounts app models.

Defines the dynamic Role system and a custom User model that extends
Django's ``AbstractUser``.  A single user table serves citizens,
handlers (officials) and administrators; what a user may do is decided
by the permissions of their role, never by the role's name.

A **handler** is a user whose role grants
``applications.can_be_assigned_application``.  The handler profile
(department, tier, lifetime assignment counter) lives directly on the
user row.
"""

from django.contrib.auth.models import AbstractUser, Permission
from django.core.validators import MinValueValidator
from django.db import models

from core.permissions_constants import AccountsPerms, ApplicationsPerms


class Role(models.Model):
    """
    Dynamic, admin-manageable role.

    Roles can be created, modified, or deleted at runtime by an
    administrator — no code changes required.

    Default roles seeded by ``setup_rbac``:
        Citizen, Official, Administrator.

    Note on Custom Permissions:
    Custom workflow permissions are defined as constants in
    ``core.permissions_constants`` and registered in each model's
    ``Meta.permissions`` tuple using those constants. For example::

        from core.permissions_constants import ApplicationsPerms
        class Meta:
            permissions = [
                (ApplicationsPerms.CAN_ASSIGN_APPLICATION, "Can (re)assign any application"),
            ]

    Running ``migrate`` populates Django's ``auth_permission`` table.
    The ``setup_rbac`` management command then links these permissions
    to ``Role`` objects — it never creates permissions itself.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    permissions = models.ManyToManyField(
        Permission,
        blank=True,
        verbose_name="Permissions",
        help_text="Specific permissions for this role.",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["name"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Custom user model for the service-request backend.

    Login is supported via *any one* of username / phone_number / email
    together with the password.

    Each user holds exactly **one** role at a time (FK to ``Role``).

    Handler profile
    ---------------
    ``department`` / ``sub_department``
        Routing keys.  ``department`` may carry a long-form suffix after
        the configured separator ("Health – Ministry of Health"); only
        the short-form prefix is compared during selection.
    ``hierarchy_level``
        Seniority tier, ≥ 1.  Escalation moves work to a strictly
        higher tier.
    ``total_assigned_count``
        Lifetime assignment counter.  Incremented atomically by the
        lifecycle engine exactly once per assignment event; never
        edited by hand.

    The *active* workload is never stored: it is counted on demand from
    the applications table.
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    phone_number = models.CharField(
        max_length=15,
        unique=True,
        null=True,
        blank=True,
        verbose_name="Phone Number",
    )

    # ── Single-role assignment (dynamic RBAC) ────────────────────────
    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    # ── Handler profile ──────────────────────────────────────────────
    department = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Department",
        db_index=True,
    )
    sub_department = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Sub-Department",
    )
    hierarchy_level = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        verbose_name="Hierarchy Level",
        help_text="Higher value = more senior tier (receives escalations).",
    )
    rating = models.FloatField(
        default=0.0,
        verbose_name="Rating",
    )
    total_assigned_count = models.PositiveIntegerField(
        default=0,
        verbose_name="Total Assigned",
        help_text="Lifetime number of assignment events.",
    )

    # Fields required when creating a superuser via CLI
    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        permissions = [
            (AccountsPerms.CAN_MANAGE_USERS, "Admin-level user management"),
        ]

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} - {role_name}"

    # ── Helper predicates ────────────────────────────────────────────

    def has_role(self, role_name: str) -> bool:
        """Check if the user's current role matches the given name."""
        return self.role is not None and self.role.name == role_name

    @property
    def is_handler(self) -> bool:
        """
        True when the user's *role* grants the assignable permission.

        Superuser status does not make someone a handler:
        an administrator can act on applications without joining the
        assignment pool.
        """
        if self.role_id is None:
            return False
        return self.role.permissions.filter(
            content_type__app_label=ApplicationsPerms.APP_LABEL,
            codename=ApplicationsPerms.CAN_BE_ASSIGNED_APPLICATION,
        ).exists()

    # ── RBAC Permission Overrides ────────────────────────────────────

    def get_all_permissions(self, obj=None) -> set:
        """
        Return a set of permission strings ('app_label.codename') the user has.
        """
        if not self.is_active:
            return set()

        if self.is_superuser:
            if not hasattr(self, "_superuser_perm_cache"):
                perms = Permission.objects.select_related("content_type").all()
                self._superuser_perm_cache = {f"{p.content_type.app_label}.{p.codename}" for p in perms}
            return self._superuser_perm_cache

        if not self.role:
            return set()

        if not hasattr(self, "_perm_cache"):
            perms = self.role.permissions.select_related("content_type")
            self._perm_cache = {f"{p.content_type.app_label}.{p.codename}" for p in perms}

        return self._perm_cache

    def has_perm(self, perm: str, obj=None) -> bool:
        """
        Check if the user has a specific permission.
        Superusers always have all permissions.
        Otherwise, check if the assigned role has the permission.
        """
        if self.is_active and self.is_superuser:
            return True

        return perm in self.get_all_permissions(obj)

    def has_perms(self, perm_list, obj=None) -> bool:
        return all(self.has_perm(perm, obj) for perm in perm_list)

    def has_module_perms(self, app_label: str) -> bool:
        if self.is_active and self.is_superuser:
            return True

        return any(perm.startswith(f"{app_label}.") for perm in self.get_all_permissions())

    @property
    def permissions_list(self) -> list[str]:
        """
        Sorted list of 'app_label.codename' strings granted to the user.
        Passed to clients so they can render actions conditionally.
        """
        return sorted(self.get_all_permissions())
