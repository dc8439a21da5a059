"""
Management command: setup_rbac
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the database with base **Roles** and links each role to its
set of Django permissions.

Key design principle — **this command does NOT create Permission objects**.
Permissions must already exist in the database:
    • Standard CRUD permissions are auto-created by Django after
      ``migrate`` (one per model × {add, change, delete, view}).
    • Custom workflow permissions are declared in each model's
      ``Meta.permissions`` tuple and inserted by ``migrate``.

The command is **idempotent** — safe to run multiple times.  Existing
roles are updated; permissions are replaced (set) to match the
mapping below.

Usage::

    python manage.py setup_rbac
"""

from django.contrib.auth.models import Permission
from django.core.management.base import BaseCommand

from accounts.models import Role
from core.permissions_constants import AccountsPerms, ApplicationsPerms, CorePerms

# ────────────────────────────────────────────────────────────────────
# Role → Permission mapping  (uses constants — zero hard-coded strings)
# ────────────────────────────────────────────────────────────────────
# Key:   (role_name, description)
# Value: list of (app_label, codename) from ``core.permissions_constants``

_ACCOUNTS = AccountsPerms.APP_LABEL
_APPLICATIONS = ApplicationsPerms.APP_LABEL
_CORE = "core"

ROLE_PERMISSIONS_MAP: dict[tuple[str, str], list[tuple[str, str]]] = {

    # ── Administrator ───────────────────────────────────────────────
    (
        "Administrator",
        "Manages users and handlers, (re)assigns applications, runs lifecycle jobs.",
    ): [
        (_ACCOUNTS, AccountsPerms.VIEW_ROLE), (_ACCOUNTS, AccountsPerms.ADD_ROLE),
        (_ACCOUNTS, AccountsPerms.CHANGE_ROLE), (_ACCOUNTS, AccountsPerms.DELETE_ROLE),
        (_ACCOUNTS, AccountsPerms.VIEW_USER), (_ACCOUNTS, AccountsPerms.ADD_USER),
        (_ACCOUNTS, AccountsPerms.CHANGE_USER), (_ACCOUNTS, AccountsPerms.DELETE_USER),
        (_ACCOUNTS, AccountsPerms.CAN_MANAGE_USERS),
        (_APPLICATIONS, ApplicationsPerms.VIEW_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.CHANGE_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.VIEW_APPLICATIONSTATUSLOG),
        (_APPLICATIONS, ApplicationsPerms.CAN_ASSIGN_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.CAN_RUN_LIFECYCLE_JOBS),
        (_APPLICATIONS, ApplicationsPerms.CAN_SCOPE_ALL_APPLICATIONS),
        (_CORE, CorePerms.VIEW_NOTIFICATION), (_CORE, CorePerms.CHANGE_NOTIFICATION),
        (_CORE, CorePerms.VIEW_FINALIZATIONARTIFACT),
    ],

    # ── Official (Handler) ──────────────────────────────────────────
    (
        "Official",
        "Department handler: receives assignments and escalations, decides applications.",
    ): [
        (_APPLICATIONS, ApplicationsPerms.VIEW_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.VIEW_APPLICATIONSTATUSLOG),
        (_APPLICATIONS, ApplicationsPerms.CAN_BE_ASSIGNED_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.CAN_PROCESS_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.CAN_SCOPE_ASSIGNED_APPLICATIONS),
        (_CORE, CorePerms.VIEW_NOTIFICATION), (_CORE, CorePerms.CHANGE_NOTIFICATION),
        (_CORE, CorePerms.VIEW_FINALIZATIONARTIFACT),
    ],

    # ── Citizen ─────────────────────────────────────────────────────
    (
        "Citizen",
        "Default role: submits applications and follows their progress.",
    ): [
        (_APPLICATIONS, ApplicationsPerms.VIEW_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.ADD_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.VIEW_APPLICATIONSTATUSLOG),
        (_APPLICATIONS, ApplicationsPerms.CAN_SUBMIT_APPLICATION),
        (_APPLICATIONS, ApplicationsPerms.CAN_SCOPE_OWN_APPLICATIONS),
        (_CORE, CorePerms.VIEW_NOTIFICATION), (_CORE, CorePerms.CHANGE_NOTIFICATION),
        (_CORE, CorePerms.VIEW_FINALIZATIONARTIFACT),
    ],
}


class Command(BaseCommand):
    help = (
        "Seeds the database with base Roles and maps each role to its "
        "Django permissions.  Safe to run multiple times (idempotent).  "
        "Does NOT create permissions — run `migrate` first."
    )

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  RBAC Setup — Seeding Roles & Permissions"
            "\n══════════════════════════════════════════\n"
        ))

        # Pre-fetch ALL permissions into a dict for fast look-up
        all_permissions: dict[tuple[str, str], Permission] = {
            (p.content_type.app_label, p.codename): p
            for p in Permission.objects.select_related("content_type").all()
        }

        roles_created = 0
        roles_updated = 0
        warnings = 0

        for (role_name, description), keys in ROLE_PERMISSIONS_MAP.items():
            # ── 1. Idempotent role creation / update ────────────────
            role, created = Role.objects.get_or_create(
                name=role_name,
                defaults={"description": description},
            )

            if not created and role.description != description:
                role.description = description
                role.save(update_fields=["description"])

            # ── 2. Resolve permission codenames ─────────────────────
            resolved_permissions: list[Permission] = []
            for app_label, codename in keys:
                perm = all_permissions.get((app_label, codename))
                if perm is not None:
                    resolved_permissions.append(perm)
                else:
                    warnings += 1
                    self.stdout.write(self.style.WARNING(
                        f"  ⚠  Permission '{app_label}.{codename}' not found — "
                        f"skipped for role '{role_name}'.  "
                        f"(Run migrate first?)"
                    ))

            # ── 3. Set permissions (replaces old set entirely) ──────
            role.permissions.set(resolved_permissions)

            # ── 4. Console output ───────────────────────────────────
            action = "Created" if created else "Updated"
            if created:
                roles_created += 1
            else:
                roles_updated += 1

            self.stdout.write(self.style.SUCCESS(
                f"  ✔  {action} role: {role_name:<20s} "
                f"(permissions={len(resolved_permissions)})"
            ))

        # ── Summary ─────────────────────────────────────────────────
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n──────────────────────────────────────────"
        ))
        summary = (
            f"  Done!  {roles_created} role(s) created, "
            f"{roles_updated} role(s) updated.  "
            f"Total: {roles_created + roles_updated} role(s)."
        )
        if warnings:
            summary += f"  ({warnings} permission warning(s) — see above.)"
        self.stdout.write(self.style.SUCCESS(summary + "\n"))
