"""
Authentication models.

- User: email-based account for business owners and their team members

A business owner holds the ledger and payment settings; helpers are team
members attached to an owner and are paid out per job through a payout
policy (see settlement.models.HelperPayoutPolicy).

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        full_name: Display name shown on invoices and exports
        role: OWNER runs a business, HELPER works jobs for an owner
        team_owner: For helpers, the owner whose team they belong to
        is_active / is_staff: Django account flags

    Usage:
        owner = User.objects.create_user(email="owner@example.com", password="...")
        helper = User.objects.create_user(
            email="helper@example.com",
            role=User.Role.HELPER,
            team_owner=owner,
        )
    """

    class Role(models.TextChoices):
        OWNER = "owner", "Owner"
        HELPER = "helper", "Helper"

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    full_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Display name",
    )
    role = models.CharField(
        max_length=10,
        choices=Role.choices,
        default=Role.OWNER,
        db_index=True,
    )
    team_owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="helpers",
        help_text="Owner this helper works for",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(role="owner", team_owner__isnull=True)
                | models.Q(role="helper", team_owner__isnull=False),
                name="user_helper_has_owner",
            ),
        ]

    def __str__(self):
        return self.email

    def clean(self):
        super().clean()
        if self.role == self.Role.HELPER and self.team_owner_id is None:
            raise ValidationError({"team_owner": "Helpers must belong to an owner."})
        if self.role == self.Role.OWNER and self.team_owner_id is not None:
            raise ValidationError({"team_owner": "Owners cannot belong to a team."})

    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        return self.full_name.split(" ")[0] if self.full_name else self.email.split("@")[0]

    @property
    def is_owner(self) -> bool:
        return self.role == self.Role.OWNER
