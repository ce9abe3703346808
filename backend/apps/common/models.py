from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):
    def active(self):
        """Rows that have not been soft-deleted."""
        return self.filter(deleted=False)

    def soft_delete(self) -> int:
        return self.update(deleted=True, deleted_at=timezone.now())


class SoftDeleteModel(models.Model):
    """Abstract base for rows that are flagged as deleted instead of removed."""

    deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    def mark_deleted(self, *, commit: bool = True):
        self.deleted = True
        self.deleted_at = timezone.now()
        if commit:
            self.save(update_fields=["deleted", "deleted_at"])
        return self
