from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class BaseModel(TimeStampedModel):
    id = models.BigAutoField(primary_key=True)

    class Meta:
        abstract = True


class AppendOnlyModel(BaseModel):
    """Rows are written once and never updated or deleted."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:  # type: ignore[override]
        if not self._state.adding:
            raise ValidationError(f"{type(self).__name__} rows are immutable. Create a new row instead.")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):  # type: ignore[override]
        raise ValidationError(f"{type(self).__name__} rows are immutable; deletion is not allowed.")
