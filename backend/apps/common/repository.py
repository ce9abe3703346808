from typing import Generic, Iterable, Optional, Type, TypeVar

from django.db import models

T = TypeVar("T", bound=models.Model)


class GenericRepository(Generic[T]):
    def __init__(self, model: Type[T]):
        self.model = model

    def queryset(self) -> models.QuerySet:
        return self.model.objects.all()

    def get(self, **filters) -> Optional[T]:
        return self.queryset().filter(**filters).first()

    def list(self, **filters) -> Iterable[T]:
        return self.queryset().filter(**filters)

    def exists(self, **filters) -> bool:
        return self.queryset().filter(**filters).exists()

    def create(self, **data) -> T:
        return self.model.objects.create(**data)

    def update(self, obj: T, **data) -> T:
        for k, v in data.items():
            setattr(obj, k, v)
        obj.save()
        return obj

    def delete(self, obj: T):
        obj.delete()


class SoftDeleteRepository(GenericRepository[T]):
    """Repository whose reads only ever see rows with ``deleted=False``.

    Every finder goes through :meth:`queryset`, so the soft-delete predicate
    lives in exactly one place. ``delete`` flags the row instead of removing it.
    """

    def queryset(self) -> models.QuerySet:
        return self.model.objects.active()

    def delete(self, obj: T):
        obj.mark_deleted()
