from __future__ import annotations

from uuid import UUID

from django.db import models


class GoalQuerySet(models.QuerySet):
    def active(self) -> GoalQuerySet:
        return self.filter(archived_date__isnull=True)

    def archived(self) -> GoalQuerySet:
        return self.filter(archived_date__isnull=False)


class GoalManager(models.Manager):
    def get_queryset(self) -> GoalQuerySet:
        return GoalQuerySet(self.model, using=self._db)

    def active(self) -> GoalQuerySet:
        return self.get_queryset().active()


class AllocationQuerySet(models.QuerySet):
    def for_asset(self, asset_id: UUID) -> AllocationQuerySet:
        return self.filter(asset_id=asset_id)

    def for_goal(self, goal_id: UUID) -> AllocationQuerySet:
        return self.filter(goal_id=goal_id)


class AllocationManager(models.Manager):
    def get_queryset(self) -> AllocationQuerySet:
        return AllocationQuerySet(self.model, using=self._db)

    def for_asset(self, asset_id: UUID) -> AllocationQuerySet:
        return self.get_queryset().for_asset(asset_id)

    def for_goal(self, goal_id: UUID) -> AllocationQuerySet:
        return self.get_queryset().for_goal(goal_id)
