"""
Profile listing, self-service updates and summary statistics.
"""

import logging
from datetime import timedelta

from django.db.models import Count, Q
from django.db.models.functions import TruncDate
from django.utils import timezone
from rest_framework.fields import empty

from core.datastore import Datastore
from core.exceptions import ResourceNotFound
from core.query_utils import build_search_query, build_update_query, db_value

from ..models import Profile, Role

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 30


class ProfileService:
    def __init__(self, datastore=None):
        self.datastore = datastore or Datastore()

    def list_profiles(self, search=None, role=None, status=None):
        queryset = Profile.objects.select_related("user").order_by("-created_at")
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(user__email__icontains=search)
            )
        return build_search_query(queryset, {"role": role, "status": status})

    def get_profile(self, profile_id):
        try:
            return Profile.objects.select_related("user").get(pk=profile_id)
        except Profile.DoesNotExist:
            raise ResourceNotFound("Profile not found", "PROFILE_NOT_FOUND")

    def update_profile(self, actor, profile_id, changes):
        """
        Update name and/or phone of a profile.

        Args:
            actor: Authenticated caller (already authorized for this profile)
            profile_id: Target profile id
            changes: Validated fields; absent fields are left untouched

        Returns:
            Profile: The refreshed profile
        """
        self.get_profile(profile_id)

        query = build_update_query(
            "profiles",
            {"name": changes.get("name", empty), "phone": changes.get("phone", empty)},
            "id = %s",
            [db_value("profiles", "id", profile_id, using=self.datastore.alias)],
            using=self.datastore.alias,
        )
        self.datastore.execute(query)

        logger.info(
            "Profile updated",
            extra={
                "actor_id": str(actor.id),
                "profile_id": str(profile_id),
                "fields": sorted(changes.keys()),
                "action": "profile_update_success",
                "component": "ProfileService",
            },
        )
        return self.get_profile(profile_id)

    def get_summary(self):
        """
        Account statistics: totals by status and role, logins and registrations
        over the last 30 days.

        Returns:
            dict: ``summary`` counters and ``recent_registrations`` per day
        """
        since = timezone.now() - timedelta(days=RECENT_WINDOW_DAYS)

        summary = Profile.objects.aggregate(
            total_users=Count("pk"),
            active_users=Count("pk", filter=Q(status=True)),
            inactive_users=Count("pk", filter=Q(status=False)),
            admin_users=Count("pk", filter=Q(role=Role.ADMINISTRATOR)),
            manager_users=Count("pk", filter=Q(role=Role.MANAGER)),
            viewer_users=Count("pk", filter=Q(role=Role.VIEWER)),
            recent_logins=Count("pk", filter=Q(last_login__gte=since)),
        )

        recent_registrations = [
            {"date": row["date"].isoformat(), "count": row["count"]}
            for row in Profile.objects.filter(created_at__gte=since)
            .annotate(date=TruncDate("created_at"))
            .values("date")
            .annotate(count=Count("pk"))
            .order_by("-date")
        ]

        logger.debug(
            "Profile statistics computed",
            extra={
                "total_users": summary["total_users"],
                "action": "profile_stats_computed",
                "component": "ProfileService",
            },
        )
        return {"summary": summary, "recent_registrations": recent_registrations}
