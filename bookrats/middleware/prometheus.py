"""Prometheus metrics middleware and custom metrics."""

from prometheus_client import Counter, Info
from prometheus_fastapi_instrumentator import Instrumentator, metrics
from fastapi import FastAPI


# =============================================================================
# Custom Metrics
# =============================================================================

APP_INFO = Info("bookrats_app", "Application information")

CHECKINS_CREATED = Counter(
    "bookrats_checkins_created_total",
    "Total check-ins recorded",
)

GROUPS_CREATED = Counter(
    "bookrats_groups_created_total",
    "Total groups created",
)

MEMBERS_JOINED = Counter(
    "bookrats_members_joined_total",
    "Total memberships created through invites",
)


# =============================================================================
# Instrumentator Setup
# =============================================================================

def setup_prometheus(app: FastAPI, app_version: str = "1.0.0") -> Instrumentator:
    """Setup Prometheus metrics instrumentation.

    Args:
        app: FastAPI application instance
        app_version: Application version string

    Returns:
        Configured Instrumentator instance
    """
    APP_INFO.info({
        "version": app_version,
        "app_name": "bookrats",
    })

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        excluded_handlers=["/health", "/metrics"],
    )

    instrumentator.add(
        metrics.default(
            metric_namespace="bookrats",
            metric_subsystem="http",
        )
    )

    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint="/metrics", include_in_schema=True, tags=["Monitoring"])

    return instrumentator
