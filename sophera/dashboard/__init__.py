"""Dashboard: one aggregate view over the patient's records."""

from sophera.dashboard.service import Dashboard, DashboardStats, build_dashboard

__all__ = ["Dashboard", "DashboardStats", "build_dashboard"]
