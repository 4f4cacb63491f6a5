"""Startup reconciliation."""

from communitree.reconcile.startup import InitResult, StartupReconciler, default_preferences

__all__ = ["InitResult", "StartupReconciler", "default_preferences"]
