"""PlanPolicy and HTTPRoute views."""

from devportal.managers.planpolicy.planpolicy import PlanPolicyManager, summarize_plan_policy

__all__ = ["PlanPolicyManager", "summarize_plan_policy"]
