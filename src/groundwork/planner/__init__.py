"""Planner: change entries to ordered waves of provider steps."""

from groundwork.planner.models import Plan, PlanStep, StepPhase, step_id
from groundwork.planner.planner import Planner

__all__ = ["Plan", "PlanStep", "Planner", "StepPhase", "step_id"]
