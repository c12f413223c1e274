"""Discount schedules for the per-iteration policy update."""

from mccfr.learner.discounting import DiscountParams, DiscountSchedule, create_schedule

__all__ = ["DiscountParams", "DiscountSchedule", "create_schedule"]
