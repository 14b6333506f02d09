"""Recommendation Engine - rule-based sleep guidance.

Inspects the last 14 nights and emits prioritized recommendations. Each check
contributes at most one recommendation; the result is sorted by priority and
gets a positive-reinforcement item prepended when nothing above low priority
was found. The engine is stateless and deterministic for the same inputs.
"""

from collections.abc import Callable, Sequence
from datetime import date, tzinfo
from enum import IntEnum, StrEnum
import logging

import numpy as np
from pydantic import BaseModel, Field

from sleep_sentinel.analysis.night_assignment import to_local
from sleep_sentinel.analysis.sleep_metrics import (
    is_on_schedule,
    midpoint_stdev_hours,
    social_jetlag_hours,
)
from sleep_sentinel.models.settings import ScheduleTarget
from sleep_sentinel.models.sleep_data import SECONDS_PER_HOUR, NightHistory, NightSummary

logger = logging.getLogger(__name__)

RECOMMENDATION_WINDOW = 14

# Duration (hours)
SHORT_SLEEP_HOURS = 6.5
LONG_SLEEP_HOURS = 9.5

# Consistency (hours of midpoint stdev)
CONSISTENCY_MIN_VALUES = 5
CONSISTENCY_HIGH_HOURS = 2.0
CONSISTENCY_MEDIUM_HOURS = 1.0

# Schedule adherence (percent on schedule)
ADHERENCE_HIGH_PERCENT = 50.0
ADHERENCE_MEDIUM_PERCENT = 75.0

# Efficiency (percent)
EFFICIENCY_HIGH_PERCENT = 75.0
EFFICIENCY_LOW_PERCENT = 85.0

# Social jetlag (hours)
JETLAG_HIGH_HOURS = 2.0
JETLAG_MEDIUM_HOURS = 1.0

# Late bedtime window, local hour in [1, 6)
LATE_BEDTIME_START_HOUR = 1
LATE_BEDTIME_END_HOUR = 6

OnSchedulePredicate = Callable[[NightSummary], bool]


class RecommendationCategory(StrEnum):
    """Stable category tag of a recommendation."""

    DURATION = "duration"
    CONSISTENCY = "consistency"
    SCHEDULE = "schedule"
    EFFICIENCY = "efficiency"
    SOCIAL_JETLAG = "social_jetlag"
    BEDTIME = "bedtime"
    POSITIVE = "positive"
    GENERAL = "general"


class RecommendationPriority(IntEnum):
    """Priority ordering, higher first."""

    HIGH = 3
    MEDIUM = 2
    LOW = 1

    @property
    def label(self) -> str:
        return {
            RecommendationPriority.HIGH: "High Priority",
            RecommendationPriority.MEDIUM: "Medium Priority",
            RecommendationPriority.LOW: "Good Job",
        }[self]


class Recommendation(BaseModel):
    """One piece of human-readable sleep guidance."""

    category: RecommendationCategory
    priority: RecommendationPriority
    title: str
    description: str
    actionable: bool = False
    action: str | None = Field(None, description="Suggested next step")


START_TRACKING = Recommendation(
    category=RecommendationCategory.GENERAL,
    priority=RecommendationPriority.LOW,
    title="Start Tracking",
    description="Begin tracking your sleep to receive personalized recommendations",
    actionable=False,
)

GREAT_HABITS = Recommendation(
    category=RecommendationCategory.POSITIVE,
    priority=RecommendationPriority.LOW,
    title="Great Sleep Habits!",
    description="Your sleep patterns are excellent. Keep maintaining your current routine!",
    actionable=False,
)


class RecommendationsEngine:
    """Generates personalized recommendations from the night history."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz
        self.logger = logging.getLogger(__name__)

    def generate(
        self,
        nights: NightHistory | Sequence[NightSummary],
        target: ScheduleTarget,
        is_on_schedule_check: OnSchedulePredicate | None = None,
        reference_date: date | None = None,
    ) -> list[Recommendation]:
        """Generate recommendations for nights ordered most recent first.

        Args:
            nights: Night history, most recent first
            target: Schedule target used by the default on-schedule predicate
            is_on_schedule_check: Caller-supplied on-schedule predicate
            reference_date: Reference day for the default predicate

        Returns:
            Recommendations sorted by priority, highest first
        """
        all_nights = nights.nights if isinstance(nights, NightHistory) else list(nights)
        if not all_nights:
            return [START_TRACKING.model_copy()]

        predicate = is_on_schedule_check or (
            lambda night: is_on_schedule(night, target, reference_date, self.tz)
        )

        recent = all_nights[:RECOMMENDATION_WINDOW]

        candidates = [
            self._check_sleep_duration(recent),
            self._check_consistency(recent),
            self._check_schedule_adherence(recent, predicate),
            self._check_sleep_efficiency(recent),
            self._check_social_jetlag(recent),
            self._check_bedtime_patterns(recent),
        ]
        recommendations = [rec for rec in candidates if rec is not None]
        recommendations.sort(key=lambda rec: rec.priority, reverse=True)

        if all(rec.priority is RecommendationPriority.LOW for rec in recommendations):
            recommendations.insert(0, GREAT_HABITS.model_copy())

        self.logger.debug(
            "Generated recommendations",
            extra={
                "nights": len(recent),
                "categories": [rec.category.value for rec in recommendations],
            },
        )
        return recommendations

    # Individual checks

    @staticmethod
    def _check_sleep_duration(nights: Sequence[NightSummary]) -> Recommendation | None:
        asleep = [n.time_asleep for n in nights if n.time_asleep is not None]
        if not asleep:
            return None

        avg_hours = float(np.mean(asleep)) / SECONDS_PER_HOUR

        if avg_hours < SHORT_SLEEP_HOURS:
            return Recommendation(
                category=RecommendationCategory.DURATION,
                priority=RecommendationPriority.HIGH,
                title="Increase Sleep Duration",
                description=(
                    f"You're averaging {avg_hours:.1f} hours of sleep. "
                    "Aim for 7-9 hours for optimal health and performance."
                ),
                actionable=True,
                action="Try going to bed 30 minutes earlier tonight",
            )
        if avg_hours > LONG_SLEEP_HOURS:
            return Recommendation(
                category=RecommendationCategory.DURATION,
                priority=RecommendationPriority.MEDIUM,
                title="Monitor Oversleeping",
                description=(
                    f"You're averaging {avg_hours:.1f} hours. While rest is important, "
                    "consistently sleeping over 9 hours may indicate underlying issues."
                ),
                actionable=True,
                action="Consider consulting a healthcare provider if fatigue persists",
            )
        return None

    def _check_consistency(self, nights: Sequence[NightSummary]) -> Recommendation | None:
        stdev = midpoint_stdev_hours(nights, CONSISTENCY_MIN_VALUES, self.tz)
        if stdev is None:
            return None

        if stdev > CONSISTENCY_HIGH_HOURS:
            return Recommendation(
                category=RecommendationCategory.CONSISTENCY,
                priority=RecommendationPriority.HIGH,
                title="Improve Sleep Consistency",
                description=(
                    f"Your sleep timing varies by ±{stdev:.1f} hours. "
                    "Consistent sleep schedules improve sleep quality."
                ),
                actionable=True,
                action=(
                    "Try to go to bed and wake up at the same time every day, "
                    "even on weekends"
                ),
            )
        if stdev > CONSISTENCY_MEDIUM_HOURS:
            return Recommendation(
                category=RecommendationCategory.CONSISTENCY,
                priority=RecommendationPriority.MEDIUM,
                title="Maintain Sleep Routine",
                description=(
                    f"Your sleep timing varies by ±{stdev:.1f} hours. "
                    "A bit more consistency could help."
                ),
                actionable=True,
                action="Set a consistent bedtime alarm to improve your routine",
            )
        return None

    @staticmethod
    def _check_schedule_adherence(
        nights: Sequence[NightSummary], is_on_schedule_check: OnSchedulePredicate
    ) -> Recommendation | None:
        on_schedule = sum(1 for n in nights if is_on_schedule_check(n))
        percentage = on_schedule / len(nights) * 100

        if percentage < ADHERENCE_HIGH_PERCENT:
            return Recommendation(
                category=RecommendationCategory.SCHEDULE,
                priority=RecommendationPriority.HIGH,
                title="Align with Target Schedule",
                description=(
                    f"You're only on schedule {int(percentage)}% of the time. "
                    "Sticking to your target sleep times can improve sleep quality."
                ),
                actionable=True,
                action="Review your target bedtime and make it realistic for your lifestyle",
            )
        if percentage < ADHERENCE_MEDIUM_PERCENT:
            return Recommendation(
                category=RecommendationCategory.SCHEDULE,
                priority=RecommendationPriority.MEDIUM,
                title="Improve Schedule Adherence",
                description=(
                    f"You're on schedule {int(percentage)}% of the time. "
                    "You're doing well, but there's room for improvement."
                ),
                actionable=True,
                action="Try winding down 1 hour before your target bedtime",
            )
        return None

    @staticmethod
    def _check_sleep_efficiency(nights: Sequence[NightSummary]) -> Recommendation | None:
        efficiencies = [n.efficiency for n in nights if n.efficiency is not None]
        if not efficiencies:
            return None

        avg_efficiency = float(np.mean(efficiencies))

        if avg_efficiency < EFFICIENCY_HIGH_PERCENT:
            return Recommendation(
                category=RecommendationCategory.EFFICIENCY,
                priority=RecommendationPriority.HIGH,
                title="Improve Sleep Efficiency",
                description=(
                    f"Your average sleep efficiency is {int(avg_efficiency)}%. "
                    "This means you're spending too much time awake in bed."
                ),
                actionable=True,
                action=(
                    "Only use your bed for sleep. If you can't fall asleep after "
                    "20 minutes, get up and do a calm activity"
                ),
            )
        if avg_efficiency < EFFICIENCY_LOW_PERCENT:
            return Recommendation(
                category=RecommendationCategory.EFFICIENCY,
                priority=RecommendationPriority.LOW,
                title="Good Sleep Efficiency",
                description=(
                    f"Your sleep efficiency is {int(avg_efficiency)}%. "
                    "A bit of improvement could help you feel more rested."
                ),
                actionable=True,
                action="Avoid screens 30 minutes before bed to improve sleep onset",
            )
        return None

    def _check_social_jetlag(self, nights: Sequence[NightSummary]) -> Recommendation | None:
        jetlag = social_jetlag_hours(nights, self.tz)
        if jetlag is None:
            return None

        if jetlag > JETLAG_HIGH_HOURS:
            return Recommendation(
                category=RecommendationCategory.SOCIAL_JETLAG,
                priority=RecommendationPriority.HIGH,
                title="Reduce Weekend Sleep Shifts",
                description=(
                    f"Your weekend sleep differs by {jetlag:.1f} hours from weekdays. "
                    "This 'social jetlag' can affect your energy levels."
                ),
                actionable=True,
                action="Try to keep weekend sleep times within 1 hour of your weekday schedule",
            )
        if jetlag > JETLAG_MEDIUM_HOURS:
            return Recommendation(
                category=RecommendationCategory.SOCIAL_JETLAG,
                priority=RecommendationPriority.MEDIUM,
                title="Mild Social Jetlag",
                description=(
                    f"Your weekend sleep differs by {jetlag:.1f} hours. "
                    "Reducing this gap could improve Monday energy."
                ),
                actionable=True,
                action="Avoid sleeping in more than 1 hour on weekends",
            )
        return None

    def _check_bedtime_patterns(self, nights: Sequence[NightSummary]) -> Recommendation | None:
        late_bedtimes = sum(
            1
            for n in nights
            if n.bedtime is not None
            and LATE_BEDTIME_START_HOUR
            <= to_local(n.bedtime, self.tz).hour
            < LATE_BEDTIME_END_HOUR
        )

        if late_bedtimes > len(nights) // 2:
            return Recommendation(
                category=RecommendationCategory.BEDTIME,
                priority=RecommendationPriority.MEDIUM,
                title="Earlier Bedtime Recommended",
                description=(
                    "You're frequently going to bed after 1 AM. Earlier bedtimes "
                    "align better with natural circadian rhythms."
                ),
                actionable=True,
                action="Gradually shift your bedtime 15 minutes earlier each week",
            )
        return None


def generate_recommendations(
    nights: NightHistory | Sequence[NightSummary],
    target: ScheduleTarget,
    is_on_schedule_check: OnSchedulePredicate | None = None,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> list[Recommendation]:
    """Functional entry point for `RecommendationsEngine.generate`."""
    return RecommendationsEngine(tz).generate(
        nights, target, is_on_schedule_check, reference_date
    )
