# backend/sentinel/services/recommendations.py
from typing import List

from sentinel.schemas import InsightsSnapshot, Recommendation, Trend

ATTENDANCE_ALERT_THRESHOLD = 70   # percent
ENGAGEMENT_ALERT_THRESHOLD = 60   # percent
SLEEPY_LIMIT = 3
BORED_LIMIT = 2


def generate_recommendations(insights: InsightsSnapshot) -> List[Recommendation]:
    """
    Threshold rules over a snapshot. Each rule is evaluated independently and
    emitted in this fixed order; an empty list means nothing needs attention.
    """
    out: List[Recommendation] = []
    counts = insights.emotion_counts

    if insights.attendance_rate < ATTENDANCE_ALERT_THRESHOLD:
        out.append(Recommendation(
            type="attendance",
            priority="high",
            message="Send attendance alerts to absent students and review patterns for early intervention",
        ))

    if insights.engagement_score < ENGAGEMENT_ALERT_THRESHOLD:
        out.append(Recommendation(
            type="engagement",
            priority="high",
            message="Incorporate more interactive activities and consider changing teaching pace",
        ))

    if counts.get("sleepy", 0) > SLEEPY_LIMIT:
        out.append(Recommendation(
            type="environment",
            priority="medium",
            message="Check room ventilation and lighting, consider energizer activities",
        ))

    if counts.get("bored", 0) > BORED_LIMIT:
        out.append(Recommendation(
            type="content",
            priority="medium",
            message="Introduce multimedia content or group activities to increase engagement",
        ))

    if insights.trend == Trend.DECREASING:
        out.append(Recommendation(
            type="trend",
            priority="medium",
            message="Declining attendance trend detected - investigate underlying causes",
        ))

    return out
