# backend/sentinel/services/assistant.py
"""
Conversational assistant boundary.

The hosted chat-completions service gets the same InsightsSnapshot the
dashboard shows, rendered as a context block. When it is unconfigured,
unreachable or returns garbage, a templated reply is built locally from the
snapshot instead; the intent for that reply comes from a small keyword table.
"""
import asyncio
import json
import logging
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

import requests

from sentinel.schemas import InsightsSnapshot, Trend
from sentinel.services.recommendations import generate_recommendations

logger = logging.getLogger(__name__)


class AssistantUnavailable(Exception):
    """The hosted assistant could not produce a reply."""


class Intent(str, Enum):
    ATTENDANCE = "attendance"
    ENGAGEMENT = "engagement"
    RECOMMENDATIONS = "recommendations"
    SUMMARY = "summary"
    TREND = "trend"
    HELP = "help"
    FORECAST = "forecast"
    GENERAL = "general"


# first matching row wins
INTENT_KEYWORDS: Tuple[Tuple[Intent, Tuple[str, ...]], ...] = (
    (Intent.ATTENDANCE, ("attendance", "present")),
    (Intent.ENGAGEMENT, ("engagement", "emotion")),
    (Intent.RECOMMENDATIONS, ("recommend", "suggest")),
    (Intent.SUMMARY, ("summary", "report")),
    (Intent.TREND, ("trend", "pattern")),
    (Intent.HELP, ("help", "what can you")),
    (Intent.FORECAST, ("predict", "forecast")),
)


def classify_intent(message: str) -> Intent:
    text = (message or "").lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(k in text for k in keywords):
            return intent
    return Intent.GENERAL


# ---------------------------
# CONTEXT BLOCK
# ---------------------------
def build_context(insights: InsightsSnapshot) -> str:
    return (
        "You are an AI assistant for SmartClass Sentinel+, a classroom attendance and "
        "engagement tracking system. You have access to real-time classroom data and "
        "should provide intelligent, actionable insights.\n\n"
        "Current Classroom Data:\n"
        f"- Total Students: {insights.total_students}\n"
        f"- Present Today: {insights.present_students} ({insights.attendance_rate}%)\n"
        f"- Engagement Score: {insights.engagement_score}%\n"
        f"- Dominant Emotion: {insights.dominant_emotion}\n"
        f"- Total Records Today: {insights.total_records}\n"
        f"- Attendance Trend: {Trend(insights.trend).value}\n"
        f"- Weekly Average: {insights.avg_attendance} students\n\n"
        f"Emotion Breakdown: {json.dumps(insights.emotion_counts)}\n\n"
        "Your role is to analyse the data, identify patterns and trends, suggest "
        "interventions for low engagement or attendance, and answer questions about "
        "student behavior. Be conversational and practical, and use bullet points "
        "when listing recommendations."
    )


# ---------------------------
# FALLBACK TEMPLATES
# ---------------------------
def _attendance_reply(message: str, s: InsightsSnapshot) -> str:
    if s.attendance_rate >= 80:
        verdict = "Great attendance today!"
    elif s.attendance_rate >= 60:
        verdict = "Moderate attendance - consider following up with absent students."
    else:
        verdict = "Low attendance - immediate action recommended."
    return (f"Today's attendance is {s.attendance_rate}% with {s.present_students} "
            f"out of {s.total_students} students present. {verdict}")


def _engagement_reply(message: str, s: InsightsSnapshot) -> str:
    breakdown = ", ".join(f"{e}: {c}" for e, c in s.emotion_counts.items()) or "No data yet"
    if s.engagement_score >= 70:
        verdict = "Students are highly engaged!"
    elif s.engagement_score >= 50:
        verdict = "Moderate engagement - consider interactive activities."
    else:
        verdict = "Low engagement detected - recommend energizing the class."
    return (f"Current engagement score is {s.engagement_score}%. Dominant emotion: "
            f"{s.dominant_emotion}. Breakdown: {breakdown}. {verdict}")


def _recommendations_reply(message: str, s: InsightsSnapshot) -> str:
    recs = generate_recommendations(s)
    if not recs:
        return "Great job! Your class is performing well. Keep up the excellent engagement strategies."
    lines = "\n".join(f"- [{r.priority}] {r.message}" for r in recs)
    return f"Based on current data, here are my recommendations:\n\n{lines}"


def _summary_reply(message: str, s: InsightsSnapshot) -> str:
    if s.attendance_rate >= 80 and s.engagement_score >= 70:
        closing = "Excellent classroom performance!"
    else:
        closing = "Areas for improvement identified - ask for recommendations!"
    return ("Classroom Summary\n\n"
            f"Attendance: {s.present_students}/{s.total_students} ({s.attendance_rate}%)\n"
            f"Engagement: {s.engagement_score}%\n"
            f"Dominant Emotion: {s.dominant_emotion}\n"
            f"Total Records: {s.total_records}\n\n"
            f"{closing}")


def _trend_reply(message: str, s: InsightsSnapshot) -> str:
    trend = Trend(s.trend)
    closing = {
        Trend.INCREASING: "Positive trend!",
        Trend.DECREASING: "Declining attendance needs attention.",
        Trend.STABLE: "Stable attendance pattern.",
    }[trend]
    return ("Weekly Trends\n\n"
            f"Average attendance over 7 days: {s.avg_attendance} students\n"
            f"Trend: {trend.value}\n"
            f"Today vs. week ago: {s.daily_attendance[-1]} vs {s.daily_attendance[0]} students\n\n"
            f"{closing}")


def _help_reply(message: str, s: InsightsSnapshot) -> str:
    return ("I can help you with:\n\n"
            "- Analytics: attendance rates, engagement scores, trends\n"
            "- Emotions: insights on student emotions and engagement\n"
            "- Recommendations: suggestions to improve your class\n"
            "- Reports: summaries and detailed breakdowns\n"
            "- Patterns: trends and concerning patterns\n\n"
            "Try asking: \"What's my attendance today?\" or \"Give me recommendations\"")


def _forecast_reply(message: str, s: InsightsSnapshot) -> str:
    focused = s.emotion_counts.get("focused", 0)
    sleepy = s.emotion_counts.get("sleepy", 0)
    timing = "Morning sessions work well" if focused > sleepy else "Consider afternoon energy boosters"
    risk = "Low engagement trend detected" if s.engagement_score < 60 else "Positive engagement trajectory"
    return ("Predictive Analysis\n\n"
            f"- Next class attendance: around {s.attendance_rate}% (based on today)\n"
            f"- Optimal teaching time: {timing}\n"
            f"- Risk factors: {risk}")


def _general_reply(message: str, s: InsightsSnapshot) -> str:
    return (f"I understand you're asking about \"{message}\". Based on your current classroom data:\n\n"
            f"- {s.total_records} interactions recorded today\n"
            f"- {s.attendance_rate}% attendance rate\n"
            f"- {s.engagement_score}% engagement level\n\n"
            "For more specific insights, try asking about attendance, engagement, "
            "recommendations, or trends!")


TEMPLATES: Dict[Intent, Callable[[str, InsightsSnapshot], str]] = {
    Intent.ATTENDANCE: _attendance_reply,
    Intent.ENGAGEMENT: _engagement_reply,
    Intent.RECOMMENDATIONS: _recommendations_reply,
    Intent.SUMMARY: _summary_reply,
    Intent.TREND: _trend_reply,
    Intent.HELP: _help_reply,
    Intent.FORECAST: _forecast_reply,
    Intent.GENERAL: _general_reply,
}


def fallback_response(message: str, insights: InsightsSnapshot) -> str:
    return TEMPLATES[classify_intent(message)](message, insights)


# ---------------------------
# HOSTED SERVICE CLIENT
# ---------------------------
class AssistantClient:
    """Thin client for an OpenAI-compatible chat-completions endpoint."""

    def __init__(self, api_url: str, api_key: Optional[str] = None, model: str = "grok-beta",
                 timeout: float = 30.0, temperature: float = 0.7, max_tokens: int = 1000,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self.last_error: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def reachable(self) -> bool:
        """Configured and the last call (if any) succeeded."""
        return self.configured and self.last_error is None

    def complete(self, message: str, insights: InsightsSnapshot) -> str:
        if not self.configured:
            raise AssistantUnavailable("assistant API key is not configured")

        payload = {
            "messages": [
                {"role": "system", "content": build_context(insights)},
                {"role": "user", "content": message},
            ],
            "model": self.model,
            "stream": False,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        try:
            resp = self.session.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except requests.exceptions.RequestException as e:
            self.last_error = str(e)
            raise AssistantUnavailable(f"assistant request failed: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self.last_error = f"malformed response: {e!r}"
            raise AssistantUnavailable(self.last_error) from e

        if not isinstance(content, str):
            self.last_error = "malformed response: content is not text"
            raise AssistantUnavailable(self.last_error)

        self.last_error = None
        return content

    async def reply(self, message: str, insights: InsightsSnapshot) -> Tuple[str, bool]:
        """Return (text, fallback). Never raises for collaborator failures."""
        try:
            text = await asyncio.to_thread(self.complete, message, insights)
            return text, False
        except AssistantUnavailable as e:
            logger.warning("assistant unavailable, using template reply: %s", e)
            return fallback_response(message, insights), True
