"""
Learner-facing feedback content

Builds presentation-neutral VisualFeedback for support actions. Message text is
deterministic given the action parameters; the only choice (a break activity)
is made with an injectable random generator.
"""
from typing import Dict, Optional
import random

from .actions import AdaptationAction, AdaptationType, VisualFeedback

BREAK_ACTIVITIES = [
    "stretch your legs",
    "take deep breaths",
    "look away from the screen",
    "grab some water",
    "do some light stretching",
]

ENCOURAGEMENT_MESSAGES = {
    "general": "Great effort, {name}! You're making real progress. Keep going!",
    "struggling": "Don't give up, {name}! Learning takes time, and you're doing better than you think.",
    "breakthrough": "Excellent work, {name}! You're really getting the hang of this.",
    "persistence": "Your persistence is paying off, {name}! Each attempt is making you stronger.",
}

HINT_DURATION_MS = 10000
ENCOURAGEMENT_DURATION_MS = 8000
BREAK_DURATION_MS = 0  # Dismissed by the learner

STYLE_HINTS = {
    AdaptationType.HINTS: {"tone": "info", "emphasis": "low"},
    AdaptationType.ENCOURAGEMENT: {"tone": "success", "emphasis": "medium", "align": "center"},
    AdaptationType.BREAK_SUGGESTION: {"tone": "neutral", "emphasis": "high", "dismissible": "true"},
}


def hint_message(hint_level: str, subject: str) -> str:
    if hint_level == "detailed":
        return (
            f"Detailed Hint: Let's break this down step by step. Focus on the key concept "
            f"in {subject} and try applying the basic principles you've learned."
        )
    return f"Quick Tip: Remember the fundamentals of {subject} - you've got this!"


def encouragement_message(message_type: str, name: Optional[str] = None) -> str:
    template = ENCOURAGEMENT_MESSAGES.get(message_type, ENCOURAGEMENT_MESSAGES["general"])
    return template.format(name=name or "there")


def break_message(break_type: str, activity: str) -> str:
    if break_type == "long":
        return (
            f"Time for a proper break! You've been learning for a while. "
            f"Try to {activity} and come back refreshed in 10-15 minutes."
        )
    return f"Quick break time! Take 2-3 minutes to {activity} and return with fresh energy."


def suggest_break_activity(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(BREAK_ACTIVITIES)


class FeedbackBuilder:
    """Turns support actions into VisualFeedback and system messages"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def build(
        self,
        action: AdaptationAction,
        subject: str = "general",
        learner_name: Optional[str] = None,
    ) -> Dict:
        """
        Feedback for a support action

        Returns:
            Dict with optional "visual_feedback", "system_message" and
            "parameters" (extra parameters chosen while building)
        """
        params = action.parameters

        if action.type == AdaptationType.HINTS:
            return {
                "visual_feedback": VisualFeedback(
                    type="tooltip",
                    content=hint_message(params.get("hint_level", "subtle"), params.get("subject", subject)),
                    duration_ms=HINT_DURATION_MS,
                    style_hints=dict(STYLE_HINTS[AdaptationType.HINTS]),
                ),
                "system_message": "Hint available - click the help icon for guidance",
            }

        if action.type == AdaptationType.ENCOURAGEMENT:
            return {
                "visual_feedback": VisualFeedback(
                    type="popup",
                    content=encouragement_message(params.get("message_type", "general"), learner_name),
                    duration_ms=ENCOURAGEMENT_DURATION_MS,
                    style_hints=dict(STYLE_HINTS[AdaptationType.ENCOURAGEMENT]),
                ),
            }

        if action.type == AdaptationType.BREAK_SUGGESTION:
            activity = params.get("suggested_activity") or suggest_break_activity(self.rng)
            return {
                "visual_feedback": VisualFeedback(
                    type="overlay",
                    content=break_message(params.get("break_type", "short"), activity),
                    duration_ms=BREAK_DURATION_MS,
                    style_hints=dict(STYLE_HINTS[AdaptationType.BREAK_SUGGESTION]),
                ),
                "system_message": "Break time suggested - your mind needs a rest!",
                "parameters": {"suggested_activity": activity},
            }

        if action.type == AdaptationType.PACING:
            slow_down = params.get("slow_down", True)
            return {
                "system_message": (
                    "Content pacing adjusted for better comprehension"
                    if slow_down
                    else "Content pace increased to match your learning speed"
                ),
            }

        return {"system_message": f"Applied {action.type.value} adaptation"}
