"""Emotion engine: named levels that colour prompts and trigger self-assessment."""

import logging
from collections import deque
from typing import Deque, Dict, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_EMOTIONS = {
    "curiosity": 0.5,
    "joy": 0.5,
    "fear": 0.0,
    "frustration": 0.0,
    "anticipation": 0.0,
    "pride": 0.0,
    "regret": 0.0,
    "boredom": 0.0,
}


class EmotionEngine:
    """
    Named emotion levels, normalized to sum to 1.

    Motivation is curiosity + joy - boredom - frustration.
    """

    def __init__(
        self,
        initial: Optional[Mapping[str, float]] = None,
        history_limit: int = 1000,
    ):
        self.emotions: Dict[str, float] = dict(initial if initial is not None else DEFAULT_EMOTIONS)
        self.history: Deque[Dict[str, float]] = deque(maxlen=history_limit)

    @property
    def motivation(self) -> float:
        e = self.emotions
        return (
            e.get("curiosity", 0.0)
            + e.get("joy", 0.0)
            - e.get("boredom", 0.0)
            - e.get("frustration", 0.0)
        )

    def normalize(self) -> None:
        total = sum(self.emotions.values())
        if total > 0:
            for key in self.emotions:
                self.emotions[key] /= total

    def burst(self, emotion: str, amount: float) -> None:
        """Raise an emotion (adding it if unknown), then normalize."""
        self.emotions[emotion] = self.emotions.get(emotion, 0.0) + amount
        self.normalize()
        logger.info(
            "Emotion burst: %s +%.2f (now %.2f)", emotion, amount, self.emotions[emotion]
        )

    def receive(self, emotion: str, amount: float) -> None:
        """Raise a known emotion; unknown names are ignored."""
        if emotion in self.emotions:
            self.emotions[emotion] += amount
        self.normalize()

    def decay(self, rate: float = 0.05) -> None:
        for key in self.emotions:
            self.emotions[key] = max(0.0, self.emotions[key] - rate)
        self.normalize()

    def spread(self, emotion: str, amount: float, cells: Iterable) -> None:
        """Let every cell receive the emotion."""
        for cell in cells:
            cell.receive_emotion(emotion, amount)

    def record_history(self) -> None:
        self.history.append(dict(self.emotions))
        logger.debug("Emotions: %s", self.state_string())

    def exceeds(self, thresholds: Mapping[str, float]) -> bool:
        """True when any emotion is above its threshold."""
        return any(self.emotions.get(name, 0.0) > limit for name, limit in thresholds.items())

    def state_string(self) -> str:
        return ", ".join(f"{name}: {value:.2f}" for name, value in self.emotions.items())

    def annotation(self) -> str:
        """Prompt prefix describing the current emotional state."""
        return f"[Motivation: {self.motivation:.2f}] [Emotion State: {self.state_string()}]"

    def snapshot(self) -> Dict[str, float]:
        return dict(self.emotions)
