"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Turn:
    """Represents a single message in a conversation."""
    role: str  # "user" or "bot"
    text: str
    timestamp: datetime
    intent: Optional[str] = None


@dataclass
class ConversationContext:
    """Per-session conversation state, newest turn first."""
    session_id: str
    history: List[Turn] = field(default_factory=list)
    current_topic: Optional[str] = None
    language: str = "en"
    entities: Dict[str, str] = field(default_factory=dict)

    def snapshot(self) -> "ConversationContext":
        """Return a copy that later updates cannot mutate."""
        return ConversationContext(
            session_id=self.session_id,
            history=list(self.history),
            current_topic=self.current_topic,
            language=self.language,
            entities=dict(self.entities),
        )

    def last_user_intent(self) -> Optional[str]:
        """Intent of the newest user turn, ignoring bot turns."""
        for turn in self.history:
            if turn.role == "user" and turn.intent:
                return turn.intent
        return None
