from src.conversation.intent_resolver import IntentResolver
from src.conversation.intent_rules import match_rules
from src.conversation.orchestrator import VoiceTurnOrchestrator
from src.conversation.replies import render_reply

__all__ = [
    "VoiceTurnOrchestrator",
    "IntentResolver",
    "match_rules",
    "render_reply",
]
