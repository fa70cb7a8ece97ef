"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""

import pytest


class TestSchemaImports:
    def test_import_intent_schema(self):
        from src.schemas.intent_schema import IntentType, PAYLOADLESS_INTENTS
        assert len(IntentType) == 14
        assert IntentType.NEW_SEARCH not in PAYLOADLESS_INTENTS

    def test_import_session_schema(self):
        from src.schemas.session_schema import SessionData
        session = SessionData()
        assert session.project_id is None
        assert session.error_count == 0


class TestPackageReExports:
    def test_inference_package(self):
        from src.inference import InferenceGateway, parse_json_object
        assert callable(parse_json_object)
        assert InferenceGateway is not None

    def test_matching_package(self):
        from src.matching import ProductMatcher, SupplierSuggester, keyword_score
        assert keyword_score("gloves", "Nitrile Work Gloves")[0] > 0
        assert ProductMatcher is not None and SupplierSuggester is not None

    def test_session_package(self):
        from src.session import CartEngine, MemoryStorage
        assert CartEngine(MemoryStorage()).items == []

    def test_sync_package(self):
        from src.sync import OfflineSyncQueue, OrderSyncMachine, SyncEvent
        assert SyncEvent.ONLINE == "online"
        assert OfflineSyncQueue is not None and OrderSyncMachine is not None

    def test_conversation_package(self):
        from src.conversation import IntentResolver, VoiceTurnOrchestrator, match_rules, render_reply
        assert match_rules("start over").intent == "clear"
        assert callable(render_reply)
        assert IntentResolver is not None and VoiceTurnOrchestrator is not None


class TestPromptImports:
    def test_import_system_prompts(self):
        from src.prompts.system_prompts import (
            INTENT_SYSTEM_PROMPT, RANKING_SYSTEM_PROMPT,
            SUPPLIER_RANKING_SYSTEM_PROMPT, ORDERING_AGENT_PROMPT,
        )
        assert "json" in INTENT_SYSTEM_PROMPT.lower()
        assert RANKING_SYSTEM_PROMPT and SUPPLIER_RANKING_SYSTEM_PROMPT and ORDERING_AGENT_PROMPT

    def test_intent_prompt_lists_every_intent(self):
        from src.prompts.prompt_templates import build_intent_prompt
        from src.schemas.intent_schema import IntentType
        prompt = build_intent_prompt("wood screws", None, None)
        for intent in IntentType:
            assert intent.value in prompt


class TestAgentImport:
    def test_import_ordering_agent(self):
        pytest.importorskip("livekit.agents")
        from src.agents import OrderingAgent
        assert OrderingAgent is not None


class TestConfigImport:
    def test_import_config(self):
        from src.config import settings
        assert settings.model.llm_model is not None
        assert settings.sync.max_retries >= 1
        assert settings.ordering.currency_label


class TestConsoleDemo:
    def test_console_session_builds(self):
        from console_demo import ConsoleSession
        session = ConsoleSession()
        assert session.online is True
        assert session.orchestrator.cart.project_id == "proj-demo"
        assert session.orchestrator.queue.pending_count == 0
