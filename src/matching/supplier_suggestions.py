"""External supplier catalogue suggestions for needs the project catalogue lacks."""

import logging
from typing import Optional

from src.config import MatchingConfig, settings
from src.inference.gateway import InferenceGateway
from src.inference.response_parser import ParseFallback, parse_json_array
from src.matching.ranking import keyword_reason, keyword_score
from src.prompts.prompt_templates import build_supplier_ranking_prompt
from src.prompts.system_prompts import SUPPLIER_RANKING_SYSTEM_PROMPT
from src.schemas.catalog_schema import SupplierRecord, SupplierSuggestion
from src.tools.catalog import CatalogStore
from src.utils import clamp_score

logger = logging.getLogger(__name__)


def _to_suggestion(supplier: SupplierRecord, score: float, reason: str) -> SupplierSuggestion:
    return SupplierSuggestion(
        id=supplier.id,
        name=supplier.name,
        shop_url=supplier.shop_url or "",
        description=supplier.description or "",
        match_score=clamp_score(score),
        match_reason=reason,
    )


class SupplierSuggester:
    """Scores external supplier catalogues against a need."""

    def __init__(
        self,
        gateway: InferenceGateway,
        catalog: CatalogStore,
        config: Optional[MatchingConfig] = None,
    ) -> None:
        self._gateway = gateway
        self._catalog = catalog
        self._config = config or settings.matching

    async def suggest(self, need: str) -> list[SupplierSuggestion]:
        """At most ``max_supplier_suggestions`` suppliers, best first, no duplicates."""
        limit = self._config.max_supplier_suggestions
        if limit == 0 or not need.strip():
            return []
        try:
            suppliers = await self._catalog.list_external_suppliers()
        except Exception as exc:
            logger.warning("Supplier list unavailable: %s", exc)
            return []
        suppliers = [s for s in suppliers if s.shop_url and s.description]
        if not suppliers:
            return []

        suggestions: Optional[list[SupplierSuggestion]] = None
        if self._gateway.is_configured:
            suggestions = await self._rank_with_gateway(need, suppliers)
        if suggestions is None:
            suggestions = self._rank_by_keywords(need, suppliers)

        unique: list[SupplierSuggestion] = []
        seen: set[str] = set()
        for suggestion in sorted(suggestions, key=lambda s: s.match_score, reverse=True):
            if suggestion.id in seen:
                continue
            seen.add(suggestion.id)
            unique.append(suggestion)
        return unique[:limit]

    async def _rank_with_gateway(
        self, need: str, suppliers: list[SupplierRecord]
    ) -> Optional[list[SupplierSuggestion]]:
        prompt = build_supplier_ranking_prompt(need, suppliers)
        try:
            text = await self._gateway.complete(prompt, system_prompt=SUPPLIER_RANKING_SYSTEM_PROMPT)
        except Exception as exc:
            logger.warning("Supplier ranking via inference failed, using keywords: %s", exc)
            return None

        parsed = parse_json_array(text, wrapper_keys=("suppliers", "results"))
        if isinstance(parsed, ParseFallback):
            logger.warning("Unusable supplier response (%s), using keywords", parsed.reason)
            return None

        by_id = {s.id: s for s in suppliers}
        suggestions = []
        for entry in parsed.value:
            if not isinstance(entry, dict) or entry.get("id") not in by_id:
                continue
            try:
                score = clamp_score(entry.get("score", 0))
            except (TypeError, ValueError):
                continue
            if score < self._config.min_inference_score:
                continue
            reason = str(entry.get("reason") or "Likely stocks this item")
            suggestions.append(_to_suggestion(by_id[entry["id"]], score, reason))
        return suggestions

    def _rank_by_keywords(self, need: str, suppliers: list[SupplierRecord]) -> list[SupplierSuggestion]:
        suggestions = []
        for supplier in suppliers:
            score, found = keyword_score(need, f"{supplier.name} {supplier.description}", self._config)
            if score > 0:
                suggestions.append(_to_suggestion(supplier, score, keyword_reason(found)))
        return suggestions
