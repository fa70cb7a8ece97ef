"""
Product matching against a project's catalogue.

Ranking goes through the inference gateway first; when the gateway is
unconfigured, fails, or returns something unparseable, matching falls back
to keyword scoring. Both paths end in the same supplier-preference sort.
"""

import logging
from typing import Optional

from src.config import MatchingConfig, settings
from src.inference.gateway import InferenceGateway
from src.inference.response_parser import ParseFallback, parse_json_array
from src.matching.ranking import keyword_reason, keyword_score, sort_with_supplier_preference
from src.matching.supplier_suggestions import SupplierSuggester
from src.prompts.prompt_templates import build_product_ranking_prompt
from src.prompts.system_prompts import RANKING_SYSTEM_PROMPT
from src.schemas.catalog_schema import CatalogProduct, ProductMatch, SearchResult
from src.tools.catalog import CatalogStore
from src.utils import clamp_score

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Ranked by relevance"


def _to_match(product: CatalogProduct, score: float, reason: str) -> ProductMatch:
    return ProductMatch(
        id=product.id,
        name=product.name,
        sku=product.sku,
        description=product.description,
        unit=product.unit,
        price_per_unit=product.price_per_unit,
        category_name=product.category_name,
        subcategory_name=product.subcategory_name,
        match_score=clamp_score(score),
        match_reason=reason,
        supplier_id=product.supplier_id,
    )


class ProductMatcher:
    """Ranks catalogue products for a free-text need."""

    def __init__(
        self,
        gateway: InferenceGateway,
        catalog: CatalogStore,
        config: Optional[MatchingConfig] = None,
        suggester: Optional[SupplierSuggester] = None,
    ) -> None:
        self._gateway = gateway
        self._catalog = catalog
        self._config = config or settings.matching
        self._suggester = suggester or SupplierSuggester(gateway, catalog, self._config)

    @property
    def config(self) -> MatchingConfig:
        return self._config

    async def match(
        self,
        need: str,
        products: list[CatalogProduct],
        max_results: Optional[int] = None,
        supplier_ranks: Optional[dict[str, int]] = None,
    ) -> list[ProductMatch]:
        """
        Rank ``products`` for ``need``, best first, at most ``max_results``.

        Never raises on gateway trouble; the keyword path takes over.
        """
        max_results = max_results or self._config.max_results_per_item
        if not products or not need.strip():
            return []

        matches: Optional[list[ProductMatch]] = None
        if self._gateway.is_configured:
            matches = await self._rank_with_gateway(need, products, max_results)
        if matches is None:
            matches = self._rank_by_keywords(need, products)

        ordered = sort_with_supplier_preference(
            matches,
            score_of=lambda m: m.match_score,
            supplier_of=lambda m: m.supplier_id,
            supplier_ranks=supplier_ranks or {},
            config=self._config,
        )
        return ordered[:max_results]

    async def _rank_with_gateway(
        self, need: str, products: list[CatalogProduct], max_results: int
    ) -> Optional[list[ProductMatch]]:
        """Gateway ranking, or None when the caller should fall back."""
        subset = products[: self._config.max_catalogue_entries]
        prompt = build_product_ranking_prompt(
            need, subset, max_results, self._config.min_inference_score
        )
        try:
            text = await self._gateway.complete(prompt, system_prompt=RANKING_SYSTEM_PROMPT)
        except Exception as exc:
            logger.warning("Product ranking via inference failed, using keywords: %s", exc)
            return None

        parsed = parse_json_array(text, wrapper_keys=("products", "matches", "results"))
        if isinstance(parsed, ParseFallback):
            logger.warning("Unusable ranking response (%s), using keywords", parsed.reason)
            return None

        by_id = {p.id: p for p in subset}
        seen: set[str] = set()
        matches: list[ProductMatch] = []
        for entry in parsed.value:
            if not isinstance(entry, dict):
                continue
            product_id = entry.get("id")
            if product_id not in by_id or product_id in seen:
                continue
            try:
                score = clamp_score(entry.get("score", 0))
            except (TypeError, ValueError):
                continue
            if score < self._config.min_inference_score:
                continue
            seen.add(product_id)
            reason = entry.get("reason") or DEFAULT_REASON
            matches.append(_to_match(by_id[product_id], score, str(reason)))
        return matches

    def _rank_by_keywords(self, need: str, products: list[CatalogProduct]) -> list[ProductMatch]:
        matches = []
        for product in products:
            text = f"{product.name} {product.description or ''}"
            score, found = keyword_score(need, text, self._config)
            if score > 0:
                matches.append(_to_match(product, score, keyword_reason(found)))
        return sorted(matches, key=lambda m: m.match_score, reverse=True)

    async def search_project_products(
        self,
        project_id: str,
        need: str,
        search_terms: Optional[list[str]] = None,
        max_results: Optional[int] = None,
        user_id: Optional[str] = None,
        include_suppliers: bool = True,
    ) -> SearchResult:
        """Search one project's catalogue for a need, with supplier fallbacks."""
        max_results = max_results or self._config.max_results_per_item
        query = " ".join([need, *(search_terms or [])]).strip()

        try:
            products = await self._catalog.list_project_products(project_id)
            supplier_ranks = await self._catalog.get_supplier_ranks(project_id)
        except Exception as exc:
            logger.warning("Catalogue unavailable for project %s: %s", project_id, exc)
            products, supplier_ranks = [], {}

        matches = await self.match(query, products, max_results, supplier_ranks)

        if user_id and matches:
            matches = await self._attach_usual_quantities(user_id, project_id, matches)

        suggestions = []
        if not matches and include_suppliers:
            suggestions = await self._suggester.suggest(query)

        logger.info(
            "Search '%s' in %s: %d products, %d supplier suggestions",
            query, project_id, len(matches), len(suggestions),
        )
        return SearchResult(
            query=query,
            products=matches,
            total_found=len(matches),
            supplier_suggestions=suggestions,
        )

    async def _attach_usual_quantities(
        self, user_id: str, project_id: str, matches: list[ProductMatch]
    ) -> list[ProductMatch]:
        try:
            favorites = await self._catalog.list_favorites(user_id, project_id)
        except Exception as exc:
            logger.warning("Favourites unavailable for %s: %s", user_id, exc)
            return matches
        usual = {f.product_id: f for f in favorites}
        enriched = []
        for match in matches:
            favorite = usual.get(match.id)
            if favorite is not None:
                match = match.model_copy(update={
                    "usual_quantity": favorite.default_quantity,
                    "order_count": favorite.usage_count,
                })
            enriched.append(match)
        return enriched
