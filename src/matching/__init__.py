from src.matching.product_matcher import ProductMatcher
from src.matching.ranking import keyword_score, sort_with_supplier_preference, tokenize_need
from src.matching.supplier_suggestions import SupplierSuggester

__all__ = [
    "ProductMatcher",
    "SupplierSuggester",
    "keyword_score",
    "sort_with_supplier_preference",
    "tokenize_need",
]
