"""
Deterministic intent rules applied before any inference call.

Covers the phrasings that must never be left to a model: cart verbs naming
something already in the cart, positional picks from the shown products,
and fixed command phrases. Product specifications such as "4mm" or
"3/4 inch" are masked out before any number is read as a position.
"""

import re
from typing import Optional

from src.schemas.cart_schema import CartContext, Priority
from src.schemas.intent_schema import (
    AddAllIntent,
    AddNoteIntent,
    CartClearIntent,
    CartQueryIntent,
    CartRemoveIntent,
    CartTotalIntent,
    CartUpdateIntent,
    ClearIntent,
    ConversationContext,
    OrderHistoryIntent,
    ReorderFavoritesIntent,
    ReorderPastIntent,
    SelectProductIntent,
    SetPriorityIntent,
)

RULE_CONFIDENCE = 0.95

QUANTITY_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15, "sixteen": 16,
    "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
    "couple": 2, "few": 3, "dozen": 12,
}

ORDINAL_WORDS = {
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5,
    "sixth": 6, "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10,
}

_QTY = r"(?:\d+|" + "|".join(sorted(QUANTITY_WORDS, key=len, reverse=True)) + r")"
_ORDINAL = r"(?:" + "|".join(ORDINAL_WORDS) + r")"
_DAY = r"(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)"

# Numbers that belong to a specification: 4mm, 3/4 inch, 4x40, 2.5 m2, M8.
UNIT_NUMBER = re.compile(
    r"\b\d+(?:[.,/]\d+)?(?:\s*x\s*\d+(?:[.,]\d+)?)*\s*"
    r"(?:(?:mm2?|cm|m[23]?|km|inch(?:es)?|ft|feet|foot|kg|g|l|ml|v|w|kw|amps?)\b|\")"
    r"|\b\d+(?:[.,]\d+)?\s*x\s*\d+(?:[.,]\d+)?\b"
    r"|\bm\d+\b",
    re.IGNORECASE,
)

_SELECTION_PATTERNS = [
    re.compile(r"\b(?P<word>" + _ORDINAL + r")\b(?!\s+aid)"),
    re.compile(r"\b(?P<num>\d+)(?:st|nd|rd|th)\b"),
    re.compile(r"#\s*(?P<num>\d+)"),
    re.compile(r"\b(?:number|option|item|product|no\.)\s*(?P<qty>\d+|" + "|".join(
        w for w, v in QUANTITY_WORDS.items() if w not in ("a", "an", "couple", "few", "dozen")
    ) + r")\b"),
]
_LAST_ONE = re.compile(r"\b(?:the\s+)?last\s+(?:one|product|option|item)\b")
_BARE_NUMBER = re.compile(r"^(?:the\s+)?(?P<num>\d+)(?:\s+please)?$")

_SELECTION_QUANTITY = re.compile(
    r"\b(?P<qty>" + _QTY + r")\s+(?:of\s+)?(?:the|that|those|these|this|number|option|item|#)\b"
)

_ARTICLES = re.compile(r"^(?:the|my|all\s+(?:the|my)|all|those|these|that|some)\s+")
_CART_SUFFIX = re.compile(r"\s+(?:from|in|out of)\s+(?:my\s+|the\s+)?(?:cart|order|basket)$")
_REMOVE_VERB = re.compile(r"^(?:please\s+)?(?:remove|delete|take\s+out|drop|cancel)\b")
_REMOVE = re.compile(
    r"^(?:please\s+)?(?:remove|delete|take\s+out|drop|cancel)\s+(?P<name>.+)$"
)
_UPDATE_PATTERNS = [
    re.compile(
        r"^(?:please\s+)?(?:change|update|set|make)\s+(?P<name>.+?)\s+"
        r"(?:quantity\s+)?to\s+(?P<qty>" + _QTY + r")$"
    ),
    re.compile(
        r"^(?:please\s+)?(?:make\s+(?:it|that)|i\s+only\s+(?:want|need)|i\s+(?:want|need)\s+only)\s+"
        r"(?P<qty>" + _QTY + r")\s+(?P<name>.+)$"
    ),
]

_NOTE_PATTERNS = [
    re.compile(
        r"^(?:please\s+)?(?:add|put|leave|include|write)\s+(?:a\s+)?note\b"
        r"(?:\s+(?:saying|that\s+says|that|to\s+say))?\s*[:,]?\s*(?P<note>.*)$"
    ),
    re.compile(r"^note\s*[:,]?\s+(?P<note>.+)$"),
]

_PRIORITY_NORMAL = [
    re.compile(r"\b(?:not\s+urgent|no\s+rush|normal\s+priority|standard\s+priority|regular\s+priority)\b"),
    re.compile(r"^(?:please\s+)?(?:mark|make|set)\s+(?:it|this|that|the\s+order|my\s+order)\s+(?:as\s+|to\s+)?normal\b"),
]
_PRIORITY_URGENT = [
    re.compile(
        r"^(?:please\s+)?(?:mark|make|set|flag)\s+(?:it|this|that|the\s+order|my\s+order)\s+"
        r"(?:as\s+|to\s+)?(?:urgent|high\s+priority|a\s+rush|rush)\b"
    ),
    re.compile(r"^(?:it'?s|it\s+is|this\s+is|that'?s|the\s+order\s+is)\s+urgent\b"),
    re.compile(r"^(?:urgent|rush\s+(?:it|this|the\s+order))(?:\s+please)?$"),
]

_CART_CLEAR = [
    re.compile(r"\b(?:clear|empty|reset)\s+(?:out\s+)?(?:my\s+|the\s+)?(?:whole\s+)?(?:cart|basket)\b"),
    re.compile(r"\b(?:remove|delete)\s+everything(?:\s+from\s+(?:my\s+|the\s+)?cart)?\b"),
]
_CART_TOTAL = [
    re.compile(r"\bwhat(?:'s|\s+is)\s+(?:my\s+|the\s+)?(?:total|order\s+total|cart\s+total)\b"),
    re.compile(r"\bhow\s+much\s+(?:is|does)\s+(?:it|my\s+cart|the\s+cart|everything|my\s+order|that)"
               r"(?:\s+(?:come\s+to|cost|all\s+cost))?\b"),
    re.compile(r"^(?:the\s+)?total(?:\s+please)?$"),
]
_CART_QUERY = [
    re.compile(r"\bwhat(?:'s|\s+is)\s+in\s+(?:my|the)\s+(?:cart|basket)\b"),
    re.compile(r"\bwhat\s+(?:do\s+i\s+have|have\s+i\s+(?:got|added))(?:\s+in\s+(?:my|the)\s+(?:cart|basket))?\b"),
    re.compile(r"\b(?:read|show|list)\s+(?:back\s+|me\s+)?(?:my|the)\s+(?:cart|basket)\b"),
]
_REORDER_FAVORITES = [
    re.compile(r"\b(?:my|the)\s+usual(?:\s+(?:items|order|stuff))?\b"),
    re.compile(r"\bmy\s+favou?rites\b"),
    re.compile(r"\bwhat\s+i\s+usually\s+(?:order|get)\b"),
]
_REORDER_VERB = re.compile(
    r"\b(?:re-?order|order\s+again|repeat\s+(?:my\s+|the\s+|that\s+)?(?:last\s+)?order|same\s+(?:order\s+)?as|(?:order|get)\s+the\s+same)\b"
)
_DATE_REFERENCE = re.compile(
    r"\b(?:last\s+(?:" + _DAY[3:-1] + r"|week|time|order)"
    r"|" + _DAY +
    r"|yesterday|today"
    r"|\d+\s+days?\s+ago"
    r"|(?:\d+|one|two|three|four)\s+weeks?\s+ago"
    r"|previous(?:\s+order)?)\b"
)
_ORDER_HISTORY = [
    re.compile(r"\border\s+history\b"),
    re.compile(r"\b(?:my|the)\s+(?:past|previous|recent|last)\s+orders\b"),
    re.compile(r"\bwhat\s+(?:did|have)\s+i\s+(?:order|ordered)\b"),
    re.compile(r"\bwhat\s+i\s+ordered\b"),
    re.compile(r"\bshow\s+(?:me\s+)?my\s+orders\b"),
]
_ADD_ALL = [
    re.compile(r"\b(?:add|order|take|get)\s+(?:them\s+all|all\s+of\s+them|all\s+(?:of\s+)?(?:those|these)|everything)\b"),
    re.compile(r"^(?:all\s+of\s+them|all\s+of\s+those|everything)(?:\s+please)?$"),
]
_CLEAR = [
    re.compile(r"^(?:start\s+over|never\s*mind|forget\s+(?:it|that)|cancel\s+that)\b"),
    re.compile(r"^clear\s+(?:that|this|the\s+list|the\s+results|results|the\s+search)\b"),
]


def normalize(utterance: str) -> str:
    """Lowercase, collapse whitespace, and drop trailing punctuation."""
    text = re.sub(r"\s+", " ", utterance.lower()).strip()
    return text.rstrip(".!?").strip()


def parse_quantity(token: str) -> Optional[int]:
    token = token.strip().lower()
    if token.isdigit():
        return int(token)
    return QUANTITY_WORDS.get(token)


def mask_unit_numbers(text: str) -> str:
    """Replace specification numbers ("4mm", "3/4 inch") with a neutral marker."""
    return UNIT_NUMBER.sub(" spec ", text)


def has_unit_number(text: str) -> bool:
    return UNIT_NUMBER.search(text) is not None


def find_selection_index(text: str, max_index: int) -> Optional[int]:
    """
    Positional reference in ``text``, if any.

    ``text`` should already be normalised. Specification numbers are masked
    first, so "4mm screws" carries no position.
    """
    masked = mask_unit_numbers(text)
    if _LAST_ONE.search(masked) and max_index > 0:
        return max_index
    for pattern in _SELECTION_PATTERNS:
        match = pattern.search(masked)
        if not match:
            continue
        groups = match.groupdict()
        if groups.get("word"):
            return ORDINAL_WORDS[groups["word"]]
        if groups.get("num"):
            return int(groups["num"])
        if groups.get("qty"):
            return parse_quantity(groups["qty"])
    bare = _BARE_NUMBER.match(masked)
    if bare:
        return int(bare.group("num"))
    return None


def has_selection_reference(text: str) -> bool:
    return find_selection_index(normalize(text), max_index=1) is not None


def find_selection_quantity(text: str) -> int:
    """Quantity said alongside a positional pick ("10 of the second one"), default 1."""
    match = _SELECTION_QUANTITY.search(mask_unit_numbers(text))
    if match:
        quantity = parse_quantity(match.group("qty"))
        if quantity and quantity > 0:
            return quantity
    return 1


def _clean_item_name(name: str) -> str:
    name = _CART_SUFFIX.sub("", name.strip())
    name = _ARTICLES.sub("", name)
    return name.strip(" ,.")


def cart_has_item(cart: Optional[CartContext], name: str) -> bool:
    """True when ``name`` matches a cart line the way the cart engine looks lines up."""
    if cart is None or cart.is_empty or not name:
        return False
    return any(item.matches(name) for item in cart.items)


def _match_cart_verb(text: str, raw: str, cart: Optional[CartContext]):
    if cart is None or cart.is_empty:
        return None
    removal = _REMOVE.match(text)
    if removal:
        name = _clean_item_name(removal.group("name"))
        if cart_has_item(cart, name):
            return CartRemoveIntent(raw_utterance=raw, item_name=name, confidence=RULE_CONFIDENCE)
    for pattern in _UPDATE_PATTERNS:
        update = pattern.match(text)
        if update:
            name = _clean_item_name(update.group("name"))
            quantity = parse_quantity(update.group("qty"))
            if quantity is not None and cart_has_item(cart, name):
                return CartUpdateIntent(
                    raw_utterance=raw, item_name=name, new_quantity=quantity,
                    confidence=RULE_CONFIDENCE,
                )
    return None


def _match_note(text: str, raw: str):
    for pattern in _NOTE_PATTERNS:
        match = pattern.match(text)
        if match:
            # Keep the worker's original casing for the note text.
            note = match.group("note").strip()
            start = raw.lower().rfind(note) if note else -1
            if note and start != -1:
                note = raw[start:start + len(note)]
            return AddNoteIntent(raw_utterance=raw, note=note or None, confidence=RULE_CONFIDENCE)
    return None


def _any(patterns: list[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def _match_command(text: str, raw: str):
    if _any(_CART_CLEAR, text):
        return CartClearIntent(raw_utterance=raw, confidence=RULE_CONFIDENCE)
    if _any(_CART_TOTAL, text):
        return CartTotalIntent(raw_utterance=raw, confidence=RULE_CONFIDENCE)
    if _any(_CART_QUERY, text):
        return CartQueryIntent(raw_utterance=raw, confidence=RULE_CONFIDENCE)
    if _any(_PRIORITY_NORMAL, text):
        return SetPriorityIntent(raw_utterance=raw, priority=Priority.NORMAL, confidence=RULE_CONFIDENCE)
    if _any(_PRIORITY_URGENT, text):
        return SetPriorityIntent(raw_utterance=raw, priority=Priority.URGENT, confidence=RULE_CONFIDENCE)
    if _REORDER_VERB.search(text):
        date_match = _DATE_REFERENCE.search(text)
        if date_match or not _any(_REORDER_FAVORITES, text):
            return ReorderPastIntent(
                raw_utterance=raw,
                date_reference=date_match.group(0) if date_match else None,
                confidence=RULE_CONFIDENCE,
            )
    if _any(_REORDER_FAVORITES, text):
        return ReorderFavoritesIntent(raw_utterance=raw, confidence=RULE_CONFIDENCE)
    if _any(_ORDER_HISTORY, text):
        return OrderHistoryIntent(raw_utterance=raw, confidence=RULE_CONFIDENCE)
    if _any(_ADD_ALL, text):
        return AddAllIntent(raw_utterance=raw, confidence=RULE_CONFIDENCE)
    if _any(_CLEAR, text):
        return ClearIntent(raw_utterance=raw, confidence=RULE_CONFIDENCE)
    return None


def _match_selection(text: str, raw: str, conversation: Optional[ConversationContext]):
    if conversation is None or not conversation.has_products:
        return None
    if _REMOVE_VERB.match(text):
        return None
    index = find_selection_index(text, conversation.max_index)
    if index is None:
        return None
    return SelectProductIntent(
        raw_utterance=raw,
        index=index,
        quantity=find_selection_quantity(text),
        confidence=RULE_CONFIDENCE,
    )


def match_rules(
    utterance: str,
    conversation: Optional[ConversationContext] = None,
    cart: Optional[CartContext] = None,
):
    """
    Resolve ``utterance`` deterministically, or return None to defer to inference.

    Precedence: cart verbs naming a cart line, notes, command phrases,
    then positional picks from the shown products.
    """
    raw = utterance.strip()
    text = normalize(raw)
    if not text:
        return None
    return (
        _match_cart_verb(text, raw, cart)
        or _match_note(text, raw)
        or _match_command(text, raw)
        or _match_selection(text, raw, conversation)
    )
