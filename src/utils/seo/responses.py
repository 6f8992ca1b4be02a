"""
Decoding and normalization of Ahrefs free-tool responses.

The free-tool endpoints answer with tagged two-element arrays such as
["Ok", {...}] or ["Some", {...}]. decode_tagged() turns any raw value into a
Tagged(tag, value) pair; values that are not tagged arrays come back under the
UNRECOGNIZED tag so each shape assumption is an explicit branch.

Backlinks and keyword ideas are normalized leniently: missing or malformed
sub-payloads produce empty results. Keyword difficulty and traffic require the
top-level "Ok" tag and raise InvalidResponseFormatError otherwise.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from src.utils.seo.errors import InvalidResponseFormatError

TAG_OK = "Ok"
TAG_SOME = "Some"
TAG_ORGANIC = "organic"
UNRECOGNIZED = "<unrecognized>"

KEYWORD_IDEA_GROUPS = (
    ("keyword ideas", "allIdeas"),
    ("question ideas", "questionIdeas"),
)


@dataclass(frozen=True)
class Tagged:
    tag: str
    value: Any


def decode_tagged(raw: Any) -> Tagged:
    """Split a ["Tag", value] array; anything else is UNRECOGNIZED"""
    if isinstance(raw, list) and len(raw) >= 2 and isinstance(raw[0], str):
        return Tagged(raw[0], raw[1])
    return Tagged(UNRECOGNIZED, raw)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def require_ok(raw: Any) -> Dict[str, Any]:
    """Return the payload of an ["Ok", {...}] response or raise"""
    tagged = decode_tagged(raw)
    if tagged.tag == TAG_OK:
        if isinstance(tagged.value, dict):
            return tagged.value
        raise InvalidResponseFormatError(
            f"expected an object after {TAG_OK!r}, got {type(tagged.value).__name__}"
        )
    if tagged.tag == UNRECOGNIZED:
        raise InvalidResponseFormatError(
            f"expected a tagged array, got {type(raw).__name__}"
        )
    raise InvalidResponseFormatError(f"expected tag {TAG_OK!r}, got {tagged.tag!r}")


def decode_signed_overview(raw: Any) -> Tuple[str, str, Any]:
    """
    Extract (signature, validUntil, overview data) from an overview response

    The tag itself is not checked; the signed input must be present in the
    second element.
    """
    tagged = decode_tagged(raw)
    if tagged.tag == UNRECOGNIZED:
        raise InvalidResponseFormatError("overview response is not a tagged array")

    payload = _as_dict(tagged.value)
    signed_input = _as_dict(payload.get("signedInput"))
    signature = signed_input.get("signature")
    valid_until = _as_dict(signed_input.get("input")).get("validUntil")

    for name, value in (("signature", signature), ("validUntil", valid_until)):
        if not value or not isinstance(value, str):
            raise InvalidResponseFormatError(
                f"overview response carries no usable {name}: {value!r}"
            )
    return signature, valid_until, payload.get("data")


def normalize_backlink(backlink: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "anchor": backlink.get("anchor") or "",
        "domainRating": backlink.get("domainRating") or 0,
        "title": backlink.get("title") or "",
        "urlFrom": backlink.get("urlFrom") or "",
        "urlTo": backlink.get("urlTo") or "",
        "edu": backlink.get("edu") or False,
        "gov": backlink.get("gov") or False,
    }


def normalize_backlinks(raw: Any) -> List[Dict[str, Any]]:
    """Backlinks list response -> flat backlink records, [] on any shape mismatch"""
    tagged = decode_tagged(raw)
    if tagged.tag == UNRECOGNIZED:
        return []

    top_backlinks = _as_dict(_as_dict(tagged.value).get("topBacklinks"))
    return [
        normalize_backlink(backlink)
        for backlink in _as_list(top_backlinks.get("backlinks"))
        if isinstance(backlink, dict)
    ]


def normalize_keyword_idea(idea: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "keyword": idea.get("keyword") or "No keyword",
        "country": idea.get("country") or "-",
        "difficulty": idea.get("difficultyLabel") or "Unknown",
        "volume": idea.get("volumeLabel") or "Unknown",
        "updatedAt": idea.get("updatedAt") or "-",
    }


def normalize_keyword_ideas(raw: Any) -> List[Dict[str, Any]]:
    """
    Keyword ideas response -> [{"label": ..., "value": {...}}, ...]

    All "keyword ideas" entries come before all "question ideas" entries,
    each group in the order received.
    """
    tagged = decode_tagged(raw)
    if tagged.tag == UNRECOGNIZED:
        return []

    data = _as_dict(tagged.value)
    result = []
    for label, key in KEYWORD_IDEA_GROUPS:
        ideas = _as_list(_as_dict(data.get(key)).get("results"))
        for idea in ideas:
            if isinstance(idea, dict):
                result.append({"label": label, "value": normalize_keyword_idea(idea)})
    return result


def normalize_serp_item(item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Organic SERP entry with a link -> flat record, None for anything else"""
    content = decode_tagged(item.get("content"))
    if content.tag != TAG_ORGANIC:
        return None

    link = decode_tagged(_as_dict(content.value).get("link"))
    if link.tag != TAG_SOME or not isinstance(link.value, dict):
        return None

    link_data = link.value
    url = decode_tagged(link_data.get("url"))
    url_data = _as_dict(url.value) if url.tag != UNRECOGNIZED else {}
    result = {
        "title": link_data.get("title") or "",
        "url": url_data.get("url") or "",
        "position": item.get("pos") or 0,
    }

    metrics = link_data.get("metrics")
    if metrics and isinstance(metrics, dict):
        result.update(
            {
                "domainRating": metrics.get("domainRating") or 0,
                "urlRating": metrics.get("urlRating") or 0,
                "traffic": metrics.get("traffic") or 0,
                "keywords": metrics.get("keywords") or 0,
                "topKeyword": metrics.get("topKeyword") or "",
                "topVolume": metrics.get("topVolume") or 0,
            }
        )
    return result


def normalize_keyword_difficulty(raw: Any) -> Dict[str, Any]:
    """Keyword difficulty response -> difficulty summary with organic SERP entries"""
    data = require_ok(raw)

    serp_results = []
    for item in _as_list(_as_dict(data.get("serp")).get("results")):
        if not isinstance(item, dict):
            continue
        normalized = normalize_serp_item(item)
        if normalized is not None:
            serp_results.append(normalized)

    return {
        "difficulty": data.get("difficulty") or 0,
        "shortage": data.get("shortage") or 0,
        "lastUpdate": data.get("lastUpdate") or "",
        "serp": {"results": serp_results},
    }


def normalize_traffic(raw: Any) -> Dict[str, Any]:
    """Traffic overview response -> traffic summary"""
    data = require_ok(raw)
    traffic = _as_dict(data.get("traffic"))

    return {
        "traffic_history": data.get("traffic_history") or [],
        "traffic": {
            "trafficMonthlyAvg": traffic.get("trafficMonthlyAvg") or 0,
            "costMontlyAvg": traffic.get("costMontlyAvg") or 0,
        },
        "top_pages": data.get("top_pages") or [],
        "top_countries": data.get("top_countries") or [],
        "top_keywords": data.get("top_keywords") or [],
    }
