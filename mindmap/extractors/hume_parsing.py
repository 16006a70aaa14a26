"""Defensive parsing of Hume prediction payloads.

The batch predictions document has changed shape several times upstream, so
emotion records are located by a short list of candidate extractors tried in
priority order, with a generic tree walk as the last resort. Nothing in this
module raises on unexpected input; unknown shapes simply yield fewer labels.
"""

import math
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..models.schemas import EmotionScoreMap


EmotionRecord = Dict[str, Any]
CandidateExtractor = Callable[[Any], Optional[List[EmotionRecord]]]

# Keys under which upstream has reported per-file failures
FAILURE_KEYS = ("error", "errors", "failure", "failed_reason")
MAX_WALK_DEPTH = 64


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def is_emotion_record(item: Any) -> bool:
    """True for {name: str, score: finite number} elements."""
    if not isinstance(item, dict):
        return False
    name = item.get("name")
    score = item.get("score")
    return (
        isinstance(name, str)
        and bool(name)
        and isinstance(score, (int, float))
        and not isinstance(score, bool)
        and math.isfinite(score)
    )


def _records_from(predictions: Iterable[Any]) -> List[EmotionRecord]:
    records = []
    for pred in predictions:
        for emotion in _as_list(_as_dict(pred).get("emotions")):
            if is_emotion_record(emotion):
                records.append(emotion)
    return records


def _records_from_results(results: dict) -> List[EmotionRecord]:
    records = []
    for prediction in _as_list(results.get("predictions")):
        models = _as_dict(_as_dict(prediction).get("models"))
        # prosody first; other models (burst, language) still carry emotions
        ordered = sorted(models.items(), key=lambda kv: kv[0] != "prosody")
        for _, model in ordered:
            for group in _as_list(_as_dict(model).get("grouped_predictions")):
                records.extend(_records_from(_as_list(_as_dict(group).get("predictions"))))
    return records


# ---------------------------------------------------------------------------
# Candidate extractors
# ---------------------------------------------------------------------------

def extract_batch_list(payload: Any) -> Optional[List[EmotionRecord]]:
    """[{source, results: {predictions: [{models: {prosody: {grouped_predictions}}}]}}]"""
    if not isinstance(payload, list):
        return None
    records = []
    for entry in payload:
        records.extend(_records_from_results(_as_dict(_as_dict(entry).get("results"))))
    return records or None


def extract_single_source(payload: Any) -> Optional[List[EmotionRecord]]:
    """{results: {predictions: [...]}} without the outer list."""
    if not isinstance(payload, dict):
        return None
    return _records_from_results(_as_dict(payload.get("results"))) or None


def extract_streaming(payload: Any) -> Optional[List[EmotionRecord]]:
    """{prosody: {predictions: [{emotions: [...]}]}} as returned by the stream API."""
    if not isinstance(payload, dict):
        return None
    prosody = _as_dict(payload.get("prosody"))
    return _records_from(_as_list(prosody.get("predictions"))) or None


def extract_flat(payload: Any) -> Optional[List[EmotionRecord]]:
    """{emotions: [...]}"""
    if not isinstance(payload, dict):
        return None
    return _records_from([payload]) or None


def extract_score_dict(payload: Any) -> Optional[List[EmotionRecord]]:
    """{scores: {label: score}} prosody messages, nested or top-level."""
    scores = parse_prosody_message(payload)
    if not scores:
        return None
    return [{"name": name, "score": score} for name, score in scores.items() if name]


CANDIDATE_EXTRACTORS: List[CandidateExtractor] = [
    extract_batch_list,
    extract_single_source,
    extract_streaming,
    extract_flat,
    extract_score_dict,
]


def walk_emotion_records(payload: Any) -> List[EmotionRecord]:
    """Collect every {name, score} element found anywhere in the tree."""
    records: List[EmotionRecord] = []
    stack = [(payload, 0)]
    while stack:
        node, depth = stack.pop()
        if depth > MAX_WALK_DEPTH:
            continue
        if isinstance(node, list):
            for item in node:
                if is_emotion_record(item):
                    records.append(item)
                elif isinstance(item, (list, dict)):
                    stack.append((item, depth + 1))
        elif isinstance(node, dict):
            for value in node.values():
                if isinstance(value, (list, dict)):
                    stack.append((value, depth + 1))
    return records


def merge_max(records: Iterable[EmotionRecord]) -> EmotionScoreMap:
    """Flatten records into label -> highest score seen."""
    scores: EmotionScoreMap = {}
    for record in records:
        name = record["name"]
        score = float(record["score"])
        if score > scores.get(name, -math.inf):
            scores[name] = score
    return scores


def extract_emotion_scores(payload: Any) -> EmotionScoreMap:
    """
    Reduce a prediction payload to a flat label -> max score map.

    Args:
        payload: Decoded JSON of any shape

    Returns:
        Score map, empty when no emotion records were found
    """
    for extractor in CANDIDATE_EXTRACTORS:
        try:
            records = extractor(payload)
        except (TypeError, KeyError, AttributeError, ValueError):
            records = None
        if records:
            return merge_max(records)

    return merge_max(walk_emotion_records(payload))


# ---------------------------------------------------------------------------
# Failure reasons
# ---------------------------------------------------------------------------

def _reason_from(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, dict):
        for key in ("message", "error", "reason", "detail"):
            reason = _reason_from(value.get(key))
            if reason:
                return reason
    if isinstance(value, list):
        for item in value:
            reason = _reason_from(item)
            if reason:
                return reason
    return None


def find_failure_reason(payload: Any) -> Optional[str]:
    """Return the first upstream error message found in a payload, if any."""
    stack = [(payload, 0)]
    while stack:
        node, depth = stack.pop(0)
        if depth > MAX_WALK_DEPTH:
            continue
        if isinstance(node, dict):
            for key in FAILURE_KEYS:
                reason = _reason_from(node.get(key))
                if reason:
                    return reason
            state = node.get("state")
            if isinstance(state, dict) and str(state.get("status", "")).upper() == "FAILED":
                reason = _reason_from(state.get("message"))
                if reason:
                    return reason
            stack.extend((v, depth + 1) for v in node.values() if isinstance(v, (dict, list)))
        elif isinstance(node, list):
            stack.extend((v, depth + 1) for v in node if isinstance(v, (dict, list)))
    return None


def parse_prosody_message(raw: Any) -> Optional[EmotionScoreMap]:
    """Normalize a streaming prosody message carrying a ``scores`` dict.

    Supports {predictions: [{prosody: {predictions: [{scores: {...}}]}}]}
    and {scores: {...}}.
    """
    if not isinstance(raw, dict):
        return None

    scores = None
    predictions = _as_list(raw.get("predictions"))
    if predictions:
        inner = _as_list(_as_dict(_as_dict(predictions[0]).get("prosody")).get("predictions"))
        if inner:
            scores = _as_dict(inner[0]).get("scores")
    if scores is None:
        scores = raw.get("scores")

    if not isinstance(scores, dict):
        return None

    return {
        key: float(value)
        for key, value in scores.items()
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
    }
