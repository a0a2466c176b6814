from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class Observation:
    label: int
    score: float


@dataclass(frozen=True)
class ObservationSample:
    t: float | None
    observation: Observation
    truth: int | None = None


def observation_from_scores(scores: Any) -> Observation:
    """Pick the highest-confidence class of a per-class score vector.

    The first index wins when several classes share the maximum score.
    """

    arr = np.asarray(scores, dtype=np.float64).reshape(-1)
    if arr.size == 0:
        raise ValueError("Score vector is empty.")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Score vector must contain only finite numbers.")
    idx = int(np.argmax(arr))
    return Observation(label=idx, score=float(arr[idx]))


def _normalize_timestamp(value: Any) -> float | None:
    if value is None:
        return None
    try:
        t = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(t):
        return None

    # Heuristic: milliseconds vs seconds
    # - seconds since epoch ~ 1.7e9
    # - milliseconds since epoch ~ 1.7e12
    if t > 1e11:
        t = t / 1000.0
    return t


def _get_num(d: dict[str, Any], key: str) -> float | None:
    if key not in d or isinstance(d[key], bool):
        return None
    try:
        value = float(d[key])
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _get_int(d: dict[str, Any], key: str) -> int | None:
    value = _get_num(d, key)
    if value is None or not value.is_integer():
        return None
    return int(value)


def _first_present(d: dict[str, Any], *keys: str) -> Any:
    # Explicit None checks so that t=0 is kept.
    for key in keys:
        if d.get(key) is not None:
            return d[key]
    return None


def _parse_one(sample_dict: dict[str, Any]) -> ObservationSample:
    if not isinstance(sample_dict, dict):
        raise ValueError(f"Expected a sample dict, got {type(sample_dict).__name__}.")

    t = _normalize_timestamp(_first_present(sample_dict, "t", "timestamp", "ts"))

    if sample_dict.get("scores") is not None:
        scores = sample_dict["scores"]
        if not isinstance(scores, list):
            raise ValueError("Field 'scores' must be a list of numbers.")
        if any(isinstance(v, bool) for v in scores):
            raise ValueError("Field 'scores' must not contain booleans.")
        try:
            observation = observation_from_scores(scores)
        except TypeError as e:
            raise ValueError(f"Invalid 'scores' vector: {e}") from e
    else:
        label = _get_int(sample_dict, "label")
        score = _get_num(sample_dict, "score")
        missing = [k for k, v in (("label", label), ("score", score)) if v is None]
        if missing:
            raise ValueError(f"Missing/invalid observation fields: {missing}. Expected label/score or scores.")
        observation = Observation(label=int(label), score=float(score))

    truth = None
    if sample_dict.get("truth") is not None:
        truth = _get_int(sample_dict, "truth")
        if truth is None:
            raise ValueError("Field 'truth' must be an integer label.")

    return ObservationSample(t=t, observation=observation, truth=truth)


def parse_payload(payload: bytes) -> list[ObservationSample]:
    """Parse a UDP payload (or one stdin line) into observation samples.

    Supported JSON payload forms:
    1) Single sample dict: {"t":..., "label":..., "score":...} or {"t":..., "scores": [...]}
    2) Batch dict: {"samples": [ {...}, {...} ]}
    3) Raw list: [ {...}, {...} ]
    """

    text = payload.decode("utf-8", errors="replace").strip()
    if not text:
        return []

    data = json.loads(text)
    if isinstance(data, list):
        return [_parse_one(d) for d in data]

    if isinstance(data, dict) and isinstance(data.get("samples"), list):
        return [_parse_one(d) for d in data["samples"]]

    if isinstance(data, dict):
        return [_parse_one(data)]

    raise ValueError("Invalid JSON payload. Expected a dict or list.")


def encode_sample(sample: ObservationSample) -> dict[str, object]:
    out: dict[str, object] = {"t": sample.t, "label": sample.observation.label, "score": sample.observation.score}
    if sample.truth is not None:
        out["truth"] = sample.truth
    return out
