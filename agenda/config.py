from .constants import DEFAULT_LOCALE, LOCALES

DEFAULT_SETTINGS = {
    "image_max_dimension": 1400,
    "image_quality": 0.82,
    "autosave_delay": 0.45,
    "locale": DEFAULT_LOCALE,
    "extra_stopwords": [],
}


def _to_int(value, default, lo, hi):
    try:
        v = int(value)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, v))


def _to_float(value, default, lo, hi):
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, v))


def normalize_settings(settings: dict) -> dict:
    """Merge *settings* over the defaults and clamp every value to a usable range."""
    merged = {**DEFAULT_SETTINGS, **(settings or {})}
    out = {
        "image_max_dimension": _to_int(merged.get("image_max_dimension"), DEFAULT_SETTINGS["image_max_dimension"], 64, 8000),
        "image_quality": _to_float(merged.get("image_quality"), DEFAULT_SETTINGS["image_quality"], 0.05, 1.0),
        "autosave_delay": _to_float(merged.get("autosave_delay"), DEFAULT_SETTINGS["autosave_delay"], 0.0, 60.0),
        "locale": merged.get("locale") if merged.get("locale") in LOCALES else DEFAULT_LOCALE,
    }
    extra = merged.get("extra_stopwords") or []
    if isinstance(extra, str):
        extra = extra.split(",")
    if not isinstance(extra, list):
        extra = []
    out["extra_stopwords"] = sorted({str(w).strip().lower() for w in extra if str(w).strip()})
    return out
