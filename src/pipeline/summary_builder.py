"""Helpers for condensing free-text advisory output into UI card bullets."""

from __future__ import annotations

STATE_TERMS = (
    "score", "integrity", "deficit", "surplus", "low", "high",
    "declined", "improved", "below", "above", "stable",
)
DRIVER_TERMS = (
    "because", "due to", "caused", "driven", "linked", "correlat",
    "screen", "sleep debt", "overhydrat", "fatigue",
)
ACTION_TERMS = (
    "should", "recommend", "prioriti", "increase", "reduce", "avoid",
    "tonight", "tomorrow", "aim", "add", "cut",
)


def _clip(s: str, limit: int = 260) -> str:
    s = s.replace("\n", " ").strip()
    if len(s) <= limit:
        return s
    return s[: limit - 3].rstrip() + "..."


def build_concise_summary(advisory: str) -> str:
    """Create a strict 3-bullet summary (State / Driver / Directive)."""
    text = str(advisory or "").replace("\r", "").strip()
    if not text:
        return (
            "- State: No advisory text was returned.\n"
            "- Driver: Scores are still computed locally from today's inputs.\n"
            "- Directive: Work on the lowest sub-score and recheck after the next log."
        )

    candidates = []
    for raw in text.splitlines():
        line = raw.strip().lstrip("-*# ").strip()
        if not line or set(line) <= {"=", "-", ":", "*"}:
            continue
        if line.startswith("|") and line.endswith("|"):
            continue
        candidates.append(line)

    picked = {"State": "", "Driver": "", "Directive": ""}
    terms = {"State": STATE_TERMS, "Driver": DRIVER_TERMS, "Directive": ACTION_TERMS}
    for line in candidates:
        low = line.lower()
        for label in picked:
            if not picked[label] and any(t in low for t in terms[label]):
                picked[label] = line
                break

    # Fill gaps in order with lines not yet used
    for line in candidates:
        if line in picked.values():
            continue
        for label in picked:
            if not picked[label]:
                picked[label] = line
                break

    fallback = {
        "State": "Telemetry received, but the advisory gave no clear status.",
        "Driver": "No single driver stood out in the advisory text.",
        "Directive": "Work on the lowest sub-score and recheck after the next log.",
    }
    bullets = []
    for label, value in picked.items():
        prefix = f"- {label}: "
        bullets.append(prefix + _clip(value or fallback[label], max(48, 280 - len(prefix))))
    return "\n".join(bullets)
