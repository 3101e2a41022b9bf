# satfusion/services/strategies.py
"""
Result generators for analysis jobs.

Nothing here looks at imagery: every strategy samples plausible-range numbers
for the five spectral indices. A real processing backend would plug in behind
the same `generate(job)` call without touching the simulator.
"""
from typing import Any, Dict, Optional

import numpy as np

from satfusion.models.job import AnalysisKind

# [low, high) for each index's uniform sample
INDEX_RANGES = {
    "ndvi": (0.2, 1.0),
    "ndbi": (0.0, 0.6),
    "ndmi": (0.1, 0.8),
    "ndwi": (0.0, 0.8),
    "evi": (0.1, 1.0),
}

# series the statistics block is computed over
REPRESENTATIVE_INDEX = "ndvi"


def summarize(series: np.ndarray) -> Dict[str, float]:
    return {
        "mean": round(float(np.mean(series)), 4),
        "std": round(float(np.std(series)), 4),
        "min": round(float(np.min(series)), 4),
        "max": round(float(np.max(series)), 4),
        "median": round(float(np.median(series)), 4),
    }


class AnalysisStrategy:
    """Interface: turn a job into its results payload."""

    def generate(self, job) -> Dict[str, Any]:
        raise NotImplementedError


class SyntheticSpectralStrategy(AnalysisStrategy):
    def __init__(self, series_length: int = 256, rng: Optional[np.random.Generator] = None):
        if series_length < 1:
            raise ValueError("series_length must be >= 1")
        self.series_length = series_length
        self.rng = rng if rng is not None else np.random.default_rng()

    def _series(self) -> Dict[str, np.ndarray]:
        return {
            name: self.rng.uniform(low, high, size=self.series_length)
            for name, (low, high) in INDEX_RANGES.items()
        }

    def extras(self, job, series: Dict[str, np.ndarray]) -> Dict[str, Any]:
        return {}

    def generate(self, job) -> Dict[str, Any]:
        series = self._series()
        out: Dict[str, Any] = {name: [round(float(v), 4) for v in values] for name, values in series.items()}
        out["statistics"] = summarize(series[REPRESENTATIVE_INDEX])
        out["series_length"] = self.series_length
        out["kind"] = getattr(job, "kind", None)
        out.update(self.extras(job, series))
        return out


class ChangeDetectionStrategy(SyntheticSpectralStrategy):
    def extras(self, job, series):
        # a second "epoch" drawn from the same range; the delta is the change map
        before = self.rng.uniform(*INDEX_RANGES["ndvi"], size=self.series_length)
        delta = series["ndvi"] - before
        threshold = float((job.parameters or {}).get("threshold", 0.2))
        return {
            "change": {
                "ndvi_delta": [round(float(v), 4) for v in delta],
                "threshold": threshold,
                "changed_fraction": round(float(np.mean(np.abs(delta) > threshold)), 4),
            }
        }


class AnomalyDetectionStrategy(SyntheticSpectralStrategy):
    def extras(self, job, series):
        values = series["ndvi"]
        std = float(np.std(values)) or 1.0
        z = (values - float(np.mean(values))) / std
        z_limit = float((job.parameters or {}).get("z_threshold", 1.5))
        idx = np.flatnonzero(np.abs(z) >= z_limit)
        return {
            "anomalies": [
                {"index": int(i), "value": round(float(values[i]), 4), "z_score": round(float(z[i]), 4)}
                for i in idx
            ]
        }


class ClassificationStrategy(SyntheticSpectralStrategy):
    CLASSES = ("vegetation", "water", "urban", "bare_soil")

    def extras(self, job, series):
        weights = self.rng.dirichlet(np.ones(len(self.CLASSES)))
        fractions = {name: round(float(w), 4) for name, w in zip(self.CLASSES, weights)}
        # keep the rounded fractions summing to exactly 1
        fractions[self.CLASSES[-1]] = max(0.0, round(1.0 - sum(fractions[c] for c in self.CLASSES[:-1]), 4))
        return {"classification": fractions}


_STRATEGIES = {
    AnalysisKind.SPECTRAL_INDICES.value: SyntheticSpectralStrategy,
    AnalysisKind.CHANGE_DETECTION.value: ChangeDetectionStrategy,
    AnalysisKind.ANOMALY_DETECTION.value: AnomalyDetectionStrategy,
    AnalysisKind.CLASSIFICATION.value: ClassificationStrategy,
}


def strategy_for(kind: str, series_length: int = 256, rng=None) -> AnalysisStrategy:
    try:
        cls = _STRATEGIES[kind]
    except KeyError:
        raise ValueError(f"no analysis strategy for kind '{kind}'")
    return cls(series_length=series_length, rng=rng)
