# ============================================================
# FILE: motion/difference.py
# ============================================================

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from capture.frame_buffer import FrameBuffer, OPAQUE
from motion.config import HeatmapMode, WeightScheme
from motion.errors import DimensionMismatch

logger = logging.getLogger(__name__)


class DifferenceResult:
    def __init__(self, score: int, diff_buffer: FrameBuffer, mask: np.ndarray):
        self.score = score
        self.diff_buffer = diff_buffer
        self.mask = mask  # (height, width) bool, pixels at or above sensitivity

    @property
    def indices(self) -> np.ndarray:
        """Row-major linear indices of the over-threshold pixels."""
        return np.flatnonzero(self.mask)

    def __repr__(self):
        return f"DifferenceResult(score={self.score}, size={self.diff_buffer.size})"


class DifferenceComputer:
    """
    Per-pixel frame differencing.

    For every pixel the absolute R, G and B differences are combined with the
    configured weights; the sum is scaled by 255 / sensitivity for display and
    clamped to [0, 255]. Pixels whose weighted difference reaches the
    sensitivity count towards the score.

    With workers > 1, frames of at least min_parallel_rows rows are split in
    row bands and evaluated on a thread pool. Bands have no cross-pixel
    dependency, so scores are summed and rows concatenated in order.
    """

    def __init__(self, weight_scheme=WeightScheme.EQUAL, heatmap_mode=HeatmapMode.GRAY,
                 workers: int = 1, min_parallel_rows: int = 64):
        self.weight_scheme = WeightScheme.parse(weight_scheme)
        self.heatmap_mode = HeatmapMode.parse(heatmap_mode)
        self.workers = max(1, int(workers))
        self.min_parallel_rows = min_parallel_rows

    @classmethod
    def from_engine_config(cls, engine_config) -> "DifferenceComputer":
        return cls(engine_config.weight_scheme, engine_config.heatmap_mode,
                   engine_config.workers)

    def compute(self, previous: FrameBuffer, current: FrameBuffer,
                sensitivity: float) -> DifferenceResult:
        if previous.size != current.size:
            raise DimensionMismatch(previous.size, current.size)
        if not sensitivity > 0:
            raise ValueError(f"sensitivity must be positive, got {sensitivity!r}")

        prev_px = previous.pixels
        curr_px = current.pixels

        if self.workers > 1 and current.height >= self.min_parallel_rows:
            bands = np.array_split(np.arange(current.height), self.workers)
            bounds = [(int(b[0]), int(b[-1]) + 1) for b in bands if b.size]
            with ThreadPoolExecutor(max_workers=len(bounds)) as pool:
                parts = list(pool.map(
                    lambda rows: self._compute_rows(prev_px[rows[0]:rows[1]],
                                                    curr_px[rows[0]:rows[1]],
                                                    sensitivity),
                    bounds,
                ))
            heatmap = np.concatenate([p[0] for p in parts], axis=0)
            mask = np.concatenate([p[1] for p in parts], axis=0)
            score = sum(p[2] for p in parts)
        else:
            heatmap, mask, score = self._compute_rows(prev_px, curr_px, sensitivity)

        mask.setflags(write=False)
        return DifferenceResult(score, FrameBuffer(heatmap), mask)

    def weighted_difference(self, previous: np.ndarray, current: np.ndarray) -> np.ndarray:
        """Weighted RGB difference per pixel, as float64."""
        delta = np.abs(previous[..., :3].astype(np.int32) - current[..., :3].astype(np.int32))
        numerators = np.asarray(self.weight_scheme.numerators, dtype=np.int32)
        return (delta @ numerators) / float(self.weight_scheme.divisor)

    def normalize(self, diff: np.ndarray, sensitivity: float) -> np.ndarray:
        scaled = np.minimum(255.0, diff * (255.0 / sensitivity))
        return np.clip(np.rint(scaled), 0, 255).astype(np.uint8)

    def _compute_rows(self, previous: np.ndarray, current: np.ndarray, sensitivity: float):
        diff = self.weighted_difference(previous, current)
        normalized = self.normalize(diff, sensitivity)

        heatmap = np.zeros(previous.shape, dtype=np.uint8)
        if self.heatmap_mode is HeatmapMode.GREEN:
            heatmap[..., 1] = normalized
        else:
            heatmap[..., 0] = normalized
            heatmap[..., 1] = normalized
            heatmap[..., 2] = normalized
        heatmap[..., 3] = OPAQUE

        mask = diff >= sensitivity
        return heatmap, mask, int(np.count_nonzero(mask))


def compute(previous: FrameBuffer, current: FrameBuffer, sensitivity: float,
            weight_scheme=WeightScheme.EQUAL,
            heatmap_mode=HeatmapMode.GRAY) -> DifferenceResult:
    return DifferenceComputer(weight_scheme, heatmap_mode).compute(previous, current, sensitivity)
