# ============================================================
# FILE: motion/config.py
# ============================================================

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class WeightScheme(Enum):
    """Channel weights applied to |R1-R2|, |G1-G2|, |B1-B2|.

    Weights are integer numerators over a shared divisor so that the weighted
    sum of integer channel differences is exact up to one division.
    """

    EQUAL = ((1, 1, 1), 3)
    PERCEPTUAL = ((3, 6, 1), 10)

    @property
    def numerators(self):
        return self.value[0]

    @property
    def divisor(self):
        return self.value[1]

    @property
    def weights(self):
        return tuple(n / self.divisor for n in self.numerators)

    @classmethod
    def parse(cls, name) -> "WeightScheme":
        if isinstance(name, cls):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            raise ValueError(f"Unknown weight scheme: {name!r}") from None


class HeatmapMode(Enum):
    GRAY = "gray"
    GREEN = "green"

    @classmethod
    def parse(cls, name) -> "HeatmapMode":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            raise ValueError(f"Unknown heatmap mode: {name!r}") from None


class EngineConfig:
    def __init__(self, width: int = 400, height: int = 300,
                 capture_interval_ms: int = 100, sensitivity: float = 16,
                 emit_box: bool = True, box_color: str = "#ff0000",
                 weight_scheme="equal", heatmap_mode="gray", workers: int = 1):
        _require_positive_int("width", width)
        _require_positive_int("height", height)
        _require_positive_int("capture_interval_ms", capture_interval_ms)
        _require_positive_int("workers", workers)
        if isinstance(sensitivity, bool) or not isinstance(sensitivity, (int, float)) \
                or not sensitivity > 0:
            raise ValueError(f"sensitivity must be a positive number, got {sensitivity!r}")

        self.width = width
        self.height = height
        self.capture_interval_ms = capture_interval_ms
        self.sensitivity = sensitivity
        self.emit_box = bool(emit_box)
        self.box_color = box_color
        self.weight_scheme = WeightScheme.parse(weight_scheme)
        self.heatmap_mode = HeatmapMode.parse(heatmap_mode)
        self.workers = workers

    @classmethod
    def from_config(cls, config) -> "EngineConfig":
        engine_config = cls(
            width=config.get('camera.width', 400),
            height=config.get('camera.height', 300),
            capture_interval_ms=config.get('motion.capture_interval_ms', 100),
            sensitivity=config.get('motion.sensitivity', 16),
            emit_box=config.get('motion.emit_box', True),
            box_color=config.get('motion.box_color', "#ff0000"),
            weight_scheme=config.get('motion.weight_scheme', "equal"),
            heatmap_mode=config.get('motion.heatmap_mode', "gray"),
            workers=config.get('motion.workers', 1),
        )
        logger.info(f"Engine config loaded: {engine_config}")
        return engine_config

    @property
    def size(self):
        return self.width, self.height

    def as_dict(self):
        return {
            'width': self.width,
            'height': self.height,
            'capture_interval_ms': self.capture_interval_ms,
            'sensitivity': self.sensitivity,
            'emit_box': self.emit_box,
            'box_color': self.box_color,
            'weight_scheme': self.weight_scheme.name.lower(),
            'heatmap_mode': self.heatmap_mode.value,
            'workers': self.workers,
        }

    def __repr__(self):
        return (f"EngineConfig({self.width}x{self.height}, "
                f"interval={self.capture_interval_ms}ms, sensitivity={self.sensitivity}, "
                f"weights={self.weight_scheme.name.lower()})")


def _require_positive_int(name, value):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
