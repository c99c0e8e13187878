# ============================================================
# FILE: storage/media_store.py
# ============================================================

import itertools
import cv2
from pathlib import Path
from datetime import datetime
from typing import Optional, Tuple
import logging

from capture.frame_buffer import FrameBuffer
from motion.engine import CycleOutcome, CycleStatus
from motion.overlay import draw_motion_box

logger = logging.getLogger(__name__)

SNAPSHOT_KINDS = ('capture', 'motion')


class MediaStore:
    def __init__(self, base_path: str):
        self.base_path = Path(base_path)
        self.snapshot_path = self.base_path / 'snapshots'
        self.snapshot_path.mkdir(parents=True, exist_ok=True)
        self._sequence = itertools.count()

    def save_snapshot(self, frame: FrameBuffer, kind: str) -> str:
        if kind not in SNAPSHOT_KINDS:
            raise ValueError(f"Unknown snapshot kind: {kind}")

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        filepath = self.snapshot_path / f"{kind}_{timestamp}_{next(self._sequence):04d}.png"

        if not cv2.imwrite(str(filepath), frame.to_bgr()):
            logger.error(f"Failed to write snapshot: {filepath}")
            return ""

        logger.info(f"Saved snapshot: {filepath}")
        return str(filepath)

    def cleanup_old_media(self, days: int):
        cutoff = datetime.now().timestamp() - (days * 86400)

        for file in self.snapshot_path.glob('*.png'):
            if file.stat().st_mtime < cutoff:
                file.unlink()
                logger.info(f"Deleted old file: {file}")

    def get_file_path(self, filename: str) -> Optional[Path]:
        filepath = self.snapshot_path / Path(filename).name
        if filepath.exists():
            return filepath
        return None


class SnapshotRecorder:
    """Saves the capture view (frame with motion box) and the heatmap every N completed cycles."""

    def __init__(self, media_store: MediaStore, every_n_cycles: int = 5,
                 box_color: str = "#ff0000", emit_box: bool = True):
        if every_n_cycles <= 0:
            raise ValueError(f"every_n_cycles must be positive, got {every_n_cycles}")
        self.media_store = media_store
        self.every_n_cycles = every_n_cycles
        self.box_color = box_color
        self.emit_box = emit_box
        self.counter = 0

    def handle(self, outcome: CycleOutcome) -> Optional[Tuple[str, str]]:
        if outcome.status is not CycleStatus.COMPLETED:
            return None

        self.counter += 1
        if self.counter < self.every_n_cycles:
            return None
        self.counter = 0

        capture = outcome.frame
        if self.emit_box:
            capture = draw_motion_box(outcome.frame, outcome.box, self.box_color)
        capture_path = self.media_store.save_snapshot(capture, 'capture')
        motion_path = self.media_store.save_snapshot(outcome.diff_buffer, 'motion')
        return capture_path, motion_path
