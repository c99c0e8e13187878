#!/usr/bin/env python3
# ============================================================
# FILE: debug_motion.py
# Debug script to exercise the motion engine on known frames
# ============================================================

import logging
import sys

import cv2
import numpy as np

from capture.frame_buffer import FrameBuffer
from motion.config import EngineConfig
from motion.engine import MotionEngine
from utils.config_loader import Config

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class ScriptedSource:
    """Frame source replaying a fixed list of frames."""

    def __init__(self, frames):
        self.frames = list(frames)

    def read(self):
        return self.frames.pop(0) if self.frames else None


def run_pair(engine_config: EngineConfig, label: str, previous: FrameBuffer, current: FrameBuffer):
    engine = MotionEngine(engine_config)
    engine.start(ScriptedSource([previous, current]))
    engine.run_cycle()
    outcome = engine.run_cycle()
    engine.stop()

    logger.info(f"{label}: score={outcome.score} box={outcome.box}")
    return outcome


def debug_engine(config_path: str = "config.yaml"):
    logger.info("=" * 60)
    logger.info("MOTION ENGINE DEBUG")
    logger.info("=" * 60)

    try:
        config = Config(config_path)
        engine_config = EngineConfig.from_config(config)
    except FileNotFoundError:
        logger.warning(f"{config_path} not found, using defaults")
        config = Config.from_dict({})
        engine_config = EngineConfig()

    width, height = engine_config.size
    logger.info(f"Config - Frame size: {width}x{height}")
    logger.info(f"Config - Sensitivity: {engine_config.sensitivity}")
    logger.info(f"Config - Weights: {engine_config.weight_scheme.name.lower()}")

    blank = FrameBuffer.blank(width, height)

    logger.info("\nTesting with unchanged frames...")
    run_pair(engine_config, "Unchanged", blank, blank)

    logger.info("\nTesting with a single changed pixel...")
    pixels = np.array(blank.pixels, copy=True)
    pixels[height // 2, width // 2, :3] = 255
    run_pair(engine_config, "Single pixel", blank, FrameBuffer(pixels))

    logger.info("\nTesting with random noise frame...")
    noise = np.random.randint(0, 256, (height, width, 4), dtype=np.uint8)
    noise[..., 3] = 255
    run_pair(engine_config, "Noise", blank, FrameBuffer(noise))

    logger.info("\nAttempting to read from camera...")
    device_id = config.get('camera.device_id', 0)
    cap = cv2.VideoCapture(device_id)

    if cap.isOpened():
        frames = []
        for _ in range(2):
            ret, frame = cap.read()
            if ret:
                frames.append(FrameBuffer.from_bgr(frame, (width, height)))
        cap.release()

        if len(frames) == 2:
            run_pair(engine_config, "Camera", frames[0], frames[1])
        else:
            logger.warning("Could not read two frames from camera")
    else:
        logger.warning(f"Camera device {device_id} not available")

    logger.info("\n" + "=" * 60)
    logger.info("DIAGNOSIS COMPLETE")
    logger.info("=" * 60)


if __name__ == "__main__":
    debug_engine(sys.argv[1] if len(sys.argv) > 1 else "config.yaml")
